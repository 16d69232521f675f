# =============================================================================
# CONTENT INGESTION SYSTEM
# =============================================================================
# Turns a URL, uploaded documents or pasted text into a knowledge source
# =============================================================================

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .assembler import KnowledgeSourceAssembler
from .batch import BatchAggregator
from .crawler import WebPageFetcher
from .extractors import DocumentExtractor, media_type_for_filename
from .models import (
    BatchStatus,
    ErrorKind,
    ExtractionFailure,
    FileBatchInput,
    IngestionResult,
    RawInput,
    SourceKind,
    SourceOrigin,
    TextInput,
    UploadedFile,
    UrlInput,
)
from .normalizer import normalize

logger = logging.getLogger(__name__)

# (content text, origin, per-file failures) or the failure that stops ingestion
ExtractOutcome = Tuple[Optional[str], Optional[SourceOrigin], List[ExtractionFailure], Optional[ExtractionFailure]]


class ContentIngester:
    """
    Ingests knowledge content for an agent.

    Supported sources:
    - Web pages (via the crawl service)
    - Uploaded documents (TXT, DOCX, DOC), processed as one batch
    - Pasted text

    Each call runs Dispatch -> Extract -> Validate -> Assemble and returns the
    assembled record. Persisting it and triggering chunking/embedding are the
    caller's job.
    """

    def __init__(
        self,
        fetcher: Optional[WebPageFetcher] = None,
        aggregator: Optional[BatchAggregator] = None,
        assembler: Optional[KnowledgeSourceAssembler] = None
    ):
        self.fetcher = fetcher or WebPageFetcher()
        self.aggregator = aggregator or BatchAggregator(DocumentExtractor())
        self.assembler = assembler or KnowledgeSourceAssembler()

        self._handlers: Dict[SourceKind, Tuple[type, Callable[..., Awaitable[ExtractOutcome]]]] = {
            SourceKind.URL: (UrlInput, self._extract_url),
            SourceKind.FILE: (FileBatchInput, self._extract_files),
            SourceKind.TEXT: (TextInput, self._extract_text),
        }

    async def ingest(self, kind: SourceKind, raw_input: RawInput, agent_id: str) -> IngestionResult:
        """
        Ingest one knowledge source.

        Args:
            kind: Source type selected by the caller
            raw_input: Input matching ``kind``
            agent_id: Agent the source belongs to

        Returns:
            IngestionResult holding the record, or the failure that blocked it
        """
        # Dispatch
        input_type, handler = self._handlers[kind]
        if not isinstance(raw_input, input_type):
            raise ValueError(f"{type(raw_input).__name__} cannot be ingested as a {kind.value} source")

        # Extract
        text, origin, skipped, failure = await handler(raw_input)
        if failure is not None:
            logger.warning(f"Ingestion of {kind.value} source for agent {agent_id} failed: {failure.reason.value}")
            return IngestionResult(error=failure, skipped=skipped)

        # Validate
        if not text or not text.strip():
            return IngestionResult(
                error=ExtractionFailure(
                    ErrorKind.EMPTY_CONTENT,
                    origin.name or origin.url or kind.value,
                    "Please provide knowledge source content"
                ),
                skipped=skipped
            )

        # Assemble
        assembled = self.assembler.assemble(kind, text, origin, agent_id)
        if isinstance(assembled, ExtractionFailure):
            return IngestionResult(error=assembled, skipped=skipped)

        # Handoff
        return IngestionResult(source=assembled, skipped=skipped)

    async def ingest_url(self, url: str, agent_id: str, name: Optional[str] = None) -> IngestionResult:
        return await self.ingest(SourceKind.URL, UrlInput(url=url, name=name), agent_id)

    async def ingest_files(
        self,
        files: Sequence[UploadedFile],
        agent_id: str,
        name: Optional[str] = None
    ) -> IngestionResult:
        return await self.ingest(SourceKind.FILE, FileBatchInput(files=list(files), name=name), agent_id)

    async def ingest_text(self, text: str, agent_id: str, name: Optional[str] = None) -> IngestionResult:
        return await self.ingest(SourceKind.TEXT, TextInput(text=text, name=name), agent_id)

    # =========================================================================
    # EXTRACTION STRATEGIES
    # =========================================================================

    async def _extract_url(self, raw_input: UrlInput) -> ExtractOutcome:
        page = await self.fetcher.fetch_page(raw_input.url)
        if isinstance(page, ExtractionFailure):
            return None, None, [], page

        origin = SourceOrigin(
            url=raw_input.url,
            title=page.title,
            description=page.description,
            name=raw_input.name,
        )
        return page.content, origin, [], None

    async def _extract_files(self, raw_input: FileBatchInput) -> ExtractOutcome:
        if not raw_input.files:
            return None, None, [], ExtractionFailure(ErrorKind.EMPTY_CONTENT, "", "No documents were uploaded")

        logger.info(f"Processing {len(raw_input.files)} document(s)")
        outcome = await self.aggregator.run_batch(raw_input.files)

        if outcome.status is BatchStatus.FAILED:
            return None, None, outcome.failed, ExtractionFailure(
                ErrorKind.EMPTY_CONTENT,
                ", ".join(file.filename for file in raw_input.files),
                "Could not extract text from any uploaded documents. "
                "Please ensure files are valid DOCX, DOC, or TXT files."
            )

        if outcome.status is BatchStatus.PARTIAL:
            logger.warning(
                f"Successfully processed {len(outcome.succeeded)} of "
                f"{outcome.input_count} documents"
            )

        origin = SourceOrigin(
            file_names=[file.filename for file in raw_input.files],
            name=raw_input.name,
        )
        # Document text is kept as extracted; only Markdown sources go through the normalizer
        return outcome.combined_text(), origin, outcome.failed, None

    async def _extract_text(self, raw_input: TextInput) -> ExtractOutcome:
        # Pasted text has no extraction step that can fail
        return normalize(raw_input.text), SourceOrigin(name=raw_input.name), [], None


# =============================================================================
# CLI INTERFACE
# =============================================================================

def _load_file(path: str) -> UploadedFile:
    file_path = Path(path)
    content = file_path.read_bytes()
    return UploadedFile(
        filename=file_path.name,
        content=content,
        media_type=media_type_for_filename(file_path.name),
        size=len(content),
    )


async def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI for knowledge source ingestion."""
    import argparse

    parser = argparse.ArgumentParser(description="Ingest a knowledge source for an agent")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", "-u", help="Web page to crawl")
    source.add_argument("--file", "-f", action="append", help="Document to ingest (repeatable)")
    source.add_argument("--text", "-t", help="Text to ingest")
    parser.add_argument("--agent-id", "-a", required=True, help="Owning agent ID")
    parser.add_argument("--name", "-n", help="Display name for the source")

    args = parser.parse_args(argv)

    ingester = ContentIngester()

    if args.url:
        result = await ingester.ingest_url(args.url, args.agent_id, args.name)
    elif args.file:
        files = [_load_file(path) for path in args.file]
        result = await ingester.ingest_files(files, args.agent_id, args.name)
    else:
        result = await ingester.ingest_text(args.text, args.agent_id, args.name)

    for skipped in result.skipped:
        print(f"Skipped {skipped.source_name}: {skipped.reason.value} {skipped.message}", file=sys.stderr)

    if not result.ok:
        print(f"Ingestion failed: {result.error.reason.value} {result.error.message}", file=sys.stderr)
        return 1

    print(json.dumps(result.source.to_record(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main()))
