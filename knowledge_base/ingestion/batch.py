# =============================================================================
# BATCH AGGREGATOR
# =============================================================================
# Concurrent multi-file extraction with per-file success/failure partitioning
# =============================================================================

import asyncio
import logging
from typing import Optional, Sequence

from .extractors import DocumentExtractor
from .models import (
    BatchOutcome,
    ErrorKind,
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
    UploadedFile,
)

logger = logging.getLogger(__name__)


class BatchAggregator:
    """
    Extracts every file of a batch concurrently and partitions the results.

    Each file is an independent task; a failure (or an unexpected exception)
    in one never cancels or alters another. Results keep input order, so
    ``BatchOutcome.combined_text`` is deterministic.
    """

    def __init__(self, extractor: Optional[DocumentExtractor] = None):
        self.extractor = extractor or DocumentExtractor()

    async def run_batch(self, files: Sequence[UploadedFile]) -> BatchOutcome:
        """
        Extract text from all files.

        Args:
            files: Uploaded files, in submission order

        Returns:
            BatchOutcome with one entry per input file
        """
        results = await asyncio.gather(*(self._extract_one(file) for file in files))

        outcome = BatchOutcome()
        for result in results:
            if isinstance(result, ExtractionSuccess):
                outcome.succeeded.append(result)
            else:
                outcome.failed.append(result)
                logger.warning(
                    f"Failed to extract text from {result.source_name}: "
                    f"{result.reason.value} {result.message}"
                )

        logger.info(
            f"Processed {len(files)} document(s): {len(outcome.succeeded)} succeeded, "
            f"{len(outcome.failed)} failed"
        )
        return outcome

    async def _extract_one(self, file: UploadedFile) -> ExtractionResult:
        try:
            return await self.extractor.extract_async(file)
        except Exception as e:
            logger.exception(f"Unexpected error processing {file.filename}")
            return ExtractionFailure(
                ErrorKind.EXTRACTION_ERROR,
                file.filename,
                f"Error processing {file.filename}: {e}"
            )
