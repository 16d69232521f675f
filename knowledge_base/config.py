# =============================================================================
# KNOWLEDGE BASE SETTINGS
# =============================================================================
# Process-wide, read-only configuration for the ingestion pipeline
# =============================================================================

import os

# Crawl service
CRAWL_API_URL = os.getenv("CRAWL_API_URL", "https://api.firecrawl.dev/v0")
CRAWL_API_KEY = os.getenv("CRAWL_API_KEY", "")
CRAWL_TIMEOUT_SECONDS = float(os.getenv("CRAWL_TIMEOUT_SECONDS", "30"))

# Document extraction
MAX_FILE_SIZE_BYTES = int(os.getenv("MAX_FILE_SIZE_BYTES", str(10 * 1024 * 1024)))

# Knowledge source defaults
DEFAULT_TEXT_SOURCE_NAME = os.getenv("DEFAULT_TEXT_SOURCE_NAME", "Text Content")
DEFAULT_FILE_SOURCE_NAME = "Uploaded Documents"

# Downstream chunking / embedding service
PROCESSING_API_URL = os.getenv(
    "PROCESSING_API_URL",
    "http://localhost:54321/functions/v1/process-knowledge"
)
PROCESSING_API_KEY = os.getenv("PROCESSING_API_KEY", "")
PROCESSING_TIMEOUT_SECONDS = float(os.getenv("PROCESSING_TIMEOUT_SECONDS", "120"))
PROCESSING_MAX_RETRIES = int(os.getenv("PROCESSING_MAX_RETRIES", "3"))
