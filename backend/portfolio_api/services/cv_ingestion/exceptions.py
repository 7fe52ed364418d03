class CVIngestionError(Exception):
    """Base error for the CV ingestion pipeline; `code` is surfaced to API clients."""
    code = "INGESTION_ERROR"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class UnsupportedFileTypeError(CVIngestionError):
    code = "UNSUPPORTED_FILE_TYPE"


class TextExtractionError(CVIngestionError):
    code = "EXTRACTION_ERROR"


class LLMParsingError(CVIngestionError):
    code = "LLM_ERROR"
