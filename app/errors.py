# app/errors.py


class ReceiptError(Exception):
    """Base class for every error raised by the receipt service."""


class ConfigError(ReceiptError):
    pass


# --- Adapter errors ---

class StorageError(ReceiptError):
    pass


class ExtractionError(ReceiptError):
    pass


class RepositoryError(ReceiptError):
    pass


# --- Date reconciliation ---

class DateError(ReceiptError):
    pass


class InvalidDate(DateError):
    def __init__(self, value: str, source: str):
        self.value = value
        self.source = source
        super().__init__(f"invalid {source} date (expected YYYY-MM-DD): {value!r}")


class NoDateAvailable(DateError):
    def __init__(self):
        super().__init__("no usable date: neither a user-supplied nor an extracted date was provided")


# --- Workflow stage errors ---

class StageError(ReceiptError):
    """
    Raised by the ingestion workflow. Carries the stage that failed and the
    underlying cause, which is also chained as __cause__.
    """
    stage = "unknown"
    summary = "receipt ingestion failed"

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"{self.summary}: {cause}")


class UploadFailed(StageError):
    stage = "upload"
    summary = "failed to upload receipt image"


class ExtractionFailed(StageError):
    stage = "extraction"
    summary = "failed to extract receipt fields"


class DateResolutionFailed(StageError):
    stage = "date_resolution"
    summary = "failed to determine receipt date"


class PersistenceFailed(StageError):
    stage = "persistence"
    summary = "failed to save receipt"
