"""
Custom exceptions for the application.

Every exception that can reach a caller carries a stable machine-readable
``error_code`` next to the free-text message, so the frontend can render a
specific message instead of a generic failure.
"""


class BaseAppException(Exception):
    """Base application exception"""
    error_code = "INTERNAL_ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(BaseAppException):
    """Raised when an upload is rejected before parsing starts"""
    error_code = "VALIDATION_ERROR"
    status_code = 400


class UnsupportedFileTypeError(ValidationError):
    """Format detector could not map the upload to a parser"""
    error_code = "UNSUPPORTED_FILE_TYPE"
    status_code = 415


class FileTooLargeError(ValidationError):
    """Upload exceeds the configured size ceiling"""
    error_code = "FILE_TOO_LARGE"
    status_code = 413


class InvalidFileContentError(ValidationError):
    """Empty or corrupt buffer, bad PDF signature, undecodable image"""
    error_code = "INVALID_FILE_CONTENT"


class ProcessingError(BaseAppException):
    """Raised when a statement cannot be turned into transactions"""
    error_code = "PROCESSING_ERROR"
    status_code = 422


class MissingRequiredColumnError(ProcessingError):
    """Column mapper could not locate the date or amount columns"""
    error_code = "MISSING_REQUIRED_COLUMN"

    DATE_COLUMN_NOT_FOUND = "DATE_COLUMN_NOT_FOUND"
    AMOUNT_COLUMN_NOT_FOUND = "AMOUNT_COLUMN_NOT_FOUND"


class NoValidRecordsError(ProcessingError):
    """Parser ran but every record was dropped"""
    error_code = "NO_VALID_RECORDS"


class RecordError(ProcessingError):
    """Per-record failure. Parsers drop the record and keep going."""


class DateParseError(RecordError):
    error_code = "DATE_PARSE_FAILURE"


class AmountParseError(RecordError):
    error_code = "AMOUNT_PARSE_FAILURE"


class AnalysisPreconditionError(ProcessingError):
    """Aggregator was handed an empty transaction list"""
    error_code = "ANALYSIS_PRECONDITION_FAILED"


class NotFoundError(BaseAppException):
    """Raised when a resource is not found"""
    error_code = "NOT_FOUND"
    status_code = 404


class UploadNotFoundError(NotFoundError):
    """Stored upload is missing or was already processed"""
    error_code = "FILE_NOT_FOUND"


class ConfigurationError(BaseAppException):
    """Raised when a collaborator is built without the settings it needs"""
    error_code = "CONFIGURATION_ERROR"
    status_code = 503


class ExternalServiceError(BaseAppException):
    """Raised when external service calls fail"""
    error_code = "RECOMMENDATION_FAILURE"
    status_code = 502


class OCRError(ExternalServiceError):
    error_code = "OCR_FAILURE"


class RetryableError(BaseAppException):
    """Base class for failures the client may simply try again"""
    status_code = 504
    retryable = True


class ParseTimeoutError(RetryableError):
    error_code = "PARSE_TIMEOUT"


class RecommendationTimeoutError(RetryableError):
    error_code = "RECOMMENDATION_TIMEOUT"
