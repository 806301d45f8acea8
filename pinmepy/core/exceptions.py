"""
Custom exceptions for pinmepy.

Every failure the upload pipeline can report derives from PinmeException,
so callers can separate expected failures from programming errors.
"""
from typing import Optional


class PinmeException(Exception):
    """Base exception for all pinmepy errors."""
    
    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            error_code: Numeric error code (if available)
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConfigError(PinmeException):
    """Raised when configuration values cannot be parsed."""
    pass


class ValidationError(PinmeException):
    """Raised before any network call when the input cannot be uploaded."""
    pass


class IdentityError(PinmeException):
    """Raised when no caller identity is available or an app key is malformed."""
    pass


class PinmeRequestError(PinmeException):
    """Raised when a single HTTP call fails at the transport level."""
    pass


class RequestTimeoutError(PinmeRequestError):
    """Raised when a single HTTP call exceeds the per-request timeout."""
    pass


class UploadError(PinmeException):
    """Base class for failures of the upload pipeline."""
    pass


class PayloadError(UploadError):
    """Raised when the payload cannot be packed or read from disk."""
    pass


class SessionError(UploadError):
    """Raised when the server rejects session init or completion."""
    pass


class ChunkError(UploadError):
    """Raised when a chunk exhausts its retry budget."""
    
    def __init__(
        self,
        message: str,
        chunk_index: int,
        total_chunks: int,
        error_code: Optional[int] = None
    ) -> None:
        """
        Initialize the exception.
        
        Args:
            message: Error message
            chunk_index: 0-based index of the failed chunk
            total_chunks: Number of chunks in the session
            error_code: Numeric error code (if available)
        """
        self.chunk_index = chunk_index
        self.total_chunks = total_chunks
        super().__init__(message, error_code)


class PollError(UploadError):
    """Raised when status polling keeps failing past the tolerated bound."""
    pass


class PollTimeout(UploadError):
    """Raised when the backend job is not ready before the polling deadline."""
    pass


class ServerReportedFailure(UploadError):
    """Raised when the status endpoint reports that the job failed."""
    
    def __init__(self, reason: str, trace_id: Optional[str] = None) -> None:
        self.reason = reason
        self.trace_id = trace_id
        super().__init__(f"Server reported failure: {reason}")


class CancellationError(PinmeException):
    """Raised inside chunk workers to unwind after cancellation."""
    
    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message)
