"""Pinme API error codes and exceptions."""
from typing import Dict, Optional

from ..exceptions import PinmeException


class APIErrorCodes:
    """Pinme API business error codes."""

    ERROR_CODES: Dict[int, str] = {
        30001: 'File too large: the single file or single folder size limit was exceeded',
        30002: 'Max storage quota reached',
    }

    @classmethod
    def get_message(cls, code: int, fallback: Optional[str] = None) -> str:
        """Gets error message for error code."""
        if code in cls.ERROR_CODES:
            return cls.ERROR_CODES[code]
        return fallback or f"Unknown error: {code}"


class PinmeAPIError(PinmeException):
    """Exception raised when the server answers with a non-success envelope."""

    def __init__(self, code: int, msg: Optional[str] = None):
        self.code = code
        self.msg = msg
        message = APIErrorCodes.get_message(code, msg)
        super().__init__(f"{message} (code: {code})", error_code=code)
