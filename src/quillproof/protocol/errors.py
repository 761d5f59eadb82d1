from typing import Optional

from .enums import ErrorCode


class QuillproofError(Exception):
    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.code = code or ErrorCode.INTERNAL_ERROR


class ValidationError(QuillproofError):
    """Raised when a batch or leaf metadata is malformed."""

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message, code or ErrorCode.VALIDATION_ERROR)


class SuspiciousEditError(ValidationError):
    """Raised when the cadence analyzer rejects an edit."""

    def __init__(self, message: str, patterns=None):
        super().__init__(message, ErrorCode.EDIT_REJECTED)
        self.patterns = list(patterns or [])


class LeafIndexError(QuillproofError, IndexError):
    """Raised for an out-of-range leaf index."""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"Invalid leaf index {index} (tree has {size} leaves)",
            ErrorCode.INDEX_ERROR,
        )
        self.index = index
        self.size = size


class AnchoringError(QuillproofError):
    """Raised when the external calendar cannot anchor or verify a hash."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ANCHORING_ERROR)


class CalendarError(AnchoringError):
    """The calendar answered with a non-success status (or input was unusable)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AnchorNetworkError(AnchoringError):
    """The calendar could not be reached."""


class ConsistencyError(QuillproofError):
    """Independent re-derivation of the root disagreed with the stored root."""

    def __init__(self, expected_root: Optional[str], actual_root: Optional[str]):
        super().__init__(
            f"Tree consistency check failed: expected_root={expected_root}, actual_root={actual_root}",
            ErrorCode.CONSISTENCY_ERROR,
        )
        self.expected_root = expected_root
        self.actual_root = actual_root
