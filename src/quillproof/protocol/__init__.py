from .enums import ErrorCode, ProofPosition, VerificationType
from .errors import (
    AnchoringError,
    AnchorNetworkError,
    CalendarError,
    ConsistencyError,
    LeafIndexError,
    QuillproofError,
    SuspiciousEditError,
    ValidationError,
)

__all__ = [
    "ErrorCode",
    "ProofPosition",
    "VerificationType",
    "QuillproofError",
    "ValidationError",
    "SuspiciousEditError",
    "LeafIndexError",
    "AnchoringError",
    "CalendarError",
    "AnchorNetworkError",
    "ConsistencyError",
]
