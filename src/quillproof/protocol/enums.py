from enum import Enum


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    EDIT_REJECTED = "edit_rejected"
    INDEX_ERROR = "index_error"
    ANCHORING_ERROR = "anchoring_error"
    CONSISTENCY_ERROR = "consistency_error"
    INTERNAL_ERROR = "internal_error"


class ProofPosition(str, Enum):
    """Side on which a sibling hash sits relative to the path node."""

    LEFT = "left"
    RIGHT = "right"


class VerificationType(str, Enum):
    GENESIS = "genesis"
    REGULAR = "regular"
