from quillproof.delta.operations import Batch, Delete, Insert, Retain
from .attributes import validate_attributes
from .errors import ValidationError

__all__ = ["validate_attributes", "validate_batch"]


def validate_batch(batch: Batch) -> None:
    if not batch.ops:
        raise ValidationError("Batch contains no operations")

    for i, op in enumerate(batch.ops):
        if isinstance(op, Insert):
            if op.attributes is not None:
                validate_attributes(op.attributes, i)
            if isinstance(op.content, str) and not op.content:
                raise ValidationError(f"Empty string insert at index {i}")
            if isinstance(op.content, dict) and not op.content:
                raise ValidationError(f"Empty embed object at index {i}")
        elif isinstance(op, (Delete, Retain)):
            if isinstance(op, Retain) and op.attributes is not None:
                validate_attributes(op.attributes, i)
            if op.length == 0:
                raise ValidationError(f"Zero-length delete/retain at index {i}")
        else:
            raise ValidationError(f"Operation at index {i} missing required properties")
