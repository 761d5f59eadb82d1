"""
Rich-text edit operations and batch composition.
"""

from quillproof.delta.operations import (
    Batch,
    Delete,
    Insert,
    Operation,
    Retain,
    batch_size,
    op_length,
    parse_batch,
    parse_operation,
)

from quillproof.delta.compose import (
    BatchCursor,
    compose,
    compose_all,
    merge_attributes,
)

__all__ = [
    "Batch",
    "Insert",
    "Delete",
    "Retain",
    "Operation",
    "batch_size",
    "op_length",
    "parse_batch",
    "parse_operation",
    "BatchCursor",
    "compose",
    "compose_all",
    "merge_attributes",
]
