"""
Edit operation model.

A batch is an ordered list of operations walked left to right over
implicit document positions (Quill delta shape):

    {"ops": [{"insert": "Hello", "attributes": {"bold": true}},
             {"retain": 3},
             {"delete": 2}]}

Each operation is exactly one of Insert, Delete or Retain.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from quillproof.protocol.errors import ValidationError
from quillproof.protocol.attributes import validate_attributes

Attributes = Dict[str, Any]
InsertContent = Union[str, Dict[str, Any]]


@dataclass
class Insert:
    content: InsertContent
    attributes: Optional[Attributes] = None

    @property
    def length(self) -> int:
        if isinstance(self.content, str):
            return len(self.content)
        return 1  # embed

    @property
    def is_text(self) -> bool:
        return isinstance(self.content, str)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"insert": self.content}
        if self.attributes is not None:
            data["attributes"] = self.attributes
        return data


@dataclass
class Delete:
    length: int

    def to_dict(self) -> Dict[str, Any]:
        return {"delete": self.length}


@dataclass
class Retain:
    length: int
    attributes: Optional[Attributes] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"retain": self.length}
        if self.attributes is not None:
            data["attributes"] = self.attributes
        return data


Operation = Union[Insert, Delete, Retain]


def op_length(op: Operation) -> int:
    return op.length


def op_attributes(op: Operation) -> Optional[Attributes]:
    if isinstance(op, Delete):
        return None
    return op.attributes


@dataclass
class Batch:
    """Ordered sequence of operations describing one document transformation."""

    ops: List[Operation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ops)

    def __iter__(self):
        return iter(self.ops)

    def size(self) -> int:
        return batch_size(self)

    def has_formatting(self) -> bool:
        return any(op_attributes(op) for op in self.ops)

    def to_dict(self) -> Dict[str, Any]:
        return {"ops": [op.to_dict() for op in self.ops]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Batch":
        return parse_batch(data)


def batch_size(batch: Batch) -> int:
    """Sum of insert and delete lengths; retains move the cursor only."""
    total = 0
    for op in batch.ops:
        if isinstance(op, (Insert, Delete)):
            total += op.length
    return total


# ===========================================================================
# Wire parsing
# ===========================================================================


def _parse_count(value: Any, kind: str, index: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        else:
            raise ValidationError(f"Invalid {kind} length at index {index}: {value!r}")
    if value < 0:
        raise ValidationError(f"Negative {kind} length at index {index}")
    return value


def _parse_attributes(value: Any, index: int) -> Optional[Attributes]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError(f"Attributes must be an object at index {index}")
    return dict(value)


def parse_operation(data: Mapping[str, Any], index: int = 0) -> Operation:
    if not isinstance(data, Mapping):
        raise ValidationError(f"Operation at index {index} must be an object")

    kinds = [k for k in ("insert", "delete", "retain") if data.get(k) is not None]
    if not kinds:
        raise ValidationError(f"Operation at index {index} missing required properties")
    if len(kinds) > 1:
        raise ValidationError(
            f"Operation at index {index} sets more than one of insert/delete/retain: {kinds}"
        )

    attributes = _parse_attributes(data.get("attributes"), index)
    kind = kinds[0]

    if kind == "insert":
        content = data["insert"]
        if isinstance(content, Mapping):
            content = dict(content)
        elif not isinstance(content, str):
            raise ValidationError(f"Invalid insert value type at index {index}")
        return Insert(content=content, attributes=attributes)

    if kind == "delete":
        if attributes is not None:
            # checked for shape, then discarded
            validate_attributes(attributes, index)
        return Delete(length=_parse_count(data["delete"], "delete", index))

    return Retain(length=_parse_count(data["retain"], "retain", index), attributes=attributes)


def parse_batch(data: Union[Batch, Mapping[str, Any], str, bytes]) -> Batch:
    """
    Build a Batch from its wire form.

    Accepts an existing Batch, a mapping with an "ops" list, or a JSON
    document. Structural problems raise ValidationError; semantic checks
    (empty batch, zero lengths, attribute types) live in validate_batch.
    """
    if isinstance(data, Batch):
        return data
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise ValidationError(f"Batch parse error: {e}") from e
    if not isinstance(data, Mapping):
        raise ValidationError("Batch must be an object with an 'ops' list")

    raw_ops = data.get("ops")
    if raw_ops is None:
        raw_ops = []
    if not isinstance(raw_ops, list):
        raise ValidationError("Batch 'ops' must be a list")

    return Batch(ops=[parse_operation(raw, i) for i, raw in enumerate(raw_ops)])
