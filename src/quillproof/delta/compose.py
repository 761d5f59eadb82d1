"""
Batch composition.

compose(base, applied) yields one batch whose effect equals applying
`base` and then `applied`, carrying rich-text attributes along:

- applied inserts are emitted as-is, formatted by the active context
- applied retains advance over base content and may change the context
- applied deletes skip base content and always emit a delete

A retain with attributes sets the "active formatting context" for every
piece of base content drawn afterwards, including the untouched tail.
"""

from __future__ import annotations

from typing import List, Optional

from .operations import (
    Attributes,
    Batch,
    Delete,
    Insert,
    Operation,
    Retain,
    op_attributes,
)


def merge_attributes(
    base: Optional[Attributes],
    modifier: Optional[Attributes],
) -> Optional[Attributes]:
    """
    Merge `modifier` over `base`.

    A None value in `modifier` removes that key. When only one side is
    present it is returned unchanged (copied); when neither is, the result
    is None rather than an empty map.
    """
    if base is None and modifier is None:
        return None
    if modifier is None:
        return dict(base)
    if base is None:
        return dict(modifier)

    merged = dict(base)
    for key, value in modifier.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def split_operation(op: Operation, offset: int, length: int) -> Operation:
    """Slice `length` units of `op` starting at `offset`."""
    if isinstance(op, Insert):
        if isinstance(op.content, str):
            return Insert(content=op.content[offset:offset + length], attributes=op.attributes)
        return Insert(content=op.content, attributes=op.attributes)
    if isinstance(op, Retain):
        return Retain(length=length, attributes=op.attributes)
    return Delete(length=length)


class BatchCursor:
    """Walks a batch, handing out whole operations or prefixes of them."""

    def __init__(self, ops: List[Operation]):
        self._ops = ops
        self._index = 0
        self._offset = 0

    def has_next(self) -> bool:
        return self._index < len(self._ops)

    def peek(self) -> Optional[Operation]:
        if not self.has_next():
            return None
        return self._ops[self._index]

    def peek_length(self) -> int:
        if not self.has_next():
            return 0
        return self._ops[self._index].length - self._offset

    def next(self, length: Optional[int] = None) -> Operation:
        if not self.has_next():
            raise StopIteration("No more operations to consume")

        op = self._ops[self._index]
        remaining = op.length - self._offset
        if length is None or length >= remaining:
            piece = op if self._offset == 0 else split_operation(op, self._offset, remaining)
            self._index += 1
            self._offset = 0
            return piece

        piece = split_operation(op, self._offset, length)
        self._offset += length
        return piece

    def skip(self, length: int) -> None:
        while length > 0 and self.has_next():
            length -= self.next(length).length


def _reemit(op: Operation, context: Optional[Attributes]) -> Optional[Operation]:
    if isinstance(op, Insert):
        return Insert(content=op.content, attributes=merge_attributes(op.attributes, context))
    if isinstance(op, Retain):
        if op.length == 0:
            return None
        return Retain(length=op.length, attributes=merge_attributes(op.attributes, context))
    return Delete(length=op.length)


def _push_insert(result: List[Operation], op: Insert) -> None:
    if result:
        last = result[-1]
        if (
            isinstance(last, Insert)
            and last.is_text
            and op.is_text
            and last.attributes == op.attributes
        ):
            result[-1] = Insert(content=last.content + op.content, attributes=last.attributes)
            return
    result.append(op)


def compose(base: Batch, applied: Batch) -> Batch:
    result: List[Operation] = []
    cursor = BatchCursor(base.ops)
    context: Optional[Attributes] = None

    # Without a retain or delete the applied batch has no cursor
    # positioning; its inserts land after the existing document.
    if applied.ops and all(isinstance(op, Insert) for op in applied.ops):
        while cursor.has_next():
            emitted = _reemit(cursor.next(), None)
            if emitted is not None:
                result.append(emitted)

    for op in applied.ops:
        if isinstance(op, Insert):
            _push_insert(
                result,
                Insert(content=op.content, attributes=merge_attributes(context, op.attributes)),
            )

        elif isinstance(op, Retain):
            if op.attributes is not None:
                context = merge_attributes(context, op.attributes) or {}

            remaining = op.length
            while remaining > 0 and cursor.has_next():
                piece = cursor.next(remaining)
                remaining -= piece.length
                if isinstance(piece, Delete):
                    continue
                merged = merge_attributes(op_attributes(piece), context)
                if isinstance(piece, Insert):
                    result.append(Insert(content=piece.content, attributes=merged))
                elif piece.length > 0:
                    result.append(Retain(length=piece.length, attributes=merged))

        elif isinstance(op, Delete):
            cursor.skip(op.length)
            result.append(Delete(length=op.length))

    while cursor.has_next():
        emitted = _reemit(cursor.next(), context)
        if emitted is not None:
            result.append(emitted)

    if result:
        last = result[-1]
        if isinstance(last, Insert) and last.content == "\n" and last.attributes is None:
            result.pop()

    return Batch(ops=result)


def compose_all(batches) -> Batch:
    """Fold a sequence of batches into one, starting from the empty batch."""
    composed = Batch()
    for batch in batches:
        if batch is None or not batch.ops:
            continue
        composed = compose(composed, batch)
    return composed
