"""
Tests for the operation model and batch composition.

Test coverage:
1. Wire parsing (exactly one kind, lengths, embeds)
2. Batch size
3. Attribute merge
4. Batch cursor
5. Compose (identity, append, retain formatting, deletes)
"""

import pytest

from quillproof.delta import (
    Batch,
    BatchCursor,
    Delete,
    Insert,
    Retain,
    batch_size,
    compose,
    compose_all,
    merge_attributes,
    parse_batch,
)
from quillproof.protocol.errors import ValidationError


# ===========================================================================
# 1. Parsing
# ===========================================================================


class TestParseBatch:
    def test_parses_all_kinds(self):
        batch = parse_batch({
            "ops": [
                {"insert": "Hi", "attributes": {"bold": True}},
                {"retain": 3},
                {"delete": 2},
                {"insert": {"image": "a.png"}},
            ]
        })

        assert batch.ops == [
            Insert("Hi", {"bold": True}),
            Retain(3),
            Delete(2),
            Insert({"image": "a.png"}),
        ]

    def test_parses_json_string(self):
        batch = parse_batch('{"ops": [{"insert": "x"}]}')
        assert batch.ops == [Insert("x")]

    def test_rejects_two_kinds(self):
        with pytest.raises(ValidationError, match="more than one"):
            parse_batch({"ops": [{"insert": "a", "delete": 1}]})

    def test_rejects_missing_kind(self):
        with pytest.raises(ValidationError, match="missing required properties"):
            parse_batch({"ops": [{"attributes": {"bold": True}}]})

    def test_rejects_non_string_insert(self):
        with pytest.raises(ValidationError, match="Invalid insert value type"):
            parse_batch({"ops": [{"insert": 42}]})

    def test_rejects_negative_length(self):
        with pytest.raises(ValidationError):
            parse_batch({"ops": [{"retain": -1}]})

    def test_rejects_invalid_json(self):
        with pytest.raises(ValidationError, match="parse error"):
            parse_batch("{not json")

    def test_integral_float_length_accepted(self):
        assert parse_batch({"ops": [{"delete": 2.0}]}).ops == [Delete(2)]

    def test_delete_attributes_dropped(self):
        batch = parse_batch({"ops": [{"delete": 1, "attributes": {"bold": True}}]})
        assert batch.ops == [Delete(1)]

    def test_delete_attributes_still_type_checked(self):
        with pytest.raises(ValidationError, match="bold"):
            parse_batch({"ops": [{"delete": 1, "attributes": {"bold": "yes"}}]})

    def test_to_dict_omits_absent_attributes(self):
        batch = Batch([Insert("a"), Retain(2, {"italic": True})])
        assert batch.to_dict() == {
            "ops": [{"insert": "a"}, {"retain": 2, "attributes": {"italic": True}}]
        }


# ===========================================================================
# 2. Size
# ===========================================================================


class TestBatchSize:
    def test_counts_inserts_and_deletes_only(self):
        batch = Batch([Insert("abc"), Retain(10), Delete(2), Insert({"image": "x"})])
        assert batch_size(batch) == 6

    def test_code_point_length(self):
        assert Insert("h\u00e9llo\U0001F600").length == 6

    def test_has_formatting(self):
        assert not Batch([Insert("a"), Retain(2)]).has_formatting()
        assert Batch([Insert("a"), Retain(2, {"bold": True})]).has_formatting()

    def test_iterates_operations(self):
        ops = [Insert("a"), Delete(1)]
        assert list(Batch(ops)) == ops
        assert len(Batch(ops)) == 2


# ===========================================================================
# 3. Attribute merge
# ===========================================================================


class TestMergeAttributes:
    def test_null_removes_key(self):
        assert merge_attributes({"bold": True}, {"italic": True, "bold": None}) == {"italic": True}

    def test_both_absent(self):
        assert merge_attributes(None, None) is None

    def test_one_side_copied(self):
        base = {"bold": True}
        merged = merge_attributes(base, None)
        assert merged == base
        assert merged is not base

    def test_modifier_wins(self):
        assert merge_attributes({"color": "red"}, {"color": "blue"}) == {"color": "blue"}


# ===========================================================================
# 4. Cursor
# ===========================================================================


class TestBatchCursor:
    def test_splits_text_keeping_attributes(self):
        cursor = BatchCursor([Insert("Hello", {"bold": True})])

        first = cursor.next(2)
        rest = cursor.next()

        assert first == Insert("He", {"bold": True})
        assert rest == Insert("llo", {"bold": True})
        assert not cursor.has_next()

    def test_peek_length_tracks_offset(self):
        cursor = BatchCursor([Retain(5), Delete(3)])
        cursor.next(2)
        assert cursor.peek_length() == 3
        cursor.next()
        assert cursor.peek() == Delete(3)

    def test_skip_crosses_operations(self):
        cursor = BatchCursor([Insert("ab"), Insert("cd")])
        cursor.skip(3)
        assert cursor.next() == Insert("d")

    def test_splits_on_code_points(self):
        cursor = BatchCursor([Insert("a\U0001F600b")])
        assert cursor.next(2) == Insert("a\U0001F600")
        assert cursor.next() == Insert("b")

    def test_exhausted_cursor_raises(self):
        with pytest.raises(StopIteration):
            BatchCursor([]).next()


# ===========================================================================
# 5. Compose
# ===========================================================================


class TestCompose:
    def test_identity(self):
        """Composing with the empty batch returns the batch unchanged."""
        batch = parse_batch({
            "ops": [
                {"insert": "Hello", "attributes": {"bold": True}},
                {"retain": 4},
                {"delete": 2},
                {"insert": {"image": "a.png"}},
            ]
        })
        assert compose(batch, Batch()) == batch

    def test_hello_world(self):
        result = compose(parse_batch({"ops": [{"insert": "Hello"}]}), parse_batch({"ops": [{"insert": " World"}]}))
        assert result.to_dict() == {"ops": [{"insert": "Hello World"}]}

    def test_retain_with_attributes_reformats(self):
        base = parse_batch({"ops": [{"insert": "Hello World", "attributes": {"color": "red"}}]})
        applied = parse_batch({"ops": [{"retain": 5, "attributes": {"color": "blue"}}]})

        result = compose(base, applied)

        assert result.ops[0] == Insert("Hello", {"color": "blue"})

    def test_retain_without_attributes_keeps_formatting(self):
        base = parse_batch({"ops": [{"insert": "abc", "attributes": {"bold": True}}]})
        applied = parse_batch({"ops": [{"retain": 1}, {"insert": "X"}]})

        result = compose(base, applied)

        assert result.ops == [
            Insert("a", {"bold": True}),
            Insert("X"),
            Insert("bc", {"bold": True}),
        ]

    def test_insert_takes_active_context(self):
        base = parse_batch({"ops": [{"insert": "ab"}]})
        applied = parse_batch({"ops": [{"retain": 1, "attributes": {"italic": True}}, {"insert": "Z"}]})

        result = compose(base, applied)

        # "Z" joins the equally formatted "a" before it
        assert result.ops == [Insert("aZ", {"italic": True}), Insert("b", {"italic": True})]

    def test_delete_always_emitted(self):
        base = parse_batch({"ops": [{"insert": "Hello"}]})
        applied = parse_batch({"ops": [{"delete": 2}]})

        result = compose(base, applied)

        assert result.ops == [Delete(2), Insert("llo")]

    def test_retain_splits_astral_text(self):
        base = Batch([Insert("a\U0001F600b")])

        result = compose(base, Batch([Retain(2)]))

        assert result.ops == [Insert("a\U0001F600"), Insert("b")]

    def test_trailing_newline_dropped(self):
        result = compose(Batch(), parse_batch({"ops": [{"insert": "\n"}]}))
        assert result.ops == []

    def test_compose_all(self):
        batches = [
            parse_batch({"ops": [{"insert": "Hello"}]}),
            parse_batch({"ops": [{"insert": " World"}]}),
            parse_batch({"ops": [{"insert": "!"}]}),
        ]
        assert compose_all(batches).ops == [Insert("Hello World!")]
