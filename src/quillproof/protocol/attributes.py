from typing import Any, Mapping

from .errors import ValidationError

BOOLEAN_KEYS = frozenset({"bold", "italic", "underline", "strike"})
STRING_KEYS = frozenset({"color", "background"})
NUMERIC_KEYS = frozenset({"header"})


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_attributes(attrs: Mapping[str, Any], op_index: int) -> None:
    for key, value in attrs.items():
        if not isinstance(key, str) or not key:
            raise ValidationError(f"Empty attribute key at operation {op_index}")

        # None removes the key when merged, so it is valid for every key
        if value is None:
            continue

        if key in BOOLEAN_KEYS and not isinstance(value, bool):
            raise ValidationError(f"Invalid value for {key} at operation {op_index}")
        if key in STRING_KEYS and not isinstance(value, str):
            raise ValidationError(f"Invalid value for {key} at operation {op_index}")
        if key in NUMERIC_KEYS and not _is_number(value):
            raise ValidationError(f"Invalid value for header at operation {op_index}")
