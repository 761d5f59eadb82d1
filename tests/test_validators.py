"""
Tests for batch and attribute validation.
"""

import pytest

from quillproof.delta import parse_batch
from quillproof.protocol import attributes, validators
from quillproof.protocol.errors import ValidationError
from quillproof.protocol.validators import validate_attributes, validate_batch


class TestValidateAttributes:
    def test_known_keys_type_checked(self):
        validate_attributes({"bold": True, "color": "#fff", "header": 2}, 0)

    @pytest.mark.parametrize(
        "attrs",
        [{"italic": "true"}, {"background": 1}, {"header": True}, {"header": "h1"}],
    )
    def test_wrong_types_rejected(self, attrs):
        with pytest.raises(ValidationError, match="Invalid value"):
            validate_attributes(attrs, 3)

    def test_null_allowed_for_known_keys(self):
        validate_attributes({"bold": None, "color": None, "header": None}, 0)

    def test_unknown_keys_pass_through(self):
        validate_attributes({"link": 42, "font": ["a"]}, 0)

    def test_empty_key_rejected(self):
        with pytest.raises(ValidationError, match="Empty attribute key at operation 1"):
            validate_attributes({"": True}, 1)


class TestValidateBatch:
    def test_valid_batch(self):
        validate_batch(parse_batch({"ops": [{"insert": "a"}, {"retain": 1}, {"delete": 1}]}))

    def test_empty_batch_rejected(self):
        with pytest.raises(ValidationError, match="no operations"):
            validate_batch(parse_batch({"ops": []}))

    def test_empty_string_insert_rejected(self):
        with pytest.raises(ValidationError, match="Empty string insert at index 0"):
            validate_batch(parse_batch({"ops": [{"insert": ""}]}))

    def test_empty_embed_rejected(self):
        with pytest.raises(ValidationError, match="Empty embed object"):
            validate_batch(parse_batch({"ops": [{"insert": {}}]}))

    @pytest.mark.parametrize("op", [{"delete": 0}, {"retain": 0}])
    def test_zero_length_rejected(self, op):
        with pytest.raises(ValidationError, match="Zero-length"):
            validate_batch(parse_batch({"ops": [{"insert": "a"}, op]}))

    def test_retain_attributes_checked(self):
        with pytest.raises(ValidationError, match="underline"):
            validate_batch(parse_batch({"ops": [{"retain": 2, "attributes": {"underline": 1}}]}))


class TestDeleteAttributes:
    def test_bad_delete_attributes_rejected_while_parsing(self):
        with pytest.raises(ValidationError, match="Invalid value for header at operation 1"):
            parse_batch({"ops": [{"insert": "a"}, {"delete": 1, "attributes": {"header": "h1"}}]})

    def test_empty_key_on_delete_rejected(self):
        with pytest.raises(ValidationError, match="Empty attribute key"):
            parse_batch({"ops": [{"delete": 1, "attributes": {"": True}}]})

    def test_shared_with_batch_validation(self):
        assert validators.validate_attributes is attributes.validate_attributes
