"""
Unit tests for models._validation module.

Tests:
- validate_int() rejects bools and values below minimum
- validate_str_not_empty()
- freeze_tags() / freeze_str_tuple() conversions and rejections
"""

import pytest

from zapstore.models._validation import (
    freeze_str_tuple,
    freeze_tags,
    validate_instance,
    validate_int,
    validate_str_not_empty,
)


class TestScalarValidators:
    def test_validate_int(self) -> None:
        validate_int(0, "n")
        with pytest.raises(TypeError, match="n must be an int, got bool"):
            validate_int(True, "n")
        with pytest.raises(ValueError, match="n must be >= 1"):
            validate_int(0, "n", minimum=1)

    def test_validate_str_not_empty(self) -> None:
        validate_str_not_empty("x", "id")
        with pytest.raises(ValueError, match="id must not be empty"):
            validate_str_not_empty("", "id")
        with pytest.raises(TypeError):
            validate_str_not_empty(None, "id")

    def test_validate_instance_article(self) -> None:
        with pytest.raises(TypeError, match="data must be a dict, got list"):
            validate_instance([], dict, "data")
        with pytest.raises(TypeError, match="value must be an int, got str"):
            validate_instance("1", int, "value")


class TestFreeze:
    """Tag and string-sequence freezing."""

    def test_freeze_tags(self) -> None:
        assert freeze_tags([["d", "com.example"], ["f"]], "tags") == (("d", "com.example"), ("f",))

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            ("d", "tags must be a list"),
            (["d"], r"tags\[0\] must be a list"),
            ([["d", 1]], r"tags\[0\] element must be a str"),
        ],
    )
    def test_freeze_tags_rejects(self, value: object, message: str) -> None:
        with pytest.raises(TypeError, match=message):
            freeze_tags(value, "tags")

    def test_freeze_str_tuple(self) -> None:
        assert freeze_str_tuple(["a", "b"], "authors") == ("a", "b")
        with pytest.raises(TypeError, match="authors must be a sequence of str"):
            freeze_str_tuple("ab", "authors")
