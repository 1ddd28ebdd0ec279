"""
Unit tests for models.filter module.

Tests:
- Field normalization (lists to tuples)
- Tag name validation (single ASCII letter)
- to_dict() wire form with ``#x`` keys and omitted unset fields
- Hashability
"""

import pytest

from zapstore.models.filter import Filter


class TestFilterNormalization:
    """Construction-time normalization and validation."""

    def test_lists_become_tuples(self) -> None:
        f = Filter(kinds=[32267], authors=["ab" * 32], tags={"d": ["x", "y"]})  # type: ignore[arg-type]
        assert f.kinds == (32267,)
        assert f.authors == ("ab" * 32,)
        assert f.tags == {"d": ("x", "y")}

    @pytest.mark.parametrize("name", ["dd", "", "1", "é"])
    def test_invalid_tag_name(self, name: str) -> None:
        with pytest.raises(ValueError, match="single letter"):
            Filter(tags={name: ("x",)})

    def test_uppercase_tag_name_allowed(self) -> None:
        assert Filter(tags={"A": ("x",)}).to_dict() == {"#A": ["x"]}

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            Filter(limit=-1)

    def test_bare_string_authors_rejected(self) -> None:
        with pytest.raises(TypeError):
            Filter(authors="ab" * 32)  # type: ignore[arg-type]

    def test_tags_read_only(self) -> None:
        source = {"p": ["x"]}
        f = Filter(tags=source)  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            f.tags["e"] = ("y",)  # type: ignore[index]
        source["e"] = ["y"]
        assert f.tags == {"p": ("x",)}
        assert hash(f) == hash(Filter(tags={"p": ("x",)}))


class TestFilterToDict:
    """NIP-01 wire form."""

    def test_empty(self) -> None:
        assert Filter().to_dict() == {}

    def test_full(self) -> None:
        f = Filter(
            kinds=(32267,),
            ids=("aa",),
            authors=("bb",),
            tags={"f": ("android-arm64-v8a",), "d": ("com.example",)},
            since=10,
            until=20,
            limit=12,
            search="wallet",
        )
        assert f.to_dict() == {
            "ids": ["aa"],
            "authors": ["bb"],
            "kinds": [32267],
            "#f": ["android-arm64-v8a"],
            "#d": ["com.example"],
            "since": 10,
            "until": 20,
            "limit": 12,
            "search": "wallet",
        }

    def test_zero_limit_kept(self) -> None:
        assert Filter(limit=0).to_dict() == {"limit": 0}


class TestFilterHash:
    """Filters are usable as dict keys."""

    def test_equal_filters_hash_equal(self) -> None:
        a = Filter(kinds=(1,), tags={"p": ("x",), "e": ("y",)})
        b = Filter(kinds=(1,), tags={"e": ("y",), "p": ("x",)})
        assert a == b
        assert hash(a) == hash(b)
