"""
Unit tests for core.yaml module.

Tests:
- load_yaml() with a valid mapping
- Empty files yield an empty dict
- Missing file, invalid YAML and non-mapping top level
"""

from pathlib import Path

import pytest

from zapstore.core.exceptions import ConfigurationError
from zapstore.core.yaml import load_yaml


class TestLoadYaml:
    def test_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("relays:\n  app: [wss://relay.zapstore.dev]\n")
        assert load_yaml(path) == {"relays": {"app": ["wss://relay.zapstore.dev"]}}

    def test_accepts_str_path(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("a: 1\n")
        assert load_yaml(str(path)) == {"a": 1}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert load_yaml(path) == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("relays: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_yaml(path)

    def test_unsafe_tag_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yaml"
        path.write_text("a: !!python/object/apply:os.system ['true']\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)
