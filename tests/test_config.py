"""Tests for aumai_nickregistry.config."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from aumai_nickregistry.config import default_config, load_config, save_config
from aumai_nickregistry.models import RegistryConfig


class TestConfig:
    def test_default_config(self) -> None:
        config = default_config()
        assert config.serve_address == "127.0.0.1:8118"
        assert config.database_path.endswith(".db")

    def test_load_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"serve_address": "0.0.0.0:9000", "database_path": "/tmp/n.db"}),
            encoding="utf-8",
        )
        config = load_config(str(path))
        assert config.serve_address == "0.0.0.0:9000"
        assert config.database_path == "/tmp/n.db"

    def test_missing_keys_fall_back_to_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"database_path": "x.db"}), encoding="utf-8")
        assert load_config(str(path)).serve_address == "127.0.0.1:8118"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.json"))

    def test_malformed_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.json"
        config = RegistryConfig(database_path=str(tmp_path / "n.db"))
        save_config(config, str(path))
        assert load_config(str(path)) == config
