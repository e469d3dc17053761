"""Configuration loading for aumai-nickregistry."""

from __future__ import annotations

from pathlib import Path

from aumai_nickregistry.models import RegistryConfig


def default_config() -> RegistryConfig:
    """Return the default configuration."""
    return RegistryConfig()


def load_config(path: str) -> RegistryConfig:
    """Load a JSON configuration file.

    Raises:
        FileNotFoundError: if *path* does not exist.
        pydantic.ValidationError: if the file is not a valid configuration.
    """
    raw = Path(path).read_text(encoding="utf-8")
    return RegistryConfig.model_validate_json(raw)


def save_config(config: RegistryConfig, path: str) -> None:
    """Write *config* to *path* as indented JSON, creating parent directories."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(config.model_dump_json(indent=4), encoding="utf-8")


__all__ = ["default_config", "load_config", "save_config"]
