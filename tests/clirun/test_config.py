"""Tests for runtime configuration loading.

These tests guard the single config ingestion boundary used by the console
entry point.
"""

from pathlib import Path

import pytest

from clirun.config import RuntimeConfig, load_runtime_config


def test_load_runtime_config_returns_runtime_config(tmp_path: Path) -> None:
    """A valid YAML mapping should be returned as `RuntimeConfig.raw`."""
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("paths:\n  lock_dir: /tmp\n", encoding="utf-8")

    cfg = load_runtime_config(cfg_path)

    assert isinstance(cfg, RuntimeConfig)
    assert cfg.raw["paths"]["lock_dir"] == "/tmp"


def test_load_runtime_config_rejects_non_mapping_top_level(tmp_path: Path) -> None:
    """Top-level YAML must be a mapping, not a list/scalar."""
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Config must be a mapping"):
        load_runtime_config(cfg_path)


def test_empty_file_means_defaults(tmp_path: Path) -> None:
    """An empty YAML document is an empty config."""
    cfg_path = tmp_path / "empty.yaml"
    cfg_path.write_text("", encoding="utf-8")

    assert load_runtime_config(cfg_path).raw == {}


def test_section_requires_mapping() -> None:
    """Sections are optional but must be mappings when present."""
    cfg = RuntimeConfig(raw={"logging": "loud"})

    assert cfg.section("paths") == {}
    with pytest.raises(ValueError, match="must be a mapping"):
        cfg.section("logging")
