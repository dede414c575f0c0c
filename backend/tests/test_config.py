"""Tests for the settings layer."""
from __future__ import annotations

from pathlib import Path

import pytest

from shared.config import Settings

from conftest import make_settings


def test_derived_paths_follow_data_dir(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    assert settings.log_config_path.parent == tmp_path
    assert settings.log_path.parent == tmp_path


def test_unused_switches_are_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("QSL_DEBUG", "true")
    settings = make_settings(tmp_path)
    assert "debug" not in Settings.model_fields
    assert not hasattr(settings, "debug")
