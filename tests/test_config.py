"""Tests for config loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from workbench.config import Settings, validate_settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults(monkeypatch):
    for name in ("WORKSPACE_ROOT", "COMMAND_TIMEOUT_S", "MAX_CAPTURE_BYTES", "GIT_REMOTE"):
        monkeypatch.delenv(name, raising=False)
    s = _settings()
    assert s.WORKSPACE_ROOT == "/workspace/project"
    assert s.GIT_REMOTE == "origin"
    assert s.timeout_s == 600.0
    assert s.max_capture_bytes == 5_000_000
    assert s.RESOLVE_SYMLINKS is False


def test_env_vars_loaded(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("WORKSPACE_ROOT", str(tmp_path))
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")
    monkeypatch.setenv("OUTPUT_MAX_LINES", "50")
    s = _settings()
    assert s.WORKSPACE_ROOT == str(tmp_path)
    assert s.GITHUB_TOKEN == "ghp_secret"
    assert s.OUTPUT_MAX_LINES == 50


def test_zero_disables_ceilings(monkeypatch):
    monkeypatch.setenv("COMMAND_TIMEOUT_S", "0")
    monkeypatch.setenv("MAX_CAPTURE_BYTES", "0")
    s = _settings()
    assert s.timeout_s is None
    assert s.max_capture_bytes is None


def test_negative_timeout_rejected(monkeypatch):
    monkeypatch.setenv("COMMAND_TIMEOUT_S", "-5")
    with pytest.raises(ValidationError):
        _settings()


def test_validate_existing_root(tmp_path: Path):
    assert validate_settings(_settings(WORKSPACE_ROOT=str(tmp_path))) == []


def test_validate_missing_root(tmp_path: Path):
    missing = tmp_path / "nope"
    problems = validate_settings(_settings(WORKSPACE_ROOT=str(missing)))
    assert problems == [f"WORKSPACE_ROOT does not exist: {missing}"]


def test_validate_root_is_file(tmp_path: Path):
    target = tmp_path / "file.txt"
    target.write_text("", encoding="utf-8")
    problems = validate_settings(_settings(WORKSPACE_ROOT=str(target)))
    assert problems == [f"WORKSPACE_ROOT is not a directory: {target}"]
