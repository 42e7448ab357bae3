"""Shared test fixtures -- reduces boilerplate across test modules.

Provides:
- ``ws_dir`` / ``workspace`` -- a small workspace tree under ``tmp_path``
- ``git`` / ``npm`` -- client doubles whose command methods are ``AsyncMock``s
  returning a successful empty ``CommandResult`` by default
- ``ctx`` -- a ``ToolContext`` wiring the three together
"""

from __future__ import annotations

import shutil
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from workbench.adapters import ToolContext
from workbench.contracts import CommandResult
from workbench.git_client import GitClient
from workbench.npm_client import NpmClient
from workbench.workspace import Workspace


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------


def pytest_configure(config):
    """Register custom markers.

    Tests that drive a real ``git`` binary are decorated with
    ``@pytest.mark.integration`` and skipped when git is not on PATH.
    Run ``-m 'not integration'`` to skip them explicitly.
    """
    config.addinivalue_line(
        "markers",
        "integration: tests requiring external binaries (git)",
    )


def pytest_collection_modifyitems(items):
    """Skip ``integration`` tests when git is unavailable."""
    if shutil.which("git") is not None:
        return
    skip = pytest.mark.skip(reason="git not installed")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


@pytest.fixture()
def ws_dir(tmp_path: Path) -> Path:
    """Create a small workspace directory tree for testing."""
    root = tmp_path / "work"
    root.mkdir()
    (root / "src").mkdir()
    (root / "src" / "index.ts").write_text(
        "export const answer = 42;\nconsole.log(answer);\n", encoding="utf-8"
    )
    (root / "README.md").write_text("# Project\n", encoding="utf-8")
    (root / "package.json").write_text('{"name": "demo"}\n', encoding="utf-8")
    (root / "node_modules").mkdir()
    (root / "node_modules" / "dep.js").write_text("module.exports = 1;\n", encoding="utf-8")
    return root


@pytest.fixture()
def workspace(ws_dir: Path) -> Workspace:
    return Workspace(ws_dir)


# ---------------------------------------------------------------------------
# Client doubles
# ---------------------------------------------------------------------------

_GIT_METHODS = (
    "run_git", "status", "diff", "diff_refs", "log", "add", "commit", "push",
    "pull", "set_remote_url_from_credentials", "delete_branch",
    "create_and_push_branch", "apply_patch_file",
)
_NPM_METHODS = ("run_npm", "install_all", "install_package", "run_script", "run_build")


def _double(spec: type, methods: tuple[str, ...]) -> MagicMock:
    mock = MagicMock(spec=spec)
    for name in methods:
        setattr(mock, name, AsyncMock(return_value=CommandResult(exit_code=0)))
    return mock


@pytest.fixture()
def git() -> MagicMock:
    return _double(GitClient, _GIT_METHODS)


@pytest.fixture()
def npm() -> MagicMock:
    return _double(NpmClient, _NPM_METHODS)


@pytest.fixture()
def ctx(workspace: Workspace, git: MagicMock, npm: MagicMock) -> ToolContext:
    return ToolContext(workspace=workspace, git=git, npm=npm)
