"""Tests for workbench.mcp.server -- wiring, call handling and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from mcp.types import TextContent, Tool

from workbench.adapters import ToolContext, register_builtin_tools
from workbench.config import Settings
from workbench.errors import ToolFailed, ToolNotFound
from workbench.git_client import GitClient
from workbench.mcp.server import (
    SERVER_NAME,
    build_context,
    build_server,
    configure_logging,
    handle_call_tool,
    tool_definitions,
)
from workbench.npm_client import NpmClient
from workbench.registry import Registry


@pytest.fixture()
def registry() -> Registry:
    r = Registry()
    register_builtin_tools(r)
    return r


@pytest.fixture()
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------


class TestHandleCallTool:
    @pytest.mark.asyncio
    async def test_success_is_text_content(self, registry: Registry, ctx: ToolContext):
        content = await handle_call_tool(registry, ctx, "read_file", {"name": "README.md"})
        assert content == [TextContent(type="text", text="# Project\n")]

    @pytest.mark.asyncio
    async def test_failure_raises(self, registry: Registry, ctx: ToolContext):
        with pytest.raises(ToolFailed) as exc_info:
            await handle_call_tool(registry, ctx, "read_file", {"name": "../x"})
        assert str(exc_info.value).startswith("Error reading file: Invalid path '../x'")
        assert exc_info.value.tool_name == "read_file"

    @pytest.mark.asyncio
    async def test_none_arguments(self, registry: Registry, ctx: ToolContext, git):
        git.status.return_value = git.status.return_value.model_copy(
            update={"stdout": "clean\n"}
        )
        content = await handle_call_tool(registry, ctx, "vcs_status", None)
        assert content[0].text == "clean\n"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry: Registry, ctx: ToolContext):
        with pytest.raises(ToolNotFound):
            await handle_call_tool(registry, ctx, "format_disk", {})


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def test_tool_definitions(registry: Registry):
    tools = tool_definitions(registry)
    assert len(tools) == 18
    assert all(isinstance(t, Tool) for t in tools)
    by_name = {t.name: t for t in tools}
    assert "commitMessage" in by_name["write_file"].inputSchema["required"]


def test_build_context(tmp_path: Path):
    s = Settings(
        _env_file=None,
        WORKSPACE_ROOT=str(tmp_path),
        PROJECT_REPO="github.com/acme/widgets",
        GITHUB_TOKEN="tok",
        COMMAND_TIMEOUT_S=0,
        OUTPUT_MAX_LINES=40,
    )
    ctx = build_context(s)
    assert ctx.workspace.root == tmp_path.resolve()
    assert isinstance(ctx.git, GitClient)
    assert isinstance(ctx.npm, NpmClient)
    assert ctx.max_lines == 40
    assert ctx.timeout_s is None


def test_build_server(registry: Registry, ctx: ToolContext):
    server = build_server(registry, ctx)
    assert server.name == SERVER_NAME


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_stderr_only(self, restore_logging):
        handlers = configure_logging("debug")
        assert len(handlers) == 1
        assert logging.getLogger().level == logging.DEBUG

    def test_file_handler(self, tmp_path: Path, restore_logging):
        log_file = tmp_path / "logs" / "workbench.log"
        handlers = configure_logging("INFO", str(log_file))
        assert len(handlers) == 2

        logging.getLogger("workbench.test").info("hello %s", "file")
        for handler in handlers:
            handler.flush()

        text = log_file.read_text(encoding="utf-8")
        assert "INFO" in text
        assert "hello file" in text
        assert "\033[" not in text

    def test_unknown_level_defaults_to_info(self, restore_logging):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------


def test_mcp_dependency_capped_below_2():
    """The low-level Server decorators used here do not exist in mcp 2.x."""
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    text = pyproject.read_text(encoding="utf-8")
    assert '"mcp>=1.6,<2"' in text


def test_server_exposes_decorators():
    from mcp.server import Server

    server = Server("decorator-check")
    assert callable(server.list_tools)
    assert callable(server.call_tool)
