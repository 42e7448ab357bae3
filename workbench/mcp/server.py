"""MCP server wiring -- list_tools, call_tool, logging and stdio entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from workbench.adapters import ToolContext, register_builtin_tools
from workbench.config import VERSION, Settings, settings, validate_settings
from workbench.errors import ToolFailed
from workbench.git_client import GitClient
from workbench.npm_client import NpmClient
from workbench.registry import Registry
from workbench.workspace import Workspace

logger = logging.getLogger(__name__)

SERVER_NAME = "workbench"


# ── Logging ───────────────────────────────────────────────────────────────


class _ColorFormatter(logging.Formatter):
    """ANSI-colored log formatter for terminal output."""

    _COLORS = {
        logging.DEBUG:    "\033[36m",     # cyan
        logging.INFO:     "\033[32m",     # green
        logging.WARNING:  "\033[33m",     # yellow
        logging.ERROR:    "\033[31m",     # red
        logging.CRITICAL: "\033[1;31m",   # bold red
    }
    _RESET = "\033[0m"
    _DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelno, "")
        ts = self.formatTime(record, "%H:%M:%S")
        name = record.name.split(".")[-1][:20]
        msg = record.getMessage()
        return (
            f"{self._DIM}{ts}{self._RESET} "
            f"{color}{record.levelname:<8s}{self._RESET} "
            f"{self._DIM}[{name:>20s}]{self._RESET} "
            f"{color}{msg}{self._RESET}"
        )


class _PlainFormatter(logging.Formatter):
    """Plain-text formatter for file logs (no ANSI codes)."""

    def format(self, record: logging.LogRecord) -> str:
        ts = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        name = record.name.split(".")[-1][:20]
        return f"{ts} {record.levelname:<8s} [{name:>20s}] {record.getMessage()}"


def configure_logging(level: str = "INFO", log_file: str = "") -> list[logging.Handler]:
    """Route all logging to stderr (and *log_file* if set).

    stdout carries the MCP protocol and must never receive log lines.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ColorFormatter())
    handlers: list[logging.Handler] = [handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_path),
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(_PlainFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    return handlers


# ── Wiring ────────────────────────────────────────────────────────────────


def build_context(s: Settings) -> ToolContext:
    """Construct the workspace and clients from *s*."""
    workspace = Workspace(s.WORKSPACE_ROOT, resolve_symlinks=s.RESOLVE_SYMLINKS)
    git = GitClient(
        workspace.root,
        project_repo=s.PROJECT_REPO,
        access_token=s.GITHUB_TOKEN,
        remote=s.GIT_REMOTE,
        timeout_s=s.timeout_s,
        max_output_bytes=s.max_capture_bytes,
    )
    npm = NpmClient(
        workspace,
        npm_command=s.NPM_COMMAND or None,
        timeout_s=s.timeout_s,
        max_output_bytes=s.max_capture_bytes,
    )
    return ToolContext(
        workspace=workspace,
        git=git,
        npm=npm,
        max_lines=s.OUTPUT_MAX_LINES,
        timeout_s=s.timeout_s,
        max_output_bytes=s.max_capture_bytes,
    )


def tool_definitions(registry: Registry) -> list[Tool]:
    """Declare all registered tools."""
    return [Tool(**defn) for defn in registry.list_tools()]


async def handle_call_tool(
    registry: Registry, ctx: ToolContext, name: str, arguments: dict[str, Any] | None
) -> list[TextContent]:
    """Dispatch one invocation; error payloads are raised as ``ToolFailed``.

    The MCP SDK converts any exception raised from a ``call_tool`` handler
    into a result with ``isError`` set and the exception text as content.
    """
    response = await registry.dispatch(name, arguments or {}, ctx)
    logger.info(
        "%s -> %s (%dms)", name, "ok" if response.success else "error", response.duration_ms
    )
    if not response.success:
        raise ToolFailed(response.text, tool_name=name)
    return [TextContent(type="text", text=response.text)]


def build_server(registry: Registry, ctx: ToolContext) -> Server:
    server = Server(SERVER_NAME, version=VERSION)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return tool_definitions(registry)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        return await handle_call_tool(registry, ctx, name, arguments)

    return server


# ── Entry point ───────────────────────────────────────────────────────────


async def main(s: Settings = settings) -> None:
    """Run the MCP server over stdio."""
    configure_logging(s.LOG_LEVEL, s.LOG_FILE)

    problems = validate_settings(s)
    if problems:
        for problem in problems:
            logger.error(problem)
        raise SystemExit(1)

    missing = [
        name
        for name, value in (("PROJECT_REPO", s.PROJECT_REPO), ("GITHUB_TOKEN", s.GITHUB_TOKEN))
        if not value
    ]
    if missing:
        logger.warning("%s not set -- start_work will fail", " and ".join(missing))

    ctx = build_context(s)
    registry = Registry()
    register_builtin_tools(registry)
    server = build_server(registry, ctx)

    logger.info(
        "Workbench MCP %s serving %d tools for %s",
        VERSION, len(registry.tool_names()), ctx.workspace.root,
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())
