"""Exceptions raised by workbench components.

A command that runs and exits non-zero is a ``CommandResult``, not an
exception.  What *is* raised: path containment failures, missing
configuration, programs that cannot be launched, and unknown tools.

Each exception keeps its inputs as attributes and a ``detail`` mapping
that ``to_dict()`` flattens for log records.
"""

from __future__ import annotations

from typing import Any


class WorkbenchError(Exception):
    """Root of the workbench exception tree."""

    message: str
    detail: dict[str, Any]

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = dict(detail) if detail else {}

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.__class__.__name__, "message": self.message} | self.detail


class SandboxViolation(WorkbenchError):
    """A caller-supplied path that the workspace refuses.

    With *reason* the message is ``Invalid path '<path>': <reason>``;
    without it, *attempted_path* is reported as lying outside the root.
    """

    def __init__(
        self,
        path: str,
        attempted_path: str | None = None,
        *,
        root: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.path = path
        self.attempted_path = str(attempted_path or "")
        self.root = root or ""
        self.reason = reason or ""

        explanation = self.reason or (
            f"resolved to '{self.attempted_path}' which is outside the workspace"
        )
        extras = {
            "attempted_path": self.attempted_path,
            "root": self.root,
            "reason": self.reason,
        }
        super().__init__(
            f"Invalid path {path!r}: {explanation}",
            detail={"path": path, **{k: v for k, v in extras.items() if v}},
        )


class CommandLaunchError(WorkbenchError):
    """A subprocess could not be started (missing binary, permissions...)."""

    def __init__(self, program: str, reason: str) -> None:
        self.program = program
        self.reason = reason
        super().__init__(
            f"Failed to launch '{program}': {reason}",
            detail={"program": program, "reason": reason},
        )


class ConfigurationError(WorkbenchError):
    """Required configuration is missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            f"Missing {' or '.join(missing)} environment variable.",
            detail={"missing": missing},
        )


class ToolNotFound(WorkbenchError):
    """Requested tool name is not registered."""

    def __init__(self, tool_name: str, available_tools: list[str]) -> None:
        self.tool_name = tool_name
        self.available_tools = available_tools
        super().__init__(
            f"Unknown tool '{tool_name}'. Available tools: {', '.join(available_tools)}",
            detail={"tool_name": tool_name, "available_tools": available_tools},
        )


class ToolFailed(WorkbenchError):
    """A tool produced an error payload.

    Raised by the MCP layer so the SDK marks the result with ``isError``.
    """

    def __init__(self, text: str, *, tool_name: str = "") -> None:
        self.tool_name = tool_name
        super().__init__(text, detail={"tool_name": tool_name})
