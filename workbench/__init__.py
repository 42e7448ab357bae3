"""Workbench -- sandboxed workspace, git and npm operations for MCP agents.

Public API
----------
Contracts (Pydantic models)::

    CommandResult, ToolResponse,
    CommitOutcome (CommitSucceeded | CommitFailed),
    PatchOutcome (PatchApplied | PatchRejected),
    one *Request model per tool

Core::

    runner.run                    -- subprocess execution -> CommandResult
    output.format_output / format_failure
    Workspace                     -- path containment + file helpers
    GitClient, NpmClient          -- command construction
    committer.commit_and_push     -- stage -> commit -> push
    patcher.apply_patch           -- validate -> check -> apply

Tools::

    Registry, register_builtin_tools, ToolContext

Errors::

    WorkbenchError, SandboxViolation, CommandLaunchError,
    ConfigurationError, ToolNotFound, ToolFailed
"""

from workbench.adapters import ToolContext, register_builtin_tools
from workbench.committer import commit_and_push
from workbench.contracts import (
    CommandResult,
    CommitFailed,
    CommitOutcome,
    CommitSucceeded,
    PatchApplied,
    PatchOutcome,
    PatchRejected,
    ToolResponse,
)
from workbench.errors import (
    CommandLaunchError,
    ConfigurationError,
    SandboxViolation,
    ToolFailed,
    ToolNotFound,
    WorkbenchError,
)
from workbench.git_client import GitClient
from workbench.npm_client import NpmClient
from workbench.output import format_failure, format_output
from workbench.patcher import apply_patch, extract_patch_paths
from workbench.registry import Registry
from workbench.runner import run
from workbench.workspace import Workspace

__all__ = [
    "CommandLaunchError",
    "CommandResult",
    "CommitFailed",
    "CommitOutcome",
    "CommitSucceeded",
    "ConfigurationError",
    "GitClient",
    "NpmClient",
    "PatchApplied",
    "PatchOutcome",
    "PatchRejected",
    "Registry",
    "SandboxViolation",
    "ToolContext",
    "ToolFailed",
    "ToolNotFound",
    "ToolResponse",
    "WorkbenchError",
    "Workspace",
    "apply_patch",
    "commit_and_push",
    "extract_patch_paths",
    "format_failure",
    "format_output",
    "register_builtin_tools",
    "run",
]
