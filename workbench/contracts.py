"""Workbench contracts -- Pydantic models for results, outcomes and tool requests.

Every component communicates through these models.  All models are
frozen (immutable after creation).

Multi-outcome results (``CommitOutcome``, ``PatchOutcome``) are
discriminated unions keyed on ``kind``; consume them with ``match``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Command results
# ---------------------------------------------------------------------------


class CommandResult(BaseModel):
    """Captured outcome of one subprocess invocation.

    ``exit_code == 0`` is success; any other value is a command-level
    failure.  Launch failures never produce a ``CommandResult``.
    """

    model_config = ConfigDict(frozen=True)

    stdout: str = Field(default="", description="Captured stdout")
    stderr: str = Field(default="", description="Captured stderr")
    exit_code: int = Field(..., description="Process exit code (-1 if killed)")
    timed_out: bool = Field(
        default=False, description="True if the process was killed on timeout"
    )
    truncated: bool = Field(
        default=False, description="True if a stream hit the capture ceiling"
    )

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


# ---------------------------------------------------------------------------
# Commit-and-push outcome
# ---------------------------------------------------------------------------

CommitStep = Literal["stage", "commit", "push"]


class CommitSucceeded(BaseModel):
    """All steps completed, or the commit was a benign no-op."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["succeeded"] = "succeeded"
    outputs: list[str] = Field(
        default_factory=list, description="Formatted output per step, in order"
    )
    no_op: bool = False
    no_op_reason: str | None = None


class CommitFailed(BaseModel):
    """The first failing step and its verbatim result."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failed"] = "failed"
    step: CommitStep
    result: CommandResult


CommitOutcome = Annotated[
    Union[CommitSucceeded, CommitFailed], Field(discriminator="kind")
]


# ---------------------------------------------------------------------------
# Patch outcome
# ---------------------------------------------------------------------------

PatchStage = Literal["validate", "check", "apply"]


class PatchApplied(BaseModel):
    """The patch passed its check and (unless dry-run) was applied."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["applied"] = "applied"
    paths: list[str]
    dry_run: bool = False
    result: CommandResult


class PatchRejected(BaseModel):
    """The patch was refused at *stage*.

    ``result`` is ``None`` for ``validate`` (no subprocess ran).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["rejected"] = "rejected"
    stage: PatchStage
    message: str
    paths: list[str] = Field(default_factory=list)
    result: CommandResult | None = None


PatchOutcome = Annotated[
    Union[PatchApplied, PatchRejected], Field(discriminator="kind")
]


# ---------------------------------------------------------------------------
# Tool response
# ---------------------------------------------------------------------------


class ToolResponse(BaseModel):
    """Text payload returned by every tool, with an error flag.

    Use the ``ok`` / ``fail`` factory class methods for clean construction.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    text: str = ""
    duration_ms: int = 0

    @classmethod
    def ok(cls, text: str, *, duration_ms: int = 0) -> ToolResponse:
        """Create a successful response."""
        return cls(success=True, text=text, duration_ms=duration_ms)

    @classmethod
    def fail(cls, text: str, *, duration_ms: int = 0) -> ToolResponse:
        """Create a failure response."""
        return cls(success=False, text=text, duration_ms=duration_ms)


# ---------------------------------------------------------------------------
# Per-tool request models
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    """Base for tool requests: camelCase on the wire, unknown keys rejected."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _commit_message() -> Any:
    return Field(..., min_length=1, description="Commit message for git")


class ReadFileRequest(_Request):
    name: str = Field(..., min_length=1, description="File name inside the workspace folder")


class WriteFileRequest(_Request):
    name: str = Field(..., min_length=1, description="File name inside the workspace folder")
    content: str = Field(..., description="The content to write to the file")
    commit_message: str = _commit_message()


class DeleteFileRequest(_Request):
    name: str = Field(..., min_length=1, description="File name inside the workspace folder")
    commit_message: str = _commit_message()


class CreateFolderRequest(_Request):
    name: str = Field(..., min_length=1, description="Folder name inside the workspace folder")
    commit_message: str | None = Field(
        default=None, min_length=1, description="Optional commit message for git"
    )


class DeleteFolderRequest(_Request):
    name: str = Field(..., min_length=1, description="Folder name inside the workspace folder")
    commit_message: str = _commit_message()


class CopyFolderRequest(_Request):
    name: str = Field(
        ..., min_length=1, description="Existing folder name inside the workspace folder"
    )
    new_name: str = Field(
        ..., min_length=1, description="New folder name inside the workspace folder"
    )
    commit_message: str = _commit_message()


class ListDirRequest(_Request):
    name: str | None = Field(
        default=None, min_length=1, description="Folder name inside the workspace folder"
    )


class SearchEntriesRequest(_Request):
    pattern: str = Field(
        ..., min_length=1,
        description="Regular expression pattern to match against relative paths",
    )
    flags: str | None = Field(
        default=None,
        description="Optional regular expression flags, e.g. 'i' for case-insensitive",
    )


class SearchContentRequest(_Request):
    pattern: str = Field(..., min_length=1, description="Regular expression pattern to search")
    flags: str | None = Field(
        default=None,
        description="Optional regex flags (currently supports 'i' for ignore-case)",
    )
    path: str | None = Field(
        default=None, description="Optional path inside the workspace to scope the search"
    )


class ApplyPatchRequest(_Request):
    patch: str = Field(..., min_length=1, description="Unified diff (git-style)")
    dry_run: bool = Field(default=False, description="Validate without applying changes")
    reverse: bool = Field(default=False, description="Apply the patch in reverse")
    fuzz: int | None = Field(
        default=None, ge=0, description="Minimum number of context lines that must match"
    )
    commit_message: str = _commit_message()


class VcsStatusRequest(_Request):
    pass


class VcsDiffRequest(_Request):
    staged: bool = Field(default=False, description="Whether to show staged changes")
    file: str | None = Field(default=None, description="Specific file to diff")
    base: str | None = Field(default=None, description="Base ref to compare against")
    head: str | None = Field(default=None, description="Head ref to compare against")


class VcsLogRequest(_Request):
    limit: int = Field(default=10, ge=1, description="Number of commits to show")


class StartWorkRequest(_Request):
    branch: str = Field(..., min_length=1, description="Branch to create and push")
    current_working_directory: str = Field(
        ..., min_length=1, description="Folder holding package.json"
    )
    install_with_legacy_peer_dependencies: bool = Field(
        default=False,
        description="Use npm --legacy-peer-deps to bypass peer dependency conflicts.",
    )
    start_point: str | None = Field(
        default=None, min_length=1, description="Ref to branch from"
    )
    commit_message: str = _commit_message()


class InstallDependenciesRequest(_Request):
    current_working_directory: str = Field(
        ..., min_length=1, description="Folder holding package.json"
    )
    legacy_peer_deps: bool = Field(
        default=False,
        description="Use npm --legacy-peer-deps to bypass peer dependency conflicts.",
    )
    commit_message: str = _commit_message()


class InstallPackageRequest(_Request):
    current_working_directory: str = Field(
        ..., min_length=1, description="Folder holding package.json"
    )
    name: str = Field(
        ..., min_length=1,
        description="Package name or specifier (e.g. lodash or lodash@4.17.21)",
    )
    commit_message: str = _commit_message()


class RunBuildRequest(_Request):
    current_working_directory: str = Field(
        ..., min_length=1, description="Folder holding package.json"
    )
    commit_message: str = _commit_message()


class RunScriptRequest(_Request):
    current_working_directory: str = Field(
        ..., min_length=1, description="Folder holding package.json"
    )
    script: str = Field(..., min_length=1, description="Script name to run (e.g. test, lint)")
    commit_message: str = _commit_message()
