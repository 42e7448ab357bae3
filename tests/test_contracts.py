"""Tests for workbench.contracts and workbench.errors."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from workbench.contracts import (
    CommandResult,
    CommitFailed,
    CommitOutcome,
    CommitSucceeded,
    CopyFolderRequest,
    PatchOutcome,
    PatchRejected,
    StartWorkRequest,
    ToolResponse,
    WriteFileRequest,
)
from workbench.errors import (
    CommandLaunchError,
    ConfigurationError,
    SandboxViolation,
    ToolNotFound,
    WorkbenchError,
)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestCommandResult:
    def test_ok(self):
        assert CommandResult(exit_code=0).ok is True
        assert CommandResult(exit_code=2).ok is False

    def test_frozen(self):
        result = CommandResult(exit_code=0)
        with pytest.raises(ValidationError):
            result.exit_code = 1


class TestRequests:
    def test_camel_case_aliases(self):
        req = CopyFolderRequest.model_validate(
            {"name": "src", "newName": "lib", "commitMessage": "copy"}
        )
        assert req.new_name == "lib"
        assert req.commit_message == "copy"

    def test_extra_key_forbidden(self):
        with pytest.raises(ValidationError):
            WriteFileRequest.model_validate(
                {"name": "a", "content": "", "commitMessage": "m", "force": True}
            )

    def test_empty_commit_message_rejected(self):
        with pytest.raises(ValidationError):
            WriteFileRequest.model_validate({"name": "a", "content": "", "commitMessage": ""})

    def test_empty_content_allowed(self):
        req = WriteFileRequest.model_validate({"name": "a", "content": "", "commitMessage": "m"})
        assert req.content == ""

    def test_start_work_defaults(self):
        req = StartWorkRequest.model_validate(
            {"branch": "b", "currentWorkingDirectory": ".", "commitMessage": "m"}
        )
        assert req.install_with_legacy_peer_dependencies is False
        assert req.start_point is None


class TestOutcomeUnions:
    def test_commit_outcome_discriminator(self):
        adapter = TypeAdapter(CommitOutcome)
        failed = adapter.validate_python(
            {"kind": "failed", "step": "push", "result": {"exit_code": 1}}
        )
        assert isinstance(failed, CommitFailed)
        assert isinstance(adapter.validate_python({"kind": "succeeded"}), CommitSucceeded)

    def test_unknown_step_rejected(self):
        with pytest.raises(ValidationError):
            CommitFailed(step="rebase", result=CommandResult(exit_code=1))

    def test_patch_outcome_discriminator(self):
        outcome = TypeAdapter(PatchOutcome).validate_python(
            {"kind": "rejected", "stage": "validate", "message": "nope"}
        )
        assert outcome == PatchRejected(stage="validate", message="nope")


def test_tool_response_factories():
    assert ToolResponse.ok("fine").success is True
    failed = ToolResponse.fail("bad", duration_ms=3)
    assert failed.success is False
    assert failed.duration_ms == 3


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_sandbox_violation_outside(self):
        exc = SandboxViolation("../x", "/elsewhere/x", root="/work")
        assert str(exc) == (
            "Invalid path '../x': resolved to '/elsewhere/x' which is outside the workspace"
        )
        assert exc.to_dict() == {
            "error": "SandboxViolation",
            "message": str(exc),
            "path": "../x",
            "attempted_path": "/elsewhere/x",
            "root": "/work",
        }

    def test_sandbox_violation_reason(self):
        exc = SandboxViolation("", root="/work", reason="Path is empty")
        assert str(exc) == "Invalid path '': Path is empty"

    def test_launch_error(self):
        exc = CommandLaunchError("rg", "No such file or directory")
        assert str(exc) == "Failed to launch 'rg': No such file or directory"
        assert isinstance(exc, WorkbenchError)

    def test_configuration_error(self):
        exc = ConfigurationError(["PROJECT_REPO", "GITHUB_TOKEN"])
        assert str(exc) == "Missing PROJECT_REPO or GITHUB_TOKEN environment variable."
        assert ConfigurationError(["GITHUB_TOKEN"]).missing == ["GITHUB_TOKEN"]

    def test_tool_not_found(self):
        exc = ToolNotFound("nope", ["read_file", "write_file"])
        assert str(exc) == "Unknown tool 'nope'. Available tools: read_file, write_file"
