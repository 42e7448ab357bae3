"""Tool handlers -- one per exposed tool.

Each handler:
 1. Accepts a validated Pydantic request model and a ``ToolContext``.
 2. Drives the workspace / git / npm collaborators in sequence, stopping
    at the first failing step.
 3. Returns a ``ToolResponse`` carrying human-readable text.

Mutating tools finish with ``commit_and_push`` scoped to the paths they
touched.  Exceptions escaping a handler are turned into error responses
by the ``Registry`` using the label registered here.

Call ``register_builtin_tools(registry)`` to wire all tools into a
``Registry`` instance.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from workbench import searcher
from workbench.committer import NO_CHANGES_REASON, commit_and_push
from workbench.contracts import (
    ApplyPatchRequest,
    CommandResult,
    CommitFailed,
    CommitOutcome,
    CommitSucceeded,
    CopyFolderRequest,
    CreateFolderRequest,
    DeleteFileRequest,
    DeleteFolderRequest,
    InstallDependenciesRequest,
    InstallPackageRequest,
    ListDirRequest,
    PatchApplied,
    PatchRejected,
    ReadFileRequest,
    RunBuildRequest,
    RunScriptRequest,
    SearchContentRequest,
    SearchEntriesRequest,
    StartWorkRequest,
    ToolResponse,
    VcsDiffRequest,
    VcsLogRequest,
    VcsStatusRequest,
    WriteFileRequest,
)
from workbench.git_client import GitClient
from workbench.npm_client import NpmClient
from workbench.output import DEFAULT_MAX_LINES, format_failure, format_output
from workbench.patcher import apply_patch
from workbench.workspace import Workspace

if TYPE_CHECKING:
    from workbench.registry import Registry


@dataclass
class ToolContext:
    """Collaborators shared by every handler."""

    workspace: Workspace
    git: GitClient
    npm: NpmClient
    max_lines: int = DEFAULT_MAX_LINES
    timeout_s: float | None = None
    max_output_bytes: int | None = None


# ---------------------------------------------------------------------------
# Shared response builders
# ---------------------------------------------------------------------------


def _commit_response(
    outcome: CommitOutcome, headline: str, subject: str, max_lines: int
) -> ToolResponse:
    """Success text is *headline* plus every collected step output."""
    match outcome:
        case CommitFailed(step=step, result=result):
            return ToolResponse.fail(
                f"Error {step} {subject}.\n\n{format_failure(result, max_lines)}"
            )
        case CommitSucceeded(outputs=outputs, no_op=no_op, no_op_reason=reason):
            parts = [headline, *outputs]
            if no_op:
                parts.append(reason or NO_CHANGES_REASON)
            return ToolResponse.ok("\n\n".join(parts))


async def _commit_paths(
    ctx: ToolContext, message: str, paths: list[str] | None, headline: str, subject: str
) -> ToolResponse:
    outcome = await commit_and_push(ctx.git, message, paths, max_lines=ctx.max_lines)
    return _commit_response(outcome, headline, subject, ctx.max_lines)


def _query_response(result: CommandResult, what: str, max_lines: int) -> ToolResponse:
    if not result.ok:
        return ToolResponse.fail(f"Error {what}.\n\n{format_failure(result, max_lines)}")
    return ToolResponse.ok(result.stdout)


async def _npm_step_response(
    ctx: ToolContext,
    result: CommandResult,
    message: str,
    *,
    failure: str,
    completed: str,
    subject: str,
) -> ToolResponse:
    if not result.ok:
        return ToolResponse.fail(f"{failure}\n\n{format_failure(result, ctx.max_lines)}")
    headline = format_output(result, ctx.max_lines) or completed
    return await _commit_paths(ctx, message, None, headline, subject)


# ---------------------------------------------------------------------------
# File tools
# ---------------------------------------------------------------------------


async def _read_file(req: ReadFileRequest, ctx: ToolContext) -> ToolResponse:
    return ToolResponse.ok(ctx.workspace.read_file(req.name))


async def _write_file(req: WriteFileRequest, ctx: ToolContext) -> ToolResponse:
    ctx.workspace.write_file(req.name, req.content)
    return await _commit_paths(
        ctx, req.commit_message, [req.name], f"Successfully wrote to {req.name}.", req.name
    )


async def _delete_file(req: DeleteFileRequest, ctx: ToolContext) -> ToolResponse:
    ctx.workspace.delete_file(req.name)
    return await _commit_paths(
        ctx,
        req.commit_message,
        [req.name],
        f"Successfully deleted {req.name}.",
        f"deletion for {req.name}",
    )


async def _create_folder(req: CreateFolderRequest, ctx: ToolContext) -> ToolResponse:
    ctx.workspace.create_folder(req.name)
    headline = f"Successfully created {req.name}."
    if req.commit_message is None:
        return ToolResponse.ok(headline)
    return await _commit_paths(
        ctx, req.commit_message, [req.name], headline, f"folder creation for {req.name}"
    )


async def _delete_folder(req: DeleteFolderRequest, ctx: ToolContext) -> ToolResponse:
    ctx.workspace.delete_folder(req.name)
    return await _commit_paths(
        ctx,
        req.commit_message,
        [req.name],
        f"Successfully deleted {req.name}.",
        f"deletion for {req.name}",
    )


async def _copy_folder(req: CopyFolderRequest, ctx: ToolContext) -> ToolResponse:
    ctx.workspace.copy_folder(req.name, req.new_name)
    return await _commit_paths(
        ctx,
        req.commit_message,
        [req.new_name],
        f"Successfully copied {req.name} to {req.new_name}.",
        f"copy for {req.new_name}",
    )


async def _list_dir(req: ListDirRequest, ctx: ToolContext) -> ToolResponse:
    entries = ctx.workspace.list_entries(req.name)
    return ToolResponse.ok(
        "\n".join(f"{'dir' if is_dir else 'file'}\t{name}" for name, is_dir in entries)
    )


async def _search_entries(req: SearchEntriesRequest, ctx: ToolContext) -> ToolResponse:
    matches = await asyncio.to_thread(
        searcher.search_entries, ctx.workspace, req.pattern, req.flags
    )
    return ToolResponse.ok("\n".join(f"{kind}\t{path}" for kind, path in matches))


async def _search_content(req: SearchContentRequest, ctx: ToolContext) -> ToolResponse:
    result = await searcher.search_content(
        ctx.workspace,
        req.pattern,
        req.flags,
        req.path,
        timeout_s=ctx.timeout_s,
        max_output_bytes=ctx.max_output_bytes,
    )
    if result.exit_code == searcher.RG_NO_MATCHES:
        return ToolResponse.ok("No matches found.")
    if not result.ok:
        return ToolResponse.fail(
            f"Error searching content.\n\n{format_failure(result, ctx.max_lines)}"
        )
    return ToolResponse.ok(
        format_output(result, ctx.max_lines) or "Search completed with no output."
    )


async def _apply_patch(req: ApplyPatchRequest, ctx: ToolContext) -> ToolResponse:
    outcome = await apply_patch(
        ctx.workspace,
        ctx.git,
        req.patch,
        dry_run=req.dry_run,
        reverse=req.reverse,
        fuzz=req.fuzz,
    )
    match outcome:
        case PatchRejected(message=message, result=None):
            return ToolResponse.fail(message)
        case PatchRejected(message=message, result=result):
            return ToolResponse.fail(f"{message}\n\n{format_failure(result, ctx.max_lines)}")
        case PatchApplied(paths=paths, dry_run=True):
            files = "\n".join(paths)
            return ToolResponse.ok(f"Patch check succeeded (dry run).\n\nFiles:\n{files}")
        case PatchApplied(paths=paths, result=result):
            files = "\n".join(paths)
            headline = f"Patch applied successfully.\n\nFiles:\n{files}"
            output = format_output(result, ctx.max_lines)
            if output:
                headline = f"{headline}\n\n{output}"
            return await _commit_paths(ctx, req.commit_message, paths, headline, "patch changes")


# ---------------------------------------------------------------------------
# Version-control tools
# ---------------------------------------------------------------------------


async def _vcs_status(req: VcsStatusRequest, ctx: ToolContext) -> ToolResponse:
    result = await ctx.git.status()
    return _query_response(result, "getting repository status", ctx.max_lines)


async def _vcs_diff(req: VcsDiffRequest, ctx: ToolContext) -> ToolResponse:
    if req.base or req.head:
        if not (req.base and req.head):
            return ToolResponse.fail("Both base and head must be provided when diffing refs.")
        result = await ctx.git.diff_refs(req.base, req.head, file=req.file)
    else:
        result = await ctx.git.diff(staged=req.staged, file=req.file)
    return _query_response(result, "getting repository diff", ctx.max_lines)


async def _vcs_log(req: VcsLogRequest, ctx: ToolContext) -> ToolResponse:
    result = await ctx.git.log(req.limit)
    return _query_response(result, "getting commit log", ctx.max_lines)


async def _start_work(req: StartWorkRequest, ctx: ToolContext) -> ToolResponse:
    """set-url -> pull -> branch create/push -> install -> commit/push."""
    # Reject a bad install directory before anything touches the repository.
    ctx.npm.resolve_cwd(req.current_working_directory)

    steps = (
        ("Git remote set-url", ctx.git.set_remote_url_from_credentials),
        ("Git pull", ctx.git.pull),
        (
            "Git branch create/push",
            lambda: ctx.git.create_and_push_branch(req.branch, req.start_point),
        ),
        (
            "Dependency install",
            lambda: ctx.npm.install_all(
                req.current_working_directory,
                legacy_peer_deps=req.install_with_legacy_peer_dependencies,
            ),
        ),
    )

    reports: list[str] = []
    for label, step in steps:
        result = await step()
        if not result.ok:
            reports.append(
                f"Error during {label.lower()}.\n\n{format_failure(result, ctx.max_lines)}"
            )
            return ToolResponse.fail("\n\n".join(reports))
        output = format_output(result, ctx.max_lines)
        reports.append(f"{label} output:\n{output}" if output else f"{label} completed.")

    return await _commit_paths(
        ctx, req.commit_message, None, "\n\n".join(reports), "start-work changes"
    )


# ---------------------------------------------------------------------------
# Package-manager tools
# ---------------------------------------------------------------------------


async def _install_dependencies(
    req: InstallDependenciesRequest, ctx: ToolContext
) -> ToolResponse:
    result = await ctx.npm.install_all(
        req.current_working_directory, legacy_peer_deps=req.legacy_peer_deps
    )
    return await _npm_step_response(
        ctx,
        result,
        req.commit_message,
        failure="Error installing dependencies.",
        completed="Dependency install completed.",
        subject="dependency changes",
    )


async def _install_package(req: InstallPackageRequest, ctx: ToolContext) -> ToolResponse:
    result = await ctx.npm.install_package(req.current_working_directory, req.name)
    return await _npm_step_response(
        ctx,
        result,
        req.commit_message,
        failure=f"Error installing package {req.name}.",
        completed=f"Package install completed for {req.name}.",
        subject="package changes",
    )


async def _run_build(req: RunBuildRequest, ctx: ToolContext) -> ToolResponse:
    result = await ctx.npm.run_build(req.current_working_directory)
    return await _npm_step_response(
        ctx,
        result,
        req.commit_message,
        failure="Error running build script.",
        completed="Build script completed.",
        subject="build changes",
    )


async def _run_script(req: RunScriptRequest, ctx: ToolContext) -> ToolResponse:
    result = await ctx.npm.run_script(req.current_working_directory, req.script)
    return await _npm_step_response(
        ctx,
        result,
        req.commit_message,
        failure=f"Error running script {req.script}.",
        completed=f"Script {req.script} completed.",
        subject="script changes",
    )


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

# name -> (handler, request model, description, error label)
_BUILTIN_TOOLS = {
    "read_file": (
        _read_file, ReadFileRequest,
        "Read the content of a file in the workspace folder",
        "Error reading file",
    ),
    "write_file": (
        _write_file, WriteFileRequest,
        "Write content to a file in the workspace folder",
        "Error writing file",
    ),
    "delete_file": (
        _delete_file, DeleteFileRequest,
        "Delete a file from the workspace folder",
        "Error deleting file",
    ),
    "create_folder": (
        _create_folder, CreateFolderRequest,
        "Create a folder in the workspace folder",
        "Error creating folder",
    ),
    "delete_folder": (
        _delete_folder, DeleteFolderRequest,
        "Delete a folder from the workspace folder",
        "Error deleting folder",
    ),
    "copy_folder": (
        _copy_folder, CopyFolderRequest,
        "Copy a folder in the workspace folder",
        "Error copying folder",
    ),
    "list_dir": (
        _list_dir, ListDirRequest,
        "List files and folders in the workspace folder or a subfolder",
        "Error listing directory",
    ),
    "search_entries": (
        _search_entries, SearchEntriesRequest,
        "Search for files and folders in the workspace using a regular expression",
        "Error searching entries",
    ),
    "search_content": (
        _search_content, SearchContentRequest,
        "Search file contents in the workspace using ripgrep (rg)",
        "Error searching content",
    ),
    "apply_patch": (
        _apply_patch, ApplyPatchRequest,
        "Apply a unified diff patch in the workspace",
        "Error applying patch",
    ),
    "vcs_status": (
        _vcs_status, VcsStatusRequest,
        "Get the status of the repository",
        "Error getting repository status",
    ),
    "vcs_diff": (
        _vcs_diff, VcsDiffRequest,
        "Get repository diff",
        "Error getting repository diff",
    ),
    "vcs_log": (
        _vcs_log, VcsLogRequest,
        "Show commit log",
        "Error getting commit log",
    ),
    "start_work": (
        _start_work, StartWorkRequest,
        "Set remote URL from env, pull latest changes, create and push a branch, "
        "install dependencies, and commit/push the result",
        "Error starting work",
    ),
    "install_dependencies": (
        _install_dependencies, InstallDependenciesRequest,
        "Install all dependencies in the workspace",
        "Error installing dependencies",
    ),
    "install_package": (
        _install_package, InstallPackageRequest,
        "Install a single package in the workspace",
        "Error installing package",
    ),
    "run_build": (
        _run_build, RunBuildRequest,
        "Run the build script in the workspace",
        "Error running build script",
    ),
    "run_script": (
        _run_script, RunScriptRequest,
        "Run a script in the workspace",
        "Error running script",
    ),
}


def register_builtin_tools(registry: Registry) -> None:
    """Register every workspace, git and npm tool with a ``Registry``."""
    for name, (handler, model, description, label) in _BUILTIN_TOOLS.items():
        registry.register(name, handler, model, description, error_label=label)
