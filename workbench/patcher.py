"""Patch applier -- validate, check and apply unified diffs with ``git apply``.

Flow:

1. Extract the touched paths from the ``---`` / ``+++`` header lines.
2. Reject the patch if no paths were found or any path escapes the
   workspace.  Nothing has been written at this point.
3. Write the diff verbatim to a scratch directory.
4. ``git apply --check``; stop on failure.
5. Stop after the check on dry-run.
6. ``git apply``; a failure here may leave a partial apply behind -- the
   working tree is not rolled back.

The scratch directory is removed on every exit path.
"""

from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path

from workbench.contracts import PatchApplied, PatchOutcome, PatchRejected
from workbench.errors import SandboxViolation
from workbench.git_client import GitClient
from workbench.workspace import Workspace

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SCRATCH_PREFIX = "workbench-patch-"
PATCH_FILE_NAME = "patch.diff"

NO_PATHS_MESSAGE = "Patch does not include any file paths."
CHECK_FAILED_MESSAGE = "Patch check failed (context not found or file missing)."
APPLY_FAILED_MESSAGE = "Patch apply failed (partial apply possible)."

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_SIDE_PREFIX_RE = re.compile(r"^[ab]/")


# ---------------------------------------------------------------------------
# Path extraction
# ---------------------------------------------------------------------------


def _normalize_patch_path(raw: str) -> str | None:
    trimmed = raw.strip()
    if not trimmed or trimmed == "/dev/null":
        return None
    return _SIDE_PREFIX_RE.sub("", trimmed, count=1) or None


def extract_patch_paths(diff_text: str) -> list[str]:
    """Return the distinct paths named in the diff headers, first-seen order.

    ``a/`` and ``b/`` prefixes are stripped; ``/dev/null`` is dropped.
    Anything after the first whitespace on a header line (timestamps) is
    ignored.
    """
    paths: dict[str, None] = {}
    for line in _LINE_SPLIT_RE.split(diff_text):
        if not (line.startswith("--- ") or line.startswith("+++ ")):
            continue
        tokens = line[4:].split()
        if not tokens:
            continue
        normalized = _normalize_patch_path(tokens[0])
        if normalized:
            paths[normalized] = None
    return list(paths)


def validate_patch_paths(workspace: Workspace, paths: list[str]) -> str | None:
    """Return a rejection message, or ``None`` if every path is acceptable."""
    if not paths:
        return NO_PATHS_MESSAGE
    for patch_path in paths:
        try:
            workspace.resolve(patch_path)
        except SandboxViolation as exc:
            return f'Invalid patch path "{patch_path}": {exc}'
    return None


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


async def apply_patch(
    workspace: Workspace,
    git: GitClient,
    diff_text: str,
    *,
    dry_run: bool = False,
    reverse: bool = False,
    fuzz: int | None = None,
) -> PatchOutcome:
    """Validate and apply *diff_text* to the working copy.

    Returns ``PatchApplied`` (``dry_run=True`` when only checked) or
    ``PatchRejected`` naming the stage that refused it.  Launch failures
    of ``git`` propagate as ``CommandLaunchError``.
    """
    paths = extract_patch_paths(diff_text)
    problem = validate_patch_paths(workspace, paths)
    if problem:
        logger.warning("Patch rejected before apply: %s", problem)
        return PatchRejected(stage="validate", message=problem, paths=paths)

    with tempfile.TemporaryDirectory(prefix=SCRATCH_PREFIX) as scratch:
        patch_file = Path(scratch) / PATCH_FILE_NAME
        patch_file.write_text(diff_text, encoding="utf-8", newline="")

        checked = await git.apply_patch_file(patch_file, check=True, reverse=reverse, fuzz=fuzz)
        if not checked.ok:
            logger.info("git apply --check failed for %d path(s)", len(paths))
            return PatchRejected(
                stage="check", message=CHECK_FAILED_MESSAGE, paths=paths, result=checked
            )

        if dry_run:
            return PatchApplied(paths=paths, dry_run=True, result=checked)

        applied = await git.apply_patch_file(patch_file, reverse=reverse, fuzz=fuzz)
        if not applied.ok:
            logger.warning("git apply failed after a passing check (rc=%d)", applied.exit_code)
            return PatchRejected(
                stage="apply", message=APPLY_FAILED_MESSAGE, paths=paths, result=applied
            )

    logger.info("Applied patch touching %s", ", ".join(paths))
    return PatchApplied(paths=paths, result=applied)
