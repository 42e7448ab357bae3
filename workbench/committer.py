"""Commit-and-push orchestration.

Strictly linear: stage -> commit -> push, stopping at the first failing
step.  A commit that fails only because nothing was staged is a benign
no-op: the outcome is a success and push is skipped.
"""

from __future__ import annotations

import logging
import re

from workbench.contracts import CommandResult, CommitFailed, CommitOutcome, CommitSucceeded
from workbench.git_client import GitClient
from workbench.output import DEFAULT_MAX_LINES, format_output

logger = logging.getLogger(__name__)

NO_CHANGES_REASON = "No changes to commit."

_NO_CHANGES_RE = re.compile(r"nothing to commit|no changes added to commit", re.IGNORECASE)


def is_no_changes_commit(result: CommandResult) -> bool:
    """True if *result* is a commit refused only for lack of staged changes."""
    return bool(_NO_CHANGES_RE.search(f"{result.stdout}\n{result.stderr}"))


def _collect(results: list[CommandResult], max_lines: int) -> list[str]:
    formatted = (format_output(r, max_lines) for r in results)
    return [text for text in formatted if text]


async def commit_and_push(
    git: GitClient,
    message: str,
    paths: list[str] | None = None,
    *,
    max_lines: int = DEFAULT_MAX_LINES,
) -> CommitOutcome:
    """Stage *paths* (or everything), commit with *message*, push.

    Returns ``CommitSucceeded`` with the formatted output of every step
    that ran, or ``CommitFailed`` carrying the failing step's result
    verbatim.
    """
    staged = await git.add(paths)
    if not staged.ok:
        logger.warning("Staging failed (rc=%d)", staged.exit_code)
        return CommitFailed(step="stage", result=staged)

    committed = await git.commit(message)
    if not committed.ok:
        if is_no_changes_commit(committed):
            logger.info("Nothing to commit -- skipping push")
            return CommitSucceeded(
                outputs=_collect([staged, committed], max_lines),
                no_op=True,
                no_op_reason=NO_CHANGES_REASON,
            )
        logger.warning("Commit failed (rc=%d)", committed.exit_code)
        return CommitFailed(step="commit", result=committed)

    pushed = await git.push()
    if not pushed.ok:
        logger.warning("Push failed (rc=%d)", pushed.exit_code)
        return CommitFailed(step="push", result=pushed)

    logger.info("Committed and pushed: %s", message.splitlines()[0] if message else "")
    return CommitSucceeded(outputs=_collect([staged, committed, pushed], max_lines))
