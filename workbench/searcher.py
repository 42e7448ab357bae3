"""Workspace search -- path matching and ripgrep-powered content search.

``search_entries`` walks the workspace breadth-first and matches a regular
expression against each relative path.  ``search_content`` shells out to
ripgrep (``rg``) when available; otherwise a pure-Python ``re`` walk emits
lines in the same ``path:line:column:text`` format.  The fallback is not
a full substitute: it skips hidden entries, ``SKIP_DIRS`` and binary files
but does not read ``.gitignore``, so it can report matches ripgrep would
ignore, and it uses Python ``re`` syntax.  Both content paths return a
``CommandResult`` with ripgrep's exit-code convention (0 = matches,
1 = no matches, 2 = error).
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from collections import deque
from pathlib import Path
from typing import Iterator

from workbench import runner
from workbench.contracts import CommandResult
from workbench.workspace import Workspace

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SKIP_DIRS: frozenset[str] = frozenset({".git", "node_modules", "build", "dist", "out"})

RG_NO_MATCHES: int = 1
RG_ERROR: int = 2

# ECMAScript-style flag letters accepted by search_entries
_FLAG_MAP: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
_IGNORED_FLAGS: frozenset[str] = frozenset("guyd")

# Module-level cache for ripgrep availability
_rg_available: bool | None = None


# ---------------------------------------------------------------------------
# Entry search
# ---------------------------------------------------------------------------


def compile_pattern(pattern: str, flags: str | None = None) -> re.Pattern[str]:
    """Compile *pattern* with ECMAScript-style *flags*.

    Raises
    ------
    ValueError
        ``"Invalid regular expression: ..."`` for a bad pattern, an unknown
        flag letter, or a repeated flag.
    """
    compiled_flags = 0
    seen: set[str] = set()
    for letter in flags or "":
        if letter in seen:
            raise ValueError(f"Invalid regular expression: duplicate flag '{letter}'")
        seen.add(letter)
        if letter in _FLAG_MAP:
            compiled_flags |= _FLAG_MAP[letter]
        elif letter not in _IGNORED_FLAGS:
            raise ValueError(f"Invalid regular expression: invalid flag '{letter}'")
    try:
        return re.compile(pattern, compiled_flags)
    except re.error as exc:
        raise ValueError(f"Invalid regular expression: {exc}") from exc


def search_entries(
    workspace: Workspace, pattern: str, flags: str | None = None
) -> list[tuple[str, str]]:
    """Return ``("dir" | "file", relative_path)`` for every matching entry.

    Directories in ``SKIP_DIRS`` are neither reported nor descended into.
    Results are in breadth-first order, sorted by name within a folder.
    """
    regex = compile_pattern(pattern, flags)
    results: list[tuple[str, str]] = []
    queue: deque[tuple[Path, str]] = deque([(workspace.root, "")])

    while queue:
        abs_dir, rel_dir = queue.popleft()
        with os.scandir(abs_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            rel = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
            if entry.is_dir(follow_symlinks=False):
                if entry.name in SKIP_DIRS:
                    continue
                if regex.search(rel):
                    results.append(("dir", rel))
                queue.append((Path(entry.path), rel))
                continue
            if regex.search(rel):
                results.append(("file", rel))

    return results


# ---------------------------------------------------------------------------
# Ripgrep detection
# ---------------------------------------------------------------------------


def _ripgrep_available() -> bool:
    """Check if ripgrep (``rg``) is available on PATH.  Cached."""
    global _rg_available  # noqa: PLW0603
    if _rg_available is None:
        _rg_available = shutil.which("rg") is not None
    return _rg_available


def _reset_rg_cache() -> None:
    """Reset the ripgrep availability cache (for testing)."""
    global _rg_available  # noqa: PLW0603
    _rg_available = None


# ---------------------------------------------------------------------------
# Content search
# ---------------------------------------------------------------------------


def resolve_search_target(workspace: Workspace, path: str | None) -> str:
    """Relative search target for *path* (``"."`` for the whole workspace).

    Raises ``SandboxViolation`` for an escaping path and
    ``FileNotFoundError`` for a missing one.
    """
    if not path:
        return "."
    resolved = workspace.resolve(path)
    if not resolved.exists():
        raise FileNotFoundError(f"No such file or directory: {path}")
    rel = workspace.relative(resolved)
    return rel or "."


def build_rg_args(pattern: str, target: str, flags: str | None = None) -> list[str]:
    args = [
        "--with-filename",
        "--line-number",
        "--column",
        "--no-heading",
        "--color",
        "never",
    ]
    if flags and "i" in flags:
        args.append("-i")
    args.extend(["--", pattern, target])
    return args


async def search_content(
    workspace: Workspace,
    pattern: str,
    flags: str | None = None,
    path: str | None = None,
    *,
    timeout_s: float | None = None,
    max_output_bytes: int | None = None,
) -> CommandResult:
    """Search file contents under *path* (default: the whole workspace)."""
    target = resolve_search_target(workspace, path)

    if _ripgrep_available():
        return await runner.run(
            "rg",
            build_rg_args(pattern, target, flags),
            workspace.root,
            timeout_s=timeout_s,
            max_output_bytes=max_output_bytes,
        )

    logger.debug("rg not found on PATH -- using the Python fallback")
    return await asyncio.to_thread(_search_python, workspace, pattern, target, flags)


def _iter_files(root: Path, target: str) -> Iterator[Path]:
    start = root / target
    if start.is_file():
        yield start
        return
    for dirpath, dirnames, filenames in os.walk(start):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for fname in sorted(filenames):
            if not fname.startswith("."):
                yield Path(dirpath) / fname


def _search_python(
    workspace: Workspace, pattern: str, target: str, flags: str | None
) -> CommandResult:
    """Pure-Python search using ``re`` and ``os.walk``."""
    try:
        regex = re.compile(pattern, re.IGNORECASE if flags and "i" in flags else 0)
    except re.error as exc:
        return CommandResult(stderr=f"regex parse error: {exc}", exit_code=RG_ERROR)

    root = workspace.root
    lines: list[str] = []
    for fpath in _iter_files(root, target):
        try:
            data = fpath.read_bytes()
        except OSError:
            continue
        if b"\x00" in data[:8192]:
            continue
        display = workspace.relative(fpath)
        if target == ".":
            display = f"./{display}"
        for lineno, text in enumerate(data.decode("utf-8", errors="replace").splitlines(), 1):
            m = regex.search(text)
            if m is not None:
                lines.append(f"{display}:{lineno}:{m.start() + 1}:{text}")

    if not lines:
        return CommandResult(exit_code=RG_NO_MATCHES)
    return CommandResult(stdout="\n".join(lines) + "\n", exit_code=0)
