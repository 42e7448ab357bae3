"""Workspace -- path containment and thin file operations.

A single ``Workspace`` per server process is the sole authority for
turning caller-supplied names into absolute paths.  Every resolved path
must equal the root or lie beneath it; anything else raises
``SandboxViolation`` before the filesystem is touched.

Containment is a normalised string-prefix check.  Symlink targets are
only followed when the workspace is built with ``resolve_symlinks=True``.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from workbench.errors import SandboxViolation

logger = logging.getLogger(__name__)


class Workspace:
    """Workspace root with sandboxed path resolution and file helpers.

    Parameters
    ----------
    root : str | Path
        Path to the workspace root directory.  Must exist and be a
        directory.
    resolve_symlinks : bool
        Canonicalise candidate paths (following symlinks) before the
        containment check.

    Raises
    ------
    ValueError
        If *root* does not exist or is not a directory.
    """

    __slots__ = ("_root", "_root_str", "_resolve_symlinks")

    def __init__(self, root: str | Path, *, resolve_symlinks: bool = False) -> None:
        path = Path(root).resolve()
        if not path.exists():
            raise ValueError(f"Workspace root does not exist: {root}")
        if not path.is_dir():
            raise ValueError(f"Workspace root is not a directory: {root}")

        self._root: Path = path
        self._root_str: str = str(path)
        self._resolve_symlinks = resolve_symlinks

    # -- Properties ---------------------------------------------------------

    @property
    def root(self) -> Path:
        """Resolved absolute path to the workspace root."""
        return self._root

    # -- Path resolution ----------------------------------------------------

    def resolve(self, name: str) -> Path:
        """Resolve a relative (or absolute) *name* within the sandbox.

        ``..`` components are allowed as long as the normalised result
        stays inside the root, so ``"sub/../sub/file.txt"`` resolves to
        ``<root>/sub/file.txt`` while ``"../outside"`` is rejected.

        Raises
        ------
        SandboxViolation
            If the name is empty, contains null bytes, or resolves
            outside the root.
        """
        if not name:
            raise SandboxViolation(path="", root=self._root_str, reason="Path is empty")

        if "\x00" in name:
            raise SandboxViolation(
                path=name, root=self._root_str, reason="Path contains null bytes"
            )

        candidate = os.path.normpath(os.path.join(self._root_str, name))
        if self._resolve_symlinks:
            candidate = os.path.realpath(candidate)

        if not self.is_within(candidate):
            raise SandboxViolation(name, candidate, root=self._root_str)

        return Path(candidate)

    def is_within(self, path: str | Path) -> bool:
        """Sandbox membership check (no I/O).

        Uses ``os.path.normpath`` + string prefix comparison.
        """
        normalised = os.path.normpath(str(path))
        if normalised == self._root_str:
            return True
        return normalised.startswith(self._root_str.rstrip(os.sep) + os.sep)

    def relative(self, path: str | Path) -> str:
        """Forward-slash path of *path* relative to the root (``.`` for the root)."""
        rel = os.path.relpath(str(path), self._root_str)
        return rel.replace(os.sep, "/")

    # -- File operations ----------------------------------------------------

    def read_file(self, name: str) -> str:
        return self.resolve(name).read_text(encoding="utf-8")

    def write_file(self, name: str, content: str) -> Path:
        """Write *content*, creating missing parent folders."""
        target = self.resolve(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote %d chars to %s", len(content), target)
        return target

    def delete_file(self, name: str) -> None:
        self.resolve(name).unlink()

    def create_folder(self, name: str) -> Path:
        target = self.resolve(name)
        target.mkdir(parents=True, exist_ok=True)
        return target

    def delete_folder(self, name: str) -> None:
        """Remove a folder tree.  A missing folder is not an error."""
        target = self.resolve(name)
        if target == self._root:
            raise SandboxViolation(
                path=name, root=self._root_str, reason="Refusing to delete the workspace root"
            )
        if target.exists():
            shutil.rmtree(target)

    def copy_folder(self, source: str, destination: str) -> Path:
        """Copy a folder tree to a destination that must not yet exist."""
        src = self.resolve(source)
        dst = self.resolve(destination)
        if not src.is_dir():
            raise NotADirectoryError("Source path is not a folder.")
        if dst.exists():
            raise FileExistsError(f"Destination already exists: {destination}")
        shutil.copytree(src, dst, symlinks=True)
        return dst

    def list_entries(self, name: str | None = None) -> list[tuple[str, bool]]:
        """Return ``(entry_name, is_dir)`` pairs sorted by name."""
        target = self.resolve(name) if name else self._root
        with os.scandir(target) as it:
            return sorted((entry.name, entry.is_dir()) for entry in it)

    def __repr__(self) -> str:
        return f"Workspace(root={self._root_str!r})"
