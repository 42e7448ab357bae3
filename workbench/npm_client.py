"""npm client -- install and run-script commands inside the workspace.

The caller-supplied working directory is resolved against the workspace
before every invocation; a directory outside the workspace (or one that
does not exist) is rejected before npm is launched.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from workbench import runner
from workbench.contracts import CommandResult
from workbench.errors import SandboxViolation
from workbench.workspace import Workspace

logger = logging.getLogger(__name__)


def default_npm_command() -> str:
    return "npm.cmd" if sys.platform == "win32" else "npm"


class NpmClient:
    """npm operations scoped to folders inside *workspace*."""

    def __init__(
        self,
        workspace: Workspace,
        *,
        npm_command: str | None = None,
        timeout_s: float | None = None,
        max_output_bytes: int | None = None,
    ) -> None:
        self.workspace = workspace
        self.npm_command = npm_command or default_npm_command()
        self._timeout_s = timeout_s
        self._max_output_bytes = max_output_bytes

    def resolve_cwd(self, cwd: str) -> Path:
        """Resolve *cwd* inside the workspace; it must be an existing folder."""
        target = self.workspace.resolve(cwd)
        if not target.is_dir():
            raise SandboxViolation(
                path=cwd,
                root=str(self.workspace.root),
                reason="Working directory does not exist or is not a folder",
            )
        return target

    async def run_npm(self, cwd: str, args: list[str]) -> CommandResult:
        target = self.resolve_cwd(cwd)
        logger.info("npm %s (cwd=%s)", " ".join(args), self.workspace.relative(target))
        return await runner.run(
            self.npm_command,
            args,
            target,
            timeout_s=self._timeout_s,
            max_output_bytes=self._max_output_bytes,
        )

    async def install_all(self, cwd: str, *, legacy_peer_deps: bool = False) -> CommandResult:
        """``npm install`` including dev dependencies."""
        args = ["install", "--include=dev"]
        if legacy_peer_deps:
            args.append("--legacy-peer-deps")
        return await self.run_npm(cwd, args)

    async def install_package(self, cwd: str, package: str) -> CommandResult:
        return await self.run_npm(cwd, ["install", package])

    async def run_script(self, cwd: str, script: str) -> CommandResult:
        return await self.run_npm(cwd, ["run", script])

    async def run_build(self, cwd: str) -> CommandResult:
        return await self.run_script(cwd, "build")
