"""Git client -- thin command-construction layer over the runner.

Every method returns the ``CommandResult`` of the git invocation; exit
codes are inspected by callers.  Compound operations stop at the first
failing step and return that step's result unchanged.

Credential strategy
-------------------
``set_remote_url_from_credentials`` embeds the configured access token in
the ``origin`` URL (the push/pull flow relies on it).  The token is never
logged; log lines show the credential-free location only.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from workbench import runner
from workbench.contracts import CommandResult
from workbench.errors import ConfigurationError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://")
_CREDENTIALS_RE = re.compile(r"^[^@]+@")

# Never prompt for credentials -- a prompt would block the invocation forever.
_GIT_ENV: dict[str, str] = {"GIT_TERMINAL_PROMPT": "0"}


def strip_location(repo: str) -> str:
    """Drop scheme, embedded credentials and trailing slashes from *repo*."""
    location = _SCHEME_RE.sub("", repo.strip())
    location = _CREDENTIALS_RE.sub("", location)
    return location.rstrip("/")


def build_authenticated_url(repo: str, token: str) -> str:
    """Return ``https://<token>@<location>`` for *repo*."""
    return f"https://{token}@{strip_location(repo)}"


class GitClient:
    """Git operations against a fixed working copy.

    Parameters
    ----------
    root:
        Working copy directory (the workspace root).
    project_repo, access_token:
        Credentials consumed only by ``set_remote_url_from_credentials``.
    remote:
        Remote name used by push, branch push and set-url.
    timeout_s, max_output_bytes:
        Ceilings forwarded to ``runner.run``.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        project_repo: str = "",
        access_token: str = "",
        remote: str = "origin",
        timeout_s: float | None = None,
        max_output_bytes: int | None = None,
    ) -> None:
        self.root = Path(root)
        self.remote = remote
        self._project_repo = project_repo
        self._access_token = access_token
        self._timeout_s = timeout_s
        self._max_output_bytes = max_output_bytes

    async def run_git(self, args: list[str]) -> CommandResult:
        """Run ``git <args>`` in the working copy."""
        return await runner.run(
            "git",
            args,
            self.root,
            env=_GIT_ENV,
            timeout_s=self._timeout_s,
            max_output_bytes=self._max_output_bytes,
        )

    # -- Queries ------------------------------------------------------------

    async def status(self) -> CommandResult:
        return await self.run_git(["status"])

    async def diff(self, *, staged: bool = False, file: str | None = None) -> CommandResult:
        args = ["diff"]
        if staged:
            args.append("--staged")
        if file:
            args.extend(["--", file])
        return await self.run_git(args)

    async def diff_refs(self, base: str, head: str, *, file: str | None = None) -> CommandResult:
        """Diff *head* against its merge base with *base* (``base...head``)."""
        args = ["diff", f"{base}...{head}"]
        if file:
            args.extend(["--", file])
        return await self.run_git(args)

    async def log(self, limit: int = 10) -> CommandResult:
        return await self.run_git(["log", "-n", str(limit)])

    # -- Staging / commit / sync --------------------------------------------

    async def add(self, paths: list[str] | None = None) -> CommandResult:
        """Stage *paths* (additions, modifications and removals), or everything."""
        if paths:
            return await self.run_git(["add", "-A", "--", *paths])
        return await self.run_git(["add", "-A"])

    async def commit(self, message: str) -> CommandResult:
        return await self.run_git(["commit", "-m", message])

    async def push(self, remote: str | None = None, branch: str | None = None) -> CommandResult:
        args = ["push", remote or self.remote]
        if branch:
            args.append(branch)
        return await self.run_git(args)

    async def pull(self) -> CommandResult:
        return await self.run_git(["pull"])

    async def set_remote_url_from_credentials(self) -> CommandResult:
        """Point the remote at the configured repository with the token embedded.

        Raises
        ------
        ConfigurationError
            If the repository location or the access token is not configured.
            Nothing is executed in that case.
        """
        missing = [
            name
            for name, value in (
                ("PROJECT_REPO", self._project_repo),
                ("GITHUB_TOKEN", self._access_token),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

        url = build_authenticated_url(self._project_repo, self._access_token)
        logger.info(
            "Setting %s URL to https://***@%s", self.remote, strip_location(self._project_repo)
        )
        return await self.run_git(["remote", "set-url", self.remote, url])

    # -- Branches -----------------------------------------------------------

    async def delete_branch(self, branch: str, *, force: bool = False) -> CommandResult:
        return await self.run_git(["branch", "-D" if force else "-d", branch])

    async def create_and_push_branch(
        self, branch: str, start_point: str | None = None
    ) -> CommandResult:
        """Create and checkout *branch*, then push it upstream.

        If the checkout fails the push is never attempted and the checkout
        result is returned as-is.  On success the streams of both steps are
        concatenated.
        """
        create_args = ["checkout", "-b", branch]
        if start_point:
            create_args.append(start_point)
        created = await self.run_git(create_args)
        if not created.ok:
            logger.warning("git checkout -b %s failed (rc=%d)", branch, created.exit_code)
            return created

        pushed = await self.run_git(["push", "-u", self.remote, branch])
        if not pushed.ok:
            logger.warning("git push -u %s %s failed (rc=%d)", self.remote, branch, pushed.exit_code)
            return pushed

        return CommandResult(
            stdout=created.stdout + pushed.stdout,
            stderr=created.stderr + pushed.stderr,
            exit_code=0,
            truncated=created.truncated or pushed.truncated,
        )

    # -- Patches ------------------------------------------------------------

    async def apply_patch_file(
        self,
        patch_file: str | Path,
        *,
        check: bool = False,
        reverse: bool = False,
        fuzz: int | None = None,
    ) -> CommandResult:
        """Run ``git apply`` on *patch_file* (``--check`` validates only)."""
        args = ["apply"]
        if check:
            args.append("--check")
        if reverse:
            args.append("--reverse")
        if fuzz is not None:
            args.extend(["-C", str(fuzz)])
        args.append(str(patch_file))
        return await self.run_git(args)
