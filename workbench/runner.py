"""Command runner -- structured subprocess execution.

Provides ``run()`` for executing a program with an argument list and
returning a ``CommandResult``.  A process that starts and exits with any
code is a *result*; a process that cannot be started raises
``CommandLaunchError``.  Callers must not confuse the two.

Optional ceilings bound the wall-clock duration and the number of bytes
kept per stream.  Pipes are drained incrementally and only the last
*max_output_bytes* of each stream are ever held in memory.  No shell is
involved -- arguments are passed verbatim.
"""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import threading
import time
from functools import partial
from pathlib import Path
from typing import IO

from workbench.contracts import CommandResult
from workbench.errors import CommandLaunchError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TIMEOUT_EXIT_CODE: int = -1

_READ_CHUNK: int = 64 * 1024

# How long to wait for pipe readers after killing a timed-out child.
# Grandchildren that inherited the pipes can keep them open.
_DRAIN_GRACE_S: float = 5.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _TailBuffer:
    """Byte sink that keeps only the last *limit* bytes fed to it."""

    def __init__(self, limit: int | None) -> None:
        self.limit = limit
        self.data = bytearray()
        self.dropped = 0

    def feed(self, chunk: bytes) -> None:
        self.data += chunk
        if self.limit is not None and len(self.data) > self.limit:
            excess = len(self.data) - self.limit
            del self.data[:excess]
            self.dropped += excess


def _pump(pipe: IO[bytes], sink: _TailBuffer) -> None:
    with pipe:
        for chunk in iter(partial(pipe.read1, _READ_CHUNK), b""):
            sink.feed(chunk)


def _truncate_tail(
    data: bytes, max_bytes: int | None, dropped: int = 0
) -> tuple[str, bool]:
    """Decode the last *max_bytes* bytes of *data*.

    *dropped* counts bytes already discarded upstream.  When anything was
    discarded the result starts on a UTF-8 character boundary and carries a
    leading ``[... N bytes trimmed ...]`` notice, N being the true byte
    count.  Returns ``(text, truncated)``.  The tail is kept because
    failures are reported at the end of a stream.
    """
    if max_bytes is not None and len(data) > max_bytes:
        cut = len(data) - max_bytes
        data = data[cut:]
        dropped += cut
    if dropped:
        # Skip continuation bytes of a character split by the cut.
        lead = 0
        while lead < min(len(data), 3) and 0x80 <= data[lead] <= 0xBF:
            lead += 1
        data = data[lead:]
        dropped += lead
    text = data.decode("utf-8", errors="replace")
    if not dropped:
        return text, False
    return f"[... {dropped} bytes trimmed ...]\n{text}", True


def _build_env(extra: dict[str, str] | None) -> dict[str, str] | None:
    if not extra:
        return None
    return {**os.environ, **extra}


# ---------------------------------------------------------------------------
# Core runner
# ---------------------------------------------------------------------------


async def run(
    program: str,
    args: list[str],
    cwd: str | Path,
    *,
    env: dict[str, str] | None = None,
    timeout_s: float | None = None,
    max_output_bytes: int | None = None,
) -> CommandResult:
    """Execute *program* with *args* in *cwd* and return a ``CommandResult``.

    Parameters
    ----------
    program:
        Executable name or path (looked up on ``PATH``).
    args:
        Argument list, passed without shell interpretation.
    cwd:
        Working directory for the subprocess.
    env:
        Extra environment variables merged on top of the inherited ones.
    timeout_s:
        Wall-clock ceiling.  ``None`` waits indefinitely.  On expiry the
        child is killed and the result carries ``timed_out=True`` and
        exit code ``-1``.
    max_output_bytes:
        Per-stream capture ceiling in bytes.  ``None`` keeps everything.

    Raises
    ------
    CommandLaunchError
        When the program cannot be started at all.
    """
    merged_env = _build_env(env)
    start = time.perf_counter()
    out_sink = _TailBuffer(max_output_bytes)
    err_sink = _TailBuffer(max_output_bytes)

    def _sync() -> tuple[int, bool]:
        """Run in a thread so the event loop stays free."""
        proc = subprocess.Popen(
            [program, *args],
            cwd=str(cwd),
            env=merged_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, out_sink), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, err_sink), daemon=True),
        ]
        for reader in readers:
            reader.start()
        try:
            exit_code = proc.wait(timeout=timeout_s)
            timed_out = False
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
            exit_code, timed_out = TIMEOUT_EXIT_CODE, True
        for reader in readers:
            reader.join(_DRAIN_GRACE_S if timed_out else None)
        return exit_code, timed_out

    logger.debug("exec %s %s (cwd=%s)", program, " ".join(args), cwd)
    try:
        exit_code, timed_out = await asyncio.to_thread(_sync)
    except OSError as exc:
        logger.error("Failed to launch %s: %s", program, exc)
        raise CommandLaunchError(program, exc.strerror or str(exc)) from exc

    elapsed = int((time.perf_counter() - start) * 1000)

    stdout, trunc_out = _truncate_tail(bytes(out_sink.data), max_output_bytes, out_sink.dropped)
    stderr, trunc_err = _truncate_tail(bytes(err_sink.data), max_output_bytes, err_sink.dropped)

    if timed_out:
        logger.warning("%s timed out after %ss", program, timeout_s)
        note = f"[timed out after {timeout_s}s]"
        stderr = f"{stderr.rstrip()}\n{note}" if stderr.strip() else note

    if exit_code != 0:
        logger.info("%s %s exited %d (%dms)", program, args[0] if args else "", exit_code, elapsed)
    else:
        logger.debug("%s exited 0 (%dms)", program, elapsed)

    return CommandResult(
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        timed_out=timed_out,
        truncated=trunc_out or trunc_err,
    )
