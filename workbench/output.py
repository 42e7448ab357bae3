"""Output formatting for captured command results.

Each stream is rendered as a labelled block (``stdout:`` / ``stderr:``)
with line endings normalised (CRLF and bare CR both become LF) and
trailing whitespace removed.  Streams longer than *max_lines* keep only
their tail, behind a marker stating how many leading lines were dropped.
Empty streams are omitted.
"""

from __future__ import annotations

from workbench.contracts import CommandResult

DEFAULT_MAX_LINES: int = 300


def _format_stream(label: str, text: str, max_lines: int) -> str | None:
    # Bare "\r" (progress redraws) counts as a line break too.
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").rstrip()
    if not normalized:
        return None
    lines = normalized.split("\n")
    if len(lines) <= max_lines:
        return f"{label}:\n{normalized}"
    trimmed = len(lines) - max_lines
    tail = "\n".join(lines[-max_lines:])
    return f"{label}:\n... trimmed {trimmed} lines ...\n{tail}"


def format_output(result: CommandResult, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """Render both streams of *result*; empty string when both are empty."""
    parts = [
        _format_stream("stdout", result.stdout, max_lines),
        _format_stream("stderr", result.stderr, max_lines),
    ]
    return "\n\n".join(p for p in parts if p)


def format_failure(result: CommandResult, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """One-line exit-code summary, followed by the formatted output if any."""
    header = f"Command failed with exit code {result.exit_code}."
    output = format_output(result, max_lines)
    if not output:
        return header
    return f"{header}\n\n{output}"
