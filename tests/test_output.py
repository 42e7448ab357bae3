"""Tests for workbench.output -- stream blocks, tail trimming, failure summary."""

from __future__ import annotations

from workbench.contracts import CommandResult
from workbench.output import DEFAULT_MAX_LINES, format_failure, format_output


def _result(stdout: str = "", stderr: str = "", exit_code: int = 0) -> CommandResult:
    return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


# ---------------------------------------------------------------------------
# format_output
# ---------------------------------------------------------------------------


class TestFormatOutput:
    def test_empty(self):
        assert format_output(_result()) == ""

    def test_whitespace_only_streams_omitted(self):
        assert format_output(_result("  \n\n", "\r\n")) == ""

    def test_stdout_only(self):
        assert format_output(_result("hello\n")) == "stdout:\nhello"

    def test_stderr_only(self):
        assert format_output(_result(stderr="warn\n")) == "stderr:\nwarn"

    def test_both_streams(self):
        text = format_output(_result("out\n", "err\n"))
        assert text == "stdout:\nout\n\nstderr:\nerr"

    def test_crlf_normalised(self):
        assert format_output(_result("a\r\nb\r\n")) == "stdout:\na\nb"

    def test_bare_cr_splits_lines(self):
        progress = "fetch 10%\rfetch 50%\rfetch 100%\ndone\n"
        assert format_output(_result(progress)) == (
            "stdout:\nfetch 10%\nfetch 50%\nfetch 100%\ndone"
        )

    def test_bare_cr_counts_toward_tail(self):
        text = format_output(_result("a\rb\rc\rd"), max_lines=2)
        assert text == "stdout:\n... trimmed 2 lines ...\nc\nd"

    def test_short_output_unchanged(self):
        body = "\n".join(f"line {i}" for i in range(1, 11))
        assert format_output(_result(body)) == f"stdout:\n{body}"

    def test_301_lines_trims_one(self):
        lines = [f"line {i}" for i in range(1, 302)]
        text = format_output(_result("\n".join(lines)))
        header, marker, *rest = text.split("\n")
        assert header == "stdout:"
        assert marker == "... trimmed 1 lines ..."
        assert rest == lines[1:]
        assert len(rest) == DEFAULT_MAX_LINES

    def test_custom_max_lines(self):
        text = format_output(_result("a\nb\nc\nd"), max_lines=2)
        assert text == "stdout:\n... trimmed 2 lines ...\nc\nd"


# ---------------------------------------------------------------------------
# format_failure
# ---------------------------------------------------------------------------


class TestFormatFailure:
    def test_without_output(self):
        assert format_failure(_result(exit_code=2)) == "Command failed with exit code 2."

    def test_with_output(self):
        text = format_failure(_result(stderr="fatal: not a git repository\n", exit_code=128))
        assert text == (
            "Command failed with exit code 128.\n\n"
            "stderr:\nfatal: not a git repository"
        )

    def test_timeout_exit_code(self):
        assert format_failure(_result(exit_code=-1)).startswith(
            "Command failed with exit code -1."
        )
