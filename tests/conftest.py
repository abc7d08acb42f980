"""Shared test fixtures."""

from collections.abc import Sequence
from pathlib import Path

import pytest

from aura.errors import TransportError
from aura.process import CommandResult


class FakeRunner:
    """Stands in for aura.process.run_command.

    Responses are keyed by the leading words of the command line; the longest
    matching key wins. Commands with no match behave like a missing binary.
    """

    def __init__(self, responses: dict[tuple[str, ...], CommandResult] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[tuple[str, ...], Path | str | None]] = []

    def __call__(self, args: Sequence[str], cwd: Path | str | None = None) -> CommandResult:
        argv = tuple(args)
        self.calls.append((argv, cwd))
        for key in sorted(self.responses, key=len, reverse=True):
            if argv[: len(key)] == key:
                return self.responses[key]
        raise TransportError(f"Failed to run {argv[0]}: No such file or directory")

    def called(self, *prefix: str) -> bool:
        return any(argv[: len(prefix)] == prefix for argv, _ in self.calls)


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(returncode=0, stdout=stdout)


def fail(stderr: str = "", returncode: int = 1) -> CommandResult:
    return CommandResult(returncode=returncode, stderr=stderr)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
