"""Narrow subprocess capability used by the CLI-backed providers and the repo scanner."""

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from aura.errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def __call__(self, args: Sequence[str], cwd: Path | str | None = None) -> CommandResult: ...


def run_command(args: Sequence[str], cwd: Path | str | None = None) -> CommandResult:
    """Run ``args`` to completion and capture its output.

    Raises TransportError when the executable cannot be spawned at all
    (missing binary, bad cwd). A non-zero exit is *not* an error here.
    """
    logger.debug("Running %s (cwd=%s)", " ".join(args[:3]), cwd)
    try:
        completed = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            errors="replace",
        )
    except OSError as exc:
        raise TransportError(f"Failed to run {args[0]}: {exc}") from exc
    return CommandResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def probe(runner: CommandRunner, args: Sequence[str], cwd: Path | str | None = None) -> CommandResult | None:
    """Run a command whose failure is a status, not an error. Returns None if it could not start."""
    try:
        return runner(args, cwd=cwd)
    except TransportError as exc:
        logger.debug("Probe %s could not start: %s", args[0], exc)
        return None
