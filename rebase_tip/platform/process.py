"""Subprocess execution with Result-based error handling.

There are no timeouts here: network commands (fetch, ls-remote) block for
as long as the transport does, and the operator interrupts the process
if they want out.

Usage:
    match run(["git", "rev-parse", "HEAD"], cwd=repo_path):
        case Ok(stdout):
            head = stdout.strip()
        case Err(error):
            console.error(error.stderr)
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from rebase_tip.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

# Commands are abbreviated to this many words in messages.
_SHOWN_WORDS = 3


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not start or exited non-zero.

    Attributes:
        command: argv as executed.
        returncode: Exit status, -1 when the program never started.
        stdout: Whatever the command printed before failing.
        stderr: Standard error, kept verbatim for diagnosis.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @classmethod
    def not_started(cls, cmd: Sequence[str], error: OSError) -> ProcessError:
        return cls(command=tuple(cmd), returncode=-1, stdout="", stderr=str(error))

    def __str__(self) -> str:
        shown = shlex.join(self.command[:_SHOWN_WORDS])
        if len(self.command) > _SHOWN_WORDS:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def run(
    cmd: Sequence[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    ``env`` adds to (and overrides) the inherited environment rather than
    replacing it.
    """
    merged = {**os.environ, **env} if env else None
    try:
        proc = subprocess.run(
            list(cmd),
            cwd=str(cwd),
            env=merged,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        return Err(ProcessError.not_started(cmd, e))

    if proc.returncode != 0:
        return Err(ProcessError(tuple(cmd), proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
