from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from rebase_tip.git.repository import Stopped

__all__ = [
    "Continuation",
    "Invocation",
    "Stage",
    "parse_stage",
]


class Stage(Enum):
    """How far a workflow has progressed; the name doubles as the resume token."""

    NONE = "NONE"
    STAGE_REBASED = "STAGE_REBASED"
    STAGE_MERGED = "STAGE_MERGED"
    STAGE_SCOPED = "STAGE_SCOPED"
    DONE = "DONE"

    def __str__(self) -> str:
        return self.value


def parse_stage(token: str | None) -> Stage | None:
    """Parse a resume token; an empty token means a fresh run (NONE)."""
    if not token:
        return Stage.NONE
    try:
        return Stage(token.strip().upper())
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class Invocation:
    """How this program was started, so it can start itself again.

    Attributes:
        program: argv prefix that launches the entry point.
        args: The original arguments, verbatim.
    """

    program: tuple[str, ...]
    args: tuple[str, ...]

    def positional_indexes(self) -> list[int]:
        # "-" is a placeholder positional, not an option.
        return [i for i, a in enumerate(self.args) if a == "-" or not a.startswith("-")]

    def with_positional(self, index: int, value: str, filler: str = "-") -> Invocation:
        """Replace the ``index``-th positional argument, padding with ``filler``."""
        args = list(self.args)
        positions = self.positional_indexes()
        if index < len(positions):
            args[positions[index]] = value
        else:
            insert_at = positions[-1] + 1 if positions else len(args)
            padding = [filler] * (index - len(positions)) + [value]
            args[insert_at:insert_at] = padding
        return replace(self, args=tuple(args))


@dataclass(frozen=True, slots=True)
class Continuation:
    """What to run once the operator finishes resolving a conflict.

    Attributes:
        stage: The stage the re-invocation starts at.
        invocation: The command to re-run.
        stopped: The paused operation that triggered the continuation.
    """

    stage: Stage
    invocation: Invocation
    stopped: Stopped
