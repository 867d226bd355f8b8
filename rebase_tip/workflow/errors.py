from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rebase_tip.git.repository import GitError

TipErrorKind = Literal[
    "usage",
    "precondition",
    "network",
    "tool_failed",
    "invalid_input",
]


@dataclass(frozen=True, slots=True)
class TipError:
    kind: TipErrorKind
    message: str
    # For tool failures: the failing command's stderr, verbatim.
    hint: str | None = None


def from_git_error(e: GitError, prefix: str, *, kind: TipErrorKind = "tool_failed") -> TipError:
    """Wrap a GitError, adding a human-readable prefix and keeping stderr."""
    return TipError(kind=kind, message=f"{prefix}: {e.message}", hint=e.stderr.strip() or None)


def usage(message: str, hint: str | None = None) -> TipError:
    return TipError(kind="usage", message=message, hint=hint)


def precondition(message: str, hint: str | None = None) -> TipError:
    return TipError(kind="precondition", message=message, hint=hint)
