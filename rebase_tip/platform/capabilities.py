"""Optional companion tools, detected once at startup.

The workflow degrades when a companion is missing (no scope sorting, no
version tag), so the answer is computed a single time and threaded
through as configuration instead of being looked up again at each call site.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass

__all__ = [
    "BUMP_HELPER",
    "MR_COMMAND",
    "PUT_WISE",
    "SORT_BY_SCOPE",
    "Capabilities",
    "detect_capabilities",
]

BUMP_HELPER = "git-bump-version-tag"
PUT_WISE = "git-put-wise"
SORT_BY_SCOPE = "git-rebase-sort-by-scope-protected-private"
MR_COMMAND = "mr"

_PUT_WISE_HINT = "See: https://github.com/DepoXy/git-put-wise#readme"
_BUMP_HINT = "See: https://github.com/landonb/git-bump-version-tag#readme"


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Which optional companions are installed.

    Attributes:
        bump_helper: ``git-bump-version-tag`` (required to add a version tag).
        put_wise: ``git-put-wise`` (reports the scope boundary).
        sort_by_scope: The paired reorder-commits-by-scope helper.
        task_runner: ``mr`` (myrepos), used to wrap background re-invocation.
    """

    bump_helper: bool = False
    put_wise: bool = False
    sort_by_scope: bool = False
    task_runner: bool = False

    @property
    def scoping(self) -> bool:
        """Scope detection needs both halves of the put-wise pair."""
        return self.put_wise and self.sort_by_scope

    @property
    def bump_hint(self) -> str:
        return _BUMP_HINT

    @property
    def scoping_hint(self) -> str:
        return _PUT_WISE_HINT


def detect_capabilities(which: Callable[[str], str | None] = shutil.which) -> Capabilities:
    return Capabilities(
        bump_helper=which(BUMP_HELPER) is not None,
        put_wise=which(PUT_WISE) is not None,
        sort_by_scope=which(SORT_BY_SCOPE) is not None,
        task_runner=which(MR_COMMAND) is not None,
    )
