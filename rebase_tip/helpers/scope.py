"""The git-put-wise scope helpers.

``git put-wise --scope`` reports the boundary between private (protected)
commits and the history that is shared upstream.
``git-rebase-sort-by-scope-protected-private`` reorders the commits above
that boundary; it drives ``git rebase`` itself and can stop on a conflict.
"""

from __future__ import annotations

from typing import Protocol

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Repository, Stopped
from rebase_tip.platform.capabilities import SORT_BY_SCOPE, Capabilities
from rebase_tip.platform.process import run as run_process
from rebase_tip.workflow.errors import TipError, from_git_error

__all__ = ["PutWiseScope", "ScopeTool"]


class ScopeTool(Protocol):
    def boundary(self) -> Result[str | None, TipError]: ...

    def sort(self, boundary: str) -> Result[Stopped | None, TipError]: ...


class PutWiseScope:
    """Scope detection backed by git-put-wise.

    When the helpers are not installed, ``boundary`` answers None and the
    workflows carry on without sorting.
    """

    def __init__(self, repo: Repository, capabilities: Capabilities) -> None:
        self.repo = repo
        self.capabilities = capabilities

    @property
    def available(self) -> bool:
        return self.capabilities.scoping

    def boundary(self) -> Result[str | None, TipError]:
        if not self.available:
            return Ok(None)

        # An empty LOG_LEVEL keeps put-wise's own logger quiet on stdout.
        result = run_process(["git", "put-wise", "--scope"], cwd=self.repo.path, env={"LOG_LEVEL": ""})
        match result:
            case Err(e):
                return Err(
                    TipError(
                        kind="tool_failed",
                        message="Failed: git put-wise --scope",
                        hint=e.stderr.strip() or None,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip() or None)

    def sort(self, boundary: str) -> Result[Stopped | None, TipError]:
        result = self.repo.run_pausable([boundary], operation="rebase", program=(SORT_BY_SCOPE,))
        if isinstance(result, Err):
            return Err(from_git_error(result.error, "Failed to sort commits by scope"))
        return Ok(result.value)
