"""The ``git bump-version-tag`` helper.

Two uses: ask it what the next patch version would be, and have it
create (or move) a tag, with normalization and pushing controlled by its
``BMP_*`` environment variables.
"""

from __future__ import annotations

from typing import Protocol

from rebase_tip.core.config import HelperOptions
from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Repository
from rebase_tip.platform.process import run as run_process
from rebase_tip.workflow.errors import TipError

__all__ = ["BumpHelper", "VersionBumper"]

# "-" as the remote/branch keeps the helper away from the network.
_NO_REMOTE = "-"


class VersionBumper(Protocol):
    def next_version(self) -> Result[str, TipError]: ...

    def create_tag(self, name: str, options: HelperOptions) -> Result[None, TipError]: ...


class BumpHelper:
    """Runs ``git bump-version-tag`` in a working tree."""

    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def next_version(self) -> Result[str, TipError]:
        cmd = ["git", "bump-version-tag", "p", "--check", "--", _NO_REMOTE]
        result = run_process(cmd, cwd=self.repo.path)
        match result:
            case Err(e):
                return Err(
                    TipError(
                        kind="tool_failed",
                        message=f"Failed: git bump-version-tag p --check -- {_NO_REMOTE}",
                        hint=e.stderr.strip() or None,
                    )
                )
            case Ok(stdout):
                version = stdout.strip().splitlines()[-1].strip() if stdout.strip() else ""
                if not version:
                    return Err(
                        TipError(
                            kind="tool_failed",
                            message="git bump-version-tag printed no version",
                        )
                    )
                return Ok(version)

    def create_tag(self, name: str, options: HelperOptions) -> Result[None, TipError]:
        cmd = ["git", "bump-version-tag", name, "--", _NO_REMOTE]
        result = run_process(cmd, cwd=self.repo.path, env=options.as_env())
        if isinstance(result, Err):
            return Err(
                TipError(
                    kind="tool_failed",
                    message=f'Failed: git bump-version-tag "{name}" -- {_NO_REMOTE}',
                    hint=result.error.stderr.strip() or None,
                )
            )
        return Ok(None)
