"""Splitting remote-branch references into remote and branch names."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["RemoteBranch", "parse_remote_branch"]


@dataclass(frozen=True, slots=True)
class RemoteBranch:
    """A ``<remote>/<branch>`` reference, e.g. ``origin/release/1.x``."""

    remote: str
    branch: str

    def __str__(self) -> str:
        return f"{self.remote}/{self.branch}"

    @property
    def ref(self) -> str:
        return f"refs/remotes/{self.remote}/{self.branch}"


def parse_remote_branch(text: str) -> RemoteBranch | None:
    """Parse ``origin/main`` or ``refs/remotes/origin/main``.

    The remote is everything before the first slash; the branch keeps any
    further slashes. Inputs like ``main``, ``origin/`` or a non-remotes
    ``refs/`` path do not name a remote branch and yield None.
    """
    deprefixed = text.strip().removeprefix("refs/remotes/")
    remote, sep, branch = deprefixed.partition("/")
    if not sep or not remote or not branch or remote == "refs":
        return None
    return RemoteBranch(remote=remote, branch=branch)
