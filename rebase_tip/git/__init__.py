"""Git operations.

Usage:
    from rebase_tip.git import Repository

    repo = Repository(Path("/path/to/repo"))
    head = repo.rev_parse("HEAD")
"""

from rebase_tip.git.remote import RemoteBranch, parse_remote_branch
from rebase_tip.git.repository import GitError, RemoteRef, Repository, Stopped

__all__ = [
    "GitError",
    "RemoteBranch",
    "RemoteRef",
    "Repository",
    "Stopped",
    "parse_remote_branch",
]
