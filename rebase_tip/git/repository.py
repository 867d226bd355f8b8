"""Git repository abstraction.

``Repository`` wraps the handful of git reads and writes the workflows
need: resolving refs, listing/creating/deleting tags and branches,
counting commits, fetching, checking for a dirty tree, and running the
rebase or merge that may pause on a conflict. Everything returns a
Result; a paused operation is a success value (``Stopped``), not an error.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.rebase(onto="origin/main"):
        case Ok(None):
            print("rebased")
        case Ok(Stopped()):
            print("resolve conflicts, then git rebase --continue")
        case Err(e):
            print(f"rebase failed: {e.message}")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.platform.process import ProcessError
from rebase_tip.platform.process import run as run_process

__all__ = [
    "GitError",
    "RemoteRef",
    "Repository",
    "Stopped",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Human-readable error message
        returncode: Process return code
        stderr: The command's stderr, verbatim
    """

    command: str
    message: str
    returncode: int = 1
    stderr: str = ""


@dataclass(frozen=True, slots=True)
class Stopped:
    """A multi-step operation paused on a content conflict."""

    operation: Literal["rebase", "merge"]
    detail: str = ""


@dataclass(frozen=True, slots=True)
class RemoteRef:
    """One line of ``git ls-remote`` output."""

    object_id: str
    ref: str


def _error(command: str, e: ProcessError, fallback: str) -> GitError:
    stderr = e.stderr.strip()
    return GitError(
        command=command,
        message=stderr.splitlines()[-1] if stderr else fallback,
        returncode=e.returncode,
        stderr=e.stderr,
    )


class Repository:
    """A git working tree.

    Attributes:
        path: Any directory inside the working tree
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # ---------------------------------------------------------------------
    # Refs and objects
    # ---------------------------------------------------------------------

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve a ref to the full hash of the commit it names."""
        result = self._run(["rev-parse", "--verify", "--end-of-options", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(_error("rev-parse", e, f"not a valid commit: {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def ref_exists(self, ref: str) -> bool:
        return isinstance(self._run(["rev-parse", "--verify", "--quiet", "--end-of-options", ref]), Ok)

    def short_sha(self, ref: str, length: int = 7) -> Result[str, GitError]:
        result = self._run(["rev-parse", f"--short={length}", "--verify", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(_error("rev-parse", e, f"not a valid commit: {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def commit_date(self, ref: str) -> Result[str, GitError]:
        """Committer date of ``ref`` as YYYY-MM-DD."""
        result = self._run(["log", "-1", "--format=%cs", ref, "--"])
        match result:
            case Err(e):
                return Err(_error("log", e, f"cannot read commit date of {ref}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def count_commits(self, base: str, head: str) -> Result[int, GitError]:
        """Number of commits reachable from ``head`` but not from ``base``."""
        result = self._run(["rev-list", "--count", f"{base}..{head}"])
        match result:
            case Err(e):
                return Err(_error("rev-list", e, f"cannot count {base}..{head}"))
            case Ok(stdout):
                text = stdout.strip()
                if not text.isdigit():
                    return Err(
                        GitError(
                            command="rev-list",
                            message=f"non-integer commit distance {base}..{head}: {text!r}",
                        )
                    )
                return Ok(int(text))

    def merge_base(self, a: str, b: str) -> Result[str, GitError]:
        result = self._run(["merge-base", a, b])
        match result:
            case Err(e):
                return Err(_error("merge-base", e, f"no merge base for {a} and {b}"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return isinstance(self._run(["merge-base", "--is-ancestor", ancestor, descendant]), Ok)

    def update_ref(self, ref: str, object_id: str) -> Result[None, GitError]:
        result = self._run(["update-ref", ref, object_id])
        if isinstance(result, Err):
            return Err(_error("update-ref", result.error, f"cannot update {ref}"))
        return Ok(None)

    # ---------------------------------------------------------------------
    # Working tree
    # ---------------------------------------------------------------------

    def toplevel(self) -> Result[Path, GitError]:
        result = self._run(["rev-parse", "--show-toplevel"])
        match result:
            case Err(e):
                return Err(_error("rev-parse", e, f"not a git repository: {self.path}"))
            case Ok(stdout):
                return Ok(Path(stdout.strip()))

    def git_path(self, name: str) -> Result[Path, GitError]:
        """Absolute path of a file inside the git directory (worktree aware)."""
        result = self._run(["rev-parse", "--path-format=absolute", "--git-path", name])
        match result:
            case Err(e):
                return Err(_error("rev-parse", e, f"cannot locate {name}"))
            case Ok(stdout):
                return Ok(Path(stdout.strip()))

    def is_clean(self) -> Result[bool, GitError]:
        """True when there are no staged, unstaged or untracked changes."""
        result = self._run(["status", "--porcelain=v1"])
        match result:
            case Err(e):
                return Err(_error("status", e, "git status failed"))
            case Ok(stdout):
                return Ok(stdout.strip() == "")

    def current_branch(self) -> str | None:
        """Current branch name, or None if HEAD is detached."""
        result = self._run(["symbolic-ref", "--quiet", "--short", "HEAD"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def rebase_in_progress(self) -> bool:
        for name in ("rebase-merge", "rebase-apply"):
            path = self.git_path(name)
            if isinstance(path, Ok) and path.value.exists():
                return True
        return False

    def merge_in_progress(self) -> bool:
        return self.ref_exists("MERGE_HEAD")

    # ---------------------------------------------------------------------
    # Branches
    # ---------------------------------------------------------------------

    def branch_exists(self, name: str) -> bool:
        return self.ref_exists(f"refs/heads/{name}")

    def remote_branch_exists(self, remote_branch: str) -> bool:
        return self.ref_exists(f"refs/remotes/{remote_branch.removeprefix('refs/remotes/')}")

    def checkout(self, branch: str) -> Result[None, GitError]:
        result = self._run(["checkout", "--quiet", branch, "--"])
        if isinstance(result, Err):
            return Err(_error("checkout", result.error, f"cannot checkout {branch}"))
        return Ok(None)

    def create_branch(self, name: str, start: str, *, checkout: bool = True) -> Result[None, GitError]:
        cmd = ["checkout", "--quiet", "-b", name, start] if checkout else ["branch", name, start]
        result = self._run(cmd)
        if isinstance(result, Err):
            return Err(_error(cmd[0], result.error, f"cannot create branch {name}"))
        return Ok(None)

    def valid_branch_name(self, name: str) -> bool:
        return isinstance(self._run(["check-ref-format", "--branch", name]), Ok)

    def force_branch(self, name: str, target: str) -> Result[None, GitError]:
        """Point ``name`` at ``target``; the branch must not be checked out."""
        result = self._run(["branch", "--force", name, target])
        if isinstance(result, Err):
            return Err(_error("branch", result.error, f"cannot move branch {name}"))
        return Ok(None)

    # ---------------------------------------------------------------------
    # Tags
    # ---------------------------------------------------------------------

    def list_tags(
        self,
        patterns: Sequence[str] = (),
        *,
        merged: str | None = None,
    ) -> Result[list[str], GitError]:
        cmd = ["tag", "--list"]
        if merged is not None:
            cmd.extend(["--merged", merged])
        cmd.extend(patterns)
        result = self._run(cmd)
        match result:
            case Err(e):
                return Err(_error("tag", e, "cannot list tags"))
            case Ok(stdout):
                return Ok([line.strip() for line in stdout.splitlines() if line.strip()])

    def tag_exists(self, name: str) -> bool:
        return self.ref_exists(f"refs/tags/{name}")

    def tag_object(self, name: str) -> str | None:
        """Object id the tag ref points at (a tag object for annotated tags)."""
        result = self._run(["rev-parse", "--verify", "--quiet", "--end-of-options", f"refs/tags/{name}"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def tag_commit(self, name: str) -> Result[str, GitError]:
        """Commit a tag ultimately points at (dereferences annotated tags)."""
        return self.rev_parse(f"refs/tags/{name}")

    def create_tag(self, name: str, target: str, *, force: bool = False) -> Result[None, GitError]:
        cmd = ["tag", *(["--force"] if force else []), name, target]
        result = self._run(cmd)
        if isinstance(result, Err):
            return Err(_error("tag", result.error, f"cannot create tag {name}"))
        return Ok(None)

    def delete_tag(self, name: str) -> Result[None, GitError]:
        result = self._run(["tag", "--delete", name])
        if isinstance(result, Err):
            return Err(_error("tag", result.error, f"cannot delete tag {name}"))
        return Ok(None)

    # ---------------------------------------------------------------------
    # Remotes (network)
    # ---------------------------------------------------------------------

    def remote_exists(self, remote: str) -> bool:
        return bool(remote) and isinstance(self._run(["remote", "get-url", remote]), Ok)

    def fetch(self, remote: str, *, prune: bool = True) -> Result[None, GitError]:
        cmd = ["fetch", *(["--prune"] if prune else []), remote]
        result = self._run(cmd)
        if isinstance(result, Err):
            return Err(_error("fetch", result.error, f"fetch from {remote} failed"))
        return Ok(None)

    def ls_remote(
        self,
        remote: str,
        patterns: Sequence[str] = (),
        *,
        tags: bool = True,
        refs_only: bool = False,
    ) -> Result[list[RemoteRef], GitError]:
        cmd = ["ls-remote", *(["--tags"] if tags else []), *(["--refs"] if refs_only else [])]
        cmd.extend([remote, *patterns])
        result = self._run(cmd)
        match result:
            case Err(e):
                return Err(_error("ls-remote", e, f"git ls-remote {remote} failed"))
            case Ok(stdout):
                refs: list[RemoteRef] = []
                for line in stdout.splitlines():
                    parts = line.split("\t", 1)
                    if len(parts) == 2:
                        refs.append(RemoteRef(object_id=parts[0].strip(), ref=parts[1].strip()))
                return Ok(refs)

    def push(self, remote: str, refspec: str, *, force_with_lease: bool = False) -> Result[None, GitError]:
        cmd = ["push", *(["--force-with-lease"] if force_with_lease else []), remote, refspec]
        result = self._run(cmd)
        if isinstance(result, Err):
            return Err(_error("push", result.error, f"push to {remote} failed"))
        return Ok(None)

    # ---------------------------------------------------------------------
    # Multi-step operations that may pause on conflict
    # ---------------------------------------------------------------------

    def rebase(self, onto: str, upstream: str | None = None) -> Result[Stopped | None, GitError]:
        """Rebase the current branch.

        With ``upstream``, replays ``upstream..HEAD`` onto ``onto``
        (``git rebase --onto``); otherwise replays onto ``onto`` directly.

        Returns:
            Ok(None) when finished, Ok(Stopped) when paused on a conflict,
            Err(GitError) for any other failure.
        """
        cmd = ["rebase", "--onto", onto, upstream] if upstream else ["rebase", onto]
        return self.run_pausable(cmd, operation="rebase")

    def merge(self, ref: str) -> Result[Stopped | None, GitError]:
        return self.run_pausable(["merge", "--no-edit", ref], operation="merge")

    def run_pausable(
        self,
        args: list[str],
        *,
        operation: Literal["rebase", "merge"],
        program: Sequence[str] = ("git",),
        env: Mapping[str, str] | None = None,
    ) -> Result[Stopped | None, GitError]:
        """Run a command that rebases or merges, telling a conflict apart from a failure.

        ``program`` lets external helpers that drive ``git rebase`` themselves
        (the sort-by-scope helper) share the same conflict detection.
        """
        cmd = [*program, *args]
        if program == ("git",):
            cmd = ["git", "-C", str(self.path), *args]
        result = run_process(cmd, cwd=self.path, env=env)
        if isinstance(result, Ok):
            return Ok(None)

        e = result.error
        paused = self.rebase_in_progress() if operation == "rebase" else self.merge_in_progress()
        if paused:
            return Ok(Stopped(operation=operation, detail=(e.stdout + e.stderr).strip()))
        return Err(_error(args[0] if program == ("git",) else program[0], e, f"{operation} failed"))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path)
