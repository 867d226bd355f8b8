"""Arranging for the program to run again after a conflict is resolved.

Git forbids running a command that itself rebases from inside a rebase's
``exec`` step (the rebase is still "in progress"), so the injected exec
line sleeps briefly and launches the re-invocation in the background.
Its output therefore lands on the terminal after the operator's
``git rebase --continue`` has returned, interleaved with their prompt.

``git merge`` has no todo list to append to; for a paused merge the
resume command is printed for the operator to run after committing.
"""

from __future__ import annotations

import shlex
import time
from collections.abc import Callable
from typing import Protocol

from rebase_tip.core.config import ENV_RESUME_STAGE, TaskRunner
from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Repository
from rebase_tip.output.console import ConsoleProtocol
from rebase_tip.workflow.errors import TipError, precondition
from rebase_tip.workflow.model import Continuation

__all__ = [
    "REBASE_TODO",
    "ContinuationAdapter",
    "RebaseTodoAdapter",
    "ResumeCommandAdapter",
    "build_exec_line",
    "resume_command",
    "select_adapter",
    "wait_until_settled",
]

REBASE_TODO = "rebase-merge/git-rebase-todo"

# Let git finish tearing down the rebase before the re-invocation starts.
_EXEC_DELAY = "0.1"
_SETTLE_MAX_ATTEMPTS = 50
_SETTLE_DELAY_SECONDS = 0.1


class ContinuationAdapter(Protocol):
    def queue(self, continuation: Continuation) -> Result[None, TipError]: ...


def resume_command(continuation: Continuation) -> str:
    """Foreground shell command that resumes at the continuation's stage."""
    argv = [*continuation.invocation.program, *continuation.invocation.args]
    return f"{ENV_RESUME_STAGE}={continuation.stage} {shlex.join(argv)}"


def build_exec_line(continuation: Continuation, task_runner: TaskRunner | None = None) -> str:
    """The ``exec`` todo line that re-invokes this program in the background.

    Every argument is shell-quoted, so arguments with spaces or empty
    arguments survive the round trip.
    """
    if task_runner is not None:
        wrapped = [
            "mr",
            "-d",
            task_runner.repo or ".",
            "-n",
            task_runner.action,
            str(continuation.stage),
            *continuation.invocation.args,
        ]
        command = shlex.join(wrapped)
    else:
        command = resume_command(continuation)
    return f"exec sleep {_EXEC_DELAY} && {command} &"


class RebaseTodoAdapter:
    """Appends the re-invocation to git's pending rebase todo list."""

    def __init__(
        self,
        repo: Repository,
        console: ConsoleProtocol,
        task_runner: TaskRunner | None = None,
        *,
        runner_installed: bool = True,
    ) -> None:
        self.repo = repo
        self.console = console
        self.task_runner = task_runner
        self.runner_installed = runner_installed

    def _check_task_runner(self) -> Result[None, TipError]:
        if self.task_runner is None:
            return Ok(None)
        if not self.task_runner.repo:
            return Err(precondition("Missing MR_REPO environ (required with MR_ACTION)"))
        if not self.runner_installed:
            return Err(
                precondition(
                    "MR_ACTION is set but 'mr' is not installed",
                    hint="Install myrepos, or unset MR_ACTION to resume without it",
                )
            )
        return Ok(None)

    def queue(self, continuation: Continuation) -> Result[None, TipError]:
        checked = self._check_task_runner()
        if isinstance(checked, Err):
            return checked

        todo = self.repo.git_path(REBASE_TODO)
        if isinstance(todo, Err) or not todo.value.is_file():
            return Err(
                precondition(
                    "Cannot queue the resume step: no rebase todo list found",
                    hint=f"Expected {REBASE_TODO} in the git directory",
                )
            )

        line = build_exec_line(continuation, self.task_runner)
        try:
            with todo.value.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as e:
            return Err(precondition(f"Cannot write rebase todo list: {e}", hint=str(todo.value)))

        self.console.debug(f"rebase-todo: {line}")
        self.console.info("Please resolve conflicts. We'll resume")
        self.console.info("after the final `git rebase --continue`")
        return Ok(None)


class ResumeCommandAdapter:
    """Reports the resume command; the operator runs it after committing."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self.console = console

    def queue(self, continuation: Continuation) -> Result[None, TipError]:
        self.console.info("Please resolve conflicts and commit the merge")
        self.console.info("(`git add` the files, then `git commit --no-edit`),")
        self.console.info("then resume with:")
        self.console.print(f"  {resume_command(continuation)}")
        return Ok(None)


def select_adapter(
    repo: Repository,
    console: ConsoleProtocol,
    task_runner: TaskRunner | None,
    runner_installed: bool = True,
) -> Callable[[Continuation], ContinuationAdapter]:
    """Adapter factory for the workflow driver, keyed on the paused operation."""

    def _select(continuation: Continuation) -> ContinuationAdapter:
        if continuation.stopped.operation == "rebase":
            return RebaseTodoAdapter(repo, console, task_runner, runner_installed=runner_installed)
        return ResumeCommandAdapter(console)

    return _select


def wait_until_settled(repo: Repository, console: ConsoleProtocol) -> Result[None, TipError]:
    """Wait for the rebase that launched us to finish tearing down.

    A merge is never waited for: its resume command is run by hand, so an
    uncommitted merge means the operator resumed too early.
    """
    if repo.merge_in_progress():
        return Err(
            precondition(
                "A merge is still in progress",
                hint="Commit the resolution with `git commit --no-edit`, then run the resume command again.",
            )
        )

    for attempt in range(_SETTLE_MAX_ATTEMPTS):
        if not repo.rebase_in_progress():
            return Ok(None)
        if attempt == 0:
            console.debug("Waiting for the rebase to finish...")
        time.sleep(_SETTLE_DELAY_SECONDS)

    return Err(
        precondition(
            "A rebase is still in progress",
            hint="Finish it with `git rebase --continue` (or abort it) and run again.",
        )
    )
