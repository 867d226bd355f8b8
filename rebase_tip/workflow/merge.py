"""Merge/sort flow: integrate upstream into a local branch, then sort by scope.

    NONE           validate, fetch, derive the scope boundary, integrate
                   the upstream ref (merge, or rebase in linear mode)
    STAGE_MERGED / STAGE_REBASED
                   reorder private commits above the scope boundary
    STAGE_SCOPED   optionally stamp a version tag, record the merge-base
                   breadcrumb (linear mode), push and check the remote's
                   copy of the version tag
    DONE

Either the integrate step or the sort step may stop on a conflict. A
fresh run always re-derives the scope boundary; a resumed run reuses the
one recorded in its arguments.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.remote import parse_remote_branch
from rebase_tip.git.repository import Stopped
from rebase_tip.output.console import Style
from rebase_tip.version.remote import TagAbsent, TagConflict, TagPresent, verify_tag_at_commit
from rebase_tip.workflow.context import WorkflowContext
from rebase_tip.workflow.continuation import select_adapter
from rebase_tip.workflow.errors import TipError, from_git_error, precondition, usage
from rebase_tip.workflow.machine import (
    StepHandler,
    StepOutcome,
    StepPause,
    WorkflowOutcome,
    advance,
    finish,
    run_workflow,
)
from rebase_tip.workflow.model import Continuation, Invocation, Stage
from rebase_tip.workflow.stamping import resolve_scope_boundary, stamp_tip_version

__all__ = ["MergeFlow", "MergeParams", "MergeState", "SCOPE_BOUNDARY_POSITION", "run_merge"]

# Position of the scope boundary among the command's positional arguments.
SCOPE_BOUNDARY_POSITION = 4


@dataclass(frozen=True, slots=True)
class MergeParams:
    rebase_ref: str
    local_branch: str
    push_remote: str | None = None
    add_version_tag: bool = True
    scope_boundary: str | None = None
    linear: bool = False


@dataclass(frozen=True, slots=True)
class MergeState:
    stage: Stage
    invocation: Invocation
    scope_boundary: str | None = None
    version_tag: str | None = None


class MergeFlow:
    def __init__(self, ctx: WorkflowContext, params: MergeParams) -> None:
        self.ctx = ctx
        self.params = params

    @property
    def handlers(self) -> Mapping[Stage, StepHandler[MergeState]]:
        return {
            Stage.NONE: self.integrate,
            Stage.STAGE_MERGED: self.sort_by_scope,
            Stage.STAGE_REBASED: self.sort_by_scope,
            Stage.STAGE_SCOPED: self.wrap_up,
        }

    @property
    def breadcrumb_tag(self) -> str:
        return f"{self.ctx.config.breadcrumb_prefix}{self.params.local_branch}"

    def _pause(self, state: MergeState, next_stage: Stage, stopped: Stopped) -> StepPause:
        return StepPause(
            continuation=Continuation(stage=next_stage, invocation=state.invocation, stopped=stopped)
        )

    # ---------------------------------------------------------------------
    # NONE
    # ---------------------------------------------------------------------

    def _resolve_upstream(self) -> Result[str, TipError]:
        repo = self.ctx.repo
        remote_branch = parse_remote_branch(self.params.rebase_ref)
        if remote_branch is not None and repo.remote_exists(remote_branch.remote):
            self.ctx.console.debug(f"git fetch --prune {remote_branch.remote}")
            fetched = repo.fetch(remote_branch.remote, prune=True)
            if isinstance(fetched, Err):
                return Err(from_git_error(fetched.error, "Fetch failed", kind="network"))

        resolved = repo.rev_parse(self.params.rebase_ref)
        if isinstance(resolved, Err):
            return Err(
                usage(f"Please specify a valid 'rebaseRef', not: {self.params.rebase_ref}")
            )
        return Ok(resolved.value)

    def _linear_base(self, upstream_sha: str) -> Result[str, TipError]:
        repo = self.ctx.repo
        if repo.tag_exists(self.breadcrumb_tag):
            crumb = repo.tag_commit(self.breadcrumb_tag)
            if isinstance(crumb, Err):
                return Err(from_git_error(crumb.error, f"Cannot read {self.breadcrumb_tag}"))
            return Ok(crumb.value)

        base = repo.merge_base(upstream_sha, "HEAD")
        if isinstance(base, Err):
            return Err(from_git_error(base.error, "Cannot find merge base"))
        return Ok(base.value)

    def integrate(self, state: MergeState) -> Result[StepOutcome[MergeState], TipError]:
        ctx = self.ctx
        repo = ctx.repo

        for check in (ctx.insist_tidy(), ctx.insist_bump_helper(self.params.add_version_tag)):
            if isinstance(check, Err):
                return check

        if not repo.branch_exists(self.params.local_branch):
            return Err(usage(f"Please specify an existing 'localBranch', not: {self.params.local_branch}"))

        upstream_sha = self._resolve_upstream()
        if isinstance(upstream_sha, Err):
            return upstream_sha

        if repo.current_branch() != self.params.local_branch:
            checked_out = repo.checkout(self.params.local_branch)
            if isinstance(checked_out, Err):
                return Err(from_git_error(checked_out.error, f"Cannot checkout {self.params.local_branch}"))

        boundary = resolve_scope_boundary(ctx, self.params.scope_boundary)
        if isinstance(boundary, Err):
            return boundary

        invocation = state.invocation
        if boundary.value is not None:
            ctx.console.info(f"git put-wise --scope: {boundary.value[:7]}")
            invocation = invocation.with_positional(SCOPE_BOUNDARY_POSITION, boundary.value)
        state = replace(state, scope_boundary=boundary.value, invocation=invocation)

        if self.params.linear:
            base = self._linear_base(upstream_sha.value)
            if isinstance(base, Err):
                return base
            ctx.console.info(f"git rebase --onto {self.params.rebase_ref} {base.value[:7]}")
            result = repo.rebase(upstream_sha.value, base.value)
            next_stage = Stage.STAGE_REBASED
        else:
            if repo.is_ancestor(upstream_sha.value, "HEAD"):
                ctx.console.info(f"Already up to date with {self.params.rebase_ref}")
                return Ok(advance(replace(state, stage=Stage.STAGE_MERGED)))
            ctx.console.info(f"git merge {self.params.rebase_ref}")
            result = repo.merge(upstream_sha.value)
            next_stage = Stage.STAGE_MERGED

        if isinstance(result, Err):
            return Err(from_git_error(result.error, "Integration failed"))
        if isinstance(result.value, Stopped):
            return Ok(self._pause(state, next_stage, result.value))
        return Ok(advance(replace(state, stage=next_stage)))

    # ---------------------------------------------------------------------
    # STAGE_MERGED / STAGE_REBASED
    # ---------------------------------------------------------------------

    def _insist_on_local_branch(self) -> Result[None, TipError]:
        current = self.ctx.repo.current_branch()
        if current != self.params.local_branch:
            return Err(
                precondition(
                    f"Expected to be on '{self.params.local_branch}', not: {current or '(detached HEAD)'}"
                )
            )
        return Ok(None)

    def sort_by_scope(self, state: MergeState) -> Result[StepOutcome[MergeState], TipError]:
        on_branch = self._insist_on_local_branch()
        if isinstance(on_branch, Err):
            return on_branch

        scoped = replace(state, stage=Stage.STAGE_SCOPED)
        boundary = state.scope_boundary
        if boundary is None:
            self.ctx.console.debug("No scope boundary: skipping sort-by-scope")
            return Ok(advance(scoped))
        if not self.ctx.capabilities.scoping:
            self.ctx.console.warning("git-put-wise not installed: skipping sort-by-scope")
            self.ctx.console.print(self.ctx.capabilities.scoping_hint, Style.DIM)
            return Ok(advance(scoped))

        self.ctx.console.info(f"Sorting commits by scope above {boundary[:7]}")
        sorted_ = self.ctx.scope.sort(boundary)
        if isinstance(sorted_, Err):
            return sorted_
        if isinstance(sorted_.value, Stopped):
            return Ok(self._pause(state, Stage.STAGE_SCOPED, sorted_.value))
        return Ok(advance(scoped))

    # ---------------------------------------------------------------------
    # STAGE_SCOPED
    # ---------------------------------------------------------------------

    def wrap_up(self, state: MergeState) -> Result[StepOutcome[MergeState], TipError]:
        ctx = self.ctx
        repo = ctx.repo

        on_branch = self._insist_on_local_branch()
        if isinstance(on_branch, Err):
            return on_branch

        version_tag: str | None = None
        if self.params.add_version_tag:
            checked = ctx.insist_bump_helper(True)
            if isinstance(checked, Err):
                return checked
            stamped = stamp_tip_version(ctx, self.params.rebase_ref, state.scope_boundary, fetch=False)
            if isinstance(stamped, Err):
                return stamped
            version_tag = stamped.value

        if self.params.linear:
            upstream_sha = repo.rev_parse(self.params.rebase_ref)
            if isinstance(upstream_sha, Err):
                return Err(from_git_error(upstream_sha.error, "Cannot resolve 'rebaseRef'"))
            crumb = repo.create_tag(self.breadcrumb_tag, upstream_sha.value, force=True)
            if isinstance(crumb, Err):
                return Err(from_git_error(crumb.error, f"Cannot record {self.breadcrumb_tag}"))
            ctx.console.debug(f"Breadcrumb {self.breadcrumb_tag} -> {upstream_sha.value[:7]}")

        if self.params.push_remote:
            ctx.console.info(f"git push {self.params.push_remote} {self.params.local_branch}")
            pushed = repo.push(
                self.params.push_remote,
                self.params.local_branch,
                force_with_lease=self.params.linear,
            )
            if isinstance(pushed, Err):
                return Err(from_git_error(pushed.error, "Push failed", kind="network"))
            if version_tag is not None:
                reported = self._report_remote_tag(self.params.push_remote, version_tag)
                if isinstance(reported, Err):
                    return reported

        return Ok(finish(replace(state, stage=Stage.DONE, version_tag=version_tag)))

    def _report_remote_tag(self, remote: str, tag: str) -> Result[None, TipError]:
        """Say whether ``remote`` has the new version tag; a mismatch is never fixed here."""
        repo = self.ctx.repo
        local = repo.tag_commit(tag)
        if isinstance(local, Err):
            return Err(from_git_error(local.error, f"Cannot resolve {tag}"))

        verified = verify_tag_at_commit(repo, tag, remote, local.value)
        if isinstance(verified, Err):
            return Err(from_git_error(verified.error, f"Cannot check {tag} on {remote}", kind="network"))

        match verified.value:
            case TagPresent():
                self.ctx.console.debug(f"{remote} already has {tag}")
            case TagAbsent():
                self.ctx.console.info(f"Version tag {tag} is local only (git push {remote} {tag})")
            case TagConflict(actual_commit=actual):
                self.ctx.console.warning(
                    f"{remote} has {tag} at {actual[:7]}, not {local.value[:7]}: leaving both alone"
                )
        return Ok(None)


def run_merge(
    ctx: WorkflowContext,
    params: MergeParams,
    stage: Stage = Stage.NONE,
) -> Result[WorkflowOutcome[MergeState], TipError]:
    """Run (or resume, when ``stage`` is past NONE) the merge/sort flow."""
    if stage is not Stage.NONE:
        settled = ctx.insist_settled()
        if isinstance(settled, Err):
            return settled

    initial = MergeState(
        stage=stage,
        invocation=ctx.invocation,
        # Resumed runs trust the boundary recorded in their arguments.
        scope_boundary=None if stage is Stage.NONE else params.scope_boundary,
    )
    flow = MergeFlow(ctx, params)
    return run_workflow(
        initial_state=initial,
        get_stage=lambda s: s.stage,
        handlers=flow.handlers,
        adapters=select_adapter(ctx.repo, ctx.console, ctx.config.task_runner, ctx.capabilities.task_runner),
    )
