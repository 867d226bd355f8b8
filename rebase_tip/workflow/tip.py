"""Branch-creation flow: rebase the private line onto a new TIP branch.

    NONE           validate, fetch, fast-forward the mirror, name the TIP
                   branch (or just check it out if it already exists),
                   create it and rebase it onto the upstream commit
    STAGE_REBASED  optionally stamp a version tag, sync the liminal branch
    DONE           print the TIP branch name

A conflict during the rebase pauses the flow; the continuation resumes it
at STAGE_REBASED once the operator finishes ``git rebase --continue``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.remote import RemoteBranch, parse_remote_branch
from rebase_tip.git.repository import Stopped
from rebase_tip.version.remote import largest_version_tag_for
from rebase_tip.version.tag import VersionTag
from rebase_tip.workflow.context import WorkflowContext
from rebase_tip.workflow.continuation import select_adapter
from rebase_tip.workflow.errors import TipError, from_git_error, precondition, usage
from rebase_tip.workflow.machine import (
    Completed,
    StepHandler,
    StepOutcome,
    StepPause,
    WorkflowOutcome,
    advance,
    finish,
    run_workflow,
)
from rebase_tip.workflow.model import Continuation, Stage
from rebase_tip.workflow.stamping import resolve_scope_boundary, stamp_tip_version

__all__ = ["TipFlow", "TipParams", "TipState", "run_tip", "tip_branch_name", "tip_branch_of"]


@dataclass(frozen=True, slots=True)
class TipParams:
    slug: str
    upstream: str
    liminal: str | None = None
    mirror: str | None = None
    add_version_tag: bool = True
    skip_rebase: bool = False


@dataclass(frozen=True, slots=True)
class TipState:
    stage: Stage
    tip_branch: str | None = None
    already_tipped: bool = False
    version_tag: str | None = None


def tip_branch_name(
    prefix: str,
    slug: str,
    date: str,
    short_sha: str,
    version: VersionTag | None = None,
) -> str:
    """``<prefix><slug>-<date>[-<version>]-<short sha>``."""
    parts = [f"{prefix}{slug}", date]
    if version is not None:
        parts.append(version.raw)
    parts.append(short_sha)
    return "-".join(parts)


class TipFlow:
    def __init__(self, ctx: WorkflowContext, params: TipParams) -> None:
        self.ctx = ctx
        self.params = params

    @property
    def handlers(self) -> Mapping[Stage, StepHandler[TipState]]:
        return {
            Stage.NONE: self.start,
            Stage.STAGE_REBASED: self.finish_tip,
        }

    # ---------------------------------------------------------------------
    # NONE
    # ---------------------------------------------------------------------

    def _upstream(self) -> Result[RemoteBranch, TipError]:
        parsed = parse_remote_branch(self.params.upstream)
        if parsed is None or not self.ctx.repo.remote_exists(parsed.remote):
            return Err(usage(f"Please specify a remote branch for 'upstream', not: {self.params.upstream}"))
        return Ok(parsed)

    def _fast_forward_mirror(self, upstream_sha: str) -> Result[None, TipError]:
        mirror = self.params.mirror
        if not mirror:
            return Ok(None)

        repo = self.ctx.repo
        if not repo.branch_exists(mirror):
            self.ctx.console.info(f"Creating mirror branch {mirror}")
            created = repo.create_branch(mirror, upstream_sha, checkout=False)
            if isinstance(created, Err):
                return Err(from_git_error(created.error, f"Cannot create mirror {mirror}"))
            return Ok(None)

        if repo.is_ancestor(upstream_sha, f"refs/heads/{mirror}"):
            return Ok(None)
        if not repo.is_ancestor(f"refs/heads/{mirror}", upstream_sha):
            return Err(precondition(f"Mirror branch '{mirror}' has diverged from {self.params.upstream}"))
        if repo.current_branch() == mirror:
            return Err(precondition(f"Cannot fast-forward the checked-out mirror branch '{mirror}'"))

        self.ctx.console.info(f"Fast-forwarding {mirror} to {upstream_sha[:7]}")
        moved = repo.force_branch(mirror, upstream_sha)
        if isinstance(moved, Err):
            return Err(from_git_error(moved.error, f"Cannot fast-forward {mirror}"))
        return Ok(None)

    def _target_branch(self, upstream_sha: str, version: VersionTag | None) -> Result[str, TipError]:
        repo = self.ctx.repo
        date = repo.commit_date(upstream_sha)
        if isinstance(date, Err):
            return Err(from_git_error(date.error, "Cannot read upstream commit date"))
        short = repo.short_sha(upstream_sha)
        if isinstance(short, Err):
            return Err(from_git_error(short.error, "Cannot shorten upstream commit"))

        name = tip_branch_name(
            self.ctx.config.tip_branch_prefix,
            self.params.slug,
            date.value,
            short.value,
            version,
        )
        if not repo.valid_branch_name(name):
            return Err(usage(f"Cannot make a valid branch name from slug '{self.params.slug}': {name}"))
        return Ok(name)

    def start(self, state: TipState) -> Result[StepOutcome[TipState], TipError]:
        ctx = self.ctx
        if not self.params.slug.strip():
            return Err(usage("Please specify a non-empty 'slug'"))

        for check in (ctx.insist_tidy(), ctx.insist_bump_helper(self.params.add_version_tag)):
            if isinstance(check, Err):
                return check

        upstream = self._upstream()
        if isinstance(upstream, Err):
            return upstream

        ctx.console.debug(f"git fetch --prune {upstream.value.remote}")
        fetched = ctx.repo.fetch(upstream.value.remote, prune=True)
        if isinstance(fetched, Err):
            return Err(from_git_error(fetched.error, "Fetch failed", kind="network"))

        if not ctx.repo.remote_branch_exists(str(upstream.value)):
            return Err(
                usage(
                    f"No such remote branch: {upstream.value}",
                    hint=f"Try: git branch --remotes --list '{upstream.value.remote}/*'",
                )
            )
        upstream_sha = ctx.repo.rev_parse(upstream.value.ref)
        if isinstance(upstream_sha, Err):
            return Err(from_git_error(upstream_sha.error, f"Invalid 'upstream': {upstream.value}", kind="usage"))

        mirrored = self._fast_forward_mirror(upstream_sha.value)
        if isinstance(mirrored, Err):
            return mirrored

        version = largest_version_tag_for(
            ctx.repo,
            str(upstream.value),
            ctx.console,
            ctx.config.tag_prefix,
            fetch=False,
        )
        if isinstance(version, Err):
            return Err(from_git_error(version.error, "Cannot resolve upstream version", kind="network"))

        target = self._target_branch(upstream_sha.value, version.value)
        if isinstance(target, Err):
            return target
        tip_branch = target.value

        if ctx.repo.branch_exists(tip_branch):
            checked_out = ctx.repo.checkout(tip_branch)
            if isinstance(checked_out, Err):
                return Err(from_git_error(checked_out.error, f"Cannot checkout {tip_branch}"))
            ctx.console.info(f"Already TIPped: {tip_branch}")
            return Ok(finish(replace(state, stage=Stage.DONE, tip_branch=tip_branch, already_tipped=True)))

        created = ctx.repo.create_branch(tip_branch, "HEAD")
        if isinstance(created, Err):
            return Err(from_git_error(created.error, f"Cannot create {tip_branch}"))
        ctx.console.info(f"Created TIP branch: {tip_branch}")

        rebased_state = replace(state, stage=Stage.STAGE_REBASED, tip_branch=tip_branch)
        if self.params.skip_rebase:
            return Ok(advance(rebased_state))

        ctx.console.info(f"git rebase {upstream.value} ({upstream_sha.value[:7]})")
        rebased = ctx.repo.rebase(upstream_sha.value)
        if isinstance(rebased, Err):
            return Err(from_git_error(rebased.error, "Rebase failed"))
        if isinstance(rebased.value, Stopped):
            return Ok(self._pause(Stage.STAGE_REBASED, rebased.value))
        return Ok(advance(rebased_state))

    # ---------------------------------------------------------------------
    # STAGE_REBASED
    # ---------------------------------------------------------------------

    def _sync_liminal(self, tip_branch: str) -> Result[None, TipError]:
        if not self.params.liminal:
            return Ok(None)

        parsed = parse_remote_branch(self.params.liminal)
        liminal = parsed.branch if parsed is not None else self.params.liminal
        if liminal == tip_branch or self.ctx.repo.current_branch() == liminal:
            return Ok(None)

        moved = self.ctx.repo.force_branch(liminal, tip_branch)
        if isinstance(moved, Err):
            return Err(from_git_error(moved.error, f"Cannot move liminal branch {liminal}"))
        self.ctx.console.info(f"Liminal branch {liminal} now at {tip_branch}")
        return Ok(None)

    def finish_tip(self, state: TipState) -> Result[StepOutcome[TipState], TipError]:
        ctx = self.ctx
        tip_branch = state.tip_branch or ctx.repo.current_branch()
        if tip_branch is None:
            return Err(precondition("HEAD is detached; cannot tell which TIP branch to finish"))

        version_tag: str | None = None
        if self.params.add_version_tag:
            checked = ctx.insist_bump_helper(True)
            if isinstance(checked, Err):
                return checked
            boundary = resolve_scope_boundary(ctx, None)
            if isinstance(boundary, Err):
                return boundary
            stamped = stamp_tip_version(ctx, self.params.upstream, boundary.value, fetch=False)
            if isinstance(stamped, Err):
                return stamped
            version_tag = stamped.value

        synced = self._sync_liminal(tip_branch)
        if isinstance(synced, Err):
            return synced

        return Ok(finish(replace(state, stage=Stage.DONE, tip_branch=tip_branch, version_tag=version_tag)))

    def _pause(self, next_stage: Stage, stopped: Stopped) -> StepPause:
        return StepPause(
            continuation=Continuation(stage=next_stage, invocation=self.ctx.invocation, stopped=stopped)
        )


def run_tip(
    ctx: WorkflowContext,
    params: TipParams,
    stage: Stage = Stage.NONE,
) -> Result[WorkflowOutcome[TipState], TipError]:
    """Run (or resume, when ``stage`` is past NONE) the branch-creation flow."""
    if stage is not Stage.NONE:
        settled = ctx.insist_settled()
        if isinstance(settled, Err):
            return settled

    flow = TipFlow(ctx, params)
    return run_workflow(
        initial_state=TipState(stage=stage),
        get_stage=lambda s: s.stage,
        handlers=flow.handlers,
        adapters=select_adapter(ctx.repo, ctx.console, ctx.config.task_runner, ctx.capabilities.task_runner),
    )


def tip_branch_of(outcome: WorkflowOutcome[TipState]) -> str | None:
    if isinstance(outcome, Completed):
        return outcome.state.tip_branch
    return None
