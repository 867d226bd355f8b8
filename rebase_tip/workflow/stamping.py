"""Version-tag stamping shared by both workflows."""

from __future__ import annotations

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.version.remote import largest_version_tag_for
from rebase_tip.workflow.context import WorkflowContext
from rebase_tip.workflow.errors import TipError, from_git_error


def stamp_tip_version(
    ctx: WorkflowContext,
    upstream: str,
    scope_boundary: str | None,
    *,
    fetch: bool,
) -> Result[str | None, TipError]:
    """Tag HEAD with a synthesized pre-release of the upstream's largest version.

    Returns the new tag name, or None when the upstream has no version tag
    to build on.
    """
    found = largest_version_tag_for(
        ctx.repo,
        upstream,
        ctx.console,
        ctx.config.tag_prefix,
        fetch=fetch,
    )
    if isinstance(found, Err):
        return Err(from_git_error(found.error, "Cannot resolve upstream version", kind="network"))

    base = found.value
    if base is None:
        ctx.console.warning("No version tag found: Skipping TIP version tag")
        return Ok(None)

    ctx.console.debug(f"Upstream version: {base}")
    tagged = ctx.synthesizer().synthesize(base, scope_boundary, ctx.config.stage_label)
    if isinstance(tagged, Err):
        return tagged

    ctx.console.success(f"Tagged TIP: {tagged.value}")
    return Ok(tagged.value)


def resolve_scope_boundary(ctx: WorkflowContext, given: str | None) -> Result[str | None, TipError]:
    """Use the boundary the operator gave, else ask put-wise (if installed)."""
    if given:
        resolved = ctx.repo.rev_parse(given)
        if isinstance(resolved, Err):
            return Err(from_git_error(resolved.error, f"Invalid scope boundary: {given}", kind="usage"))
        return Ok(resolved.value)

    boundary = ctx.scope.boundary()
    if isinstance(boundary, Err):
        return boundary
    return Ok(boundary.value)
