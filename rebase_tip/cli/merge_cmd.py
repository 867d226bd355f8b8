"""git-rebase-tip-merge: merge upstream into a local branch, then sort by scope."""

from __future__ import annotations

import sys

import typer

from rebase_tip import __version__
from rebase_tip.cli._helpers import bool_arg, guarded, optional_arg, run_app, unwrap_or_exit
from rebase_tip.cli.context import build_context, resume_stage
from rebase_tip.core.errors import ExitCode
from rebase_tip.workflow.machine import Suspended
from rebase_tip.workflow.merge import MergeParams, run_merge

MODULE = "rebase_tip.cli.merge_cmd"

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=int(ExitCode.OK))


@app.command()
def merge(
    rebase_ref: str = typer.Argument(..., help="Ref to integrate, e.g. origin/main."),
    local_branch: str = typer.Argument(..., help="Local branch that receives the changes."),
    push_remote: str = typer.Argument("-", help="Remote to push the result to, or '-'."),
    add_version_tag: str = typer.Argument("true", help="Stamp a pre-release version tag (true|false)."),
    scope_boundary: str = typer.Argument("-", help="Private/public boundary commit, or '-' to ask git-put-wise."),
    linear: bool = typer.Option(
        False,
        "--linear",
        help="Rebase instead of merging (keeps a merge-base breadcrumb tag).",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Integrate REBASE_REF into LOCAL_BRANCH, sort by scope, tag, and push."""
    params = MergeParams(
        rebase_ref=rebase_ref,
        local_branch=local_branch,
        push_remote=optional_arg(push_remote),
        add_version_tag=bool_arg("addVersionTag", add_version_tag, True),
        scope_boundary=optional_arg(scope_boundary),
        linear=linear,
    )

    def body() -> None:
        ctx = build_context(MODULE)
        outcome = unwrap_or_exit(run_merge(ctx, params, resume_stage(ctx)), ctx.console)
        if isinstance(outcome, Suspended):
            raise typer.Exit(code=int(ExitCode.FATAL))

    guarded(body)


def main() -> None:
    sys.exit(run_app(app))


if __name__ == "__main__":
    main()
