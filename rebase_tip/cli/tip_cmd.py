"""git-rebase-tip: rebase the private line onto a fresh TIP branch."""

from __future__ import annotations

import sys

import typer

from rebase_tip import __version__
from rebase_tip.cli._helpers import bool_arg, guarded, optional_arg, run_app, unwrap_or_exit
from rebase_tip.cli.context import build_context, resume_stage
from rebase_tip.core.errors import ExitCode
from rebase_tip.workflow.machine import Suspended
from rebase_tip.workflow.tip import TipParams, run_tip, tip_branch_of

MODULE = "rebase_tip.cli.tip_cmd"

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
def tip(
    slug: str = typer.Argument(..., help="Short name for the TIP branch."),
    upstream: str = typer.Argument(..., help="Remote branch to rebase onto, e.g. origin/main."),
    liminal: str = typer.Argument("-", help="Remote branch kept in sync with the latest TIP, or '-'."),
    mirror: str = typer.Argument("-", help="Local branch fast-forwarded to upstream, or '-'."),
    add_version_tag: str = typer.Argument("true", help="Stamp a pre-release version tag (true|false)."),
    skip_rebase: str = typer.Argument("false", help="Create the branch without rebasing (true|false)."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Create a TIP branch from HEAD rebased onto UPSTREAM and print its name."""
    params = TipParams(
        slug=slug,
        upstream=upstream,
        liminal=optional_arg(liminal),
        mirror=optional_arg(mirror),
        add_version_tag=bool_arg("addVersionTag", add_version_tag, True),
        skip_rebase=bool_arg("skipRebase", skip_rebase, False),
    )

    def body() -> None:
        ctx = build_context(MODULE)
        outcome = unwrap_or_exit(run_tip(ctx, params, resume_stage(ctx)), ctx.console)
        if isinstance(outcome, Suspended):
            raise typer.Exit(code=int(ExitCode.FATAL))

        branch = tip_branch_of(outcome)
        if branch:
            typer.echo(branch)

    guarded(body)


def main() -> None:
    sys.exit(run_app(app))


if __name__ == "__main__":
    main()
