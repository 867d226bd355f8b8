from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

import typer

from rebase_tip.core.config import Config, resolve_config
from rebase_tip.core.errors import ExitCode
from rebase_tip.core.result import Err
from rebase_tip.git.repository import Repository
from rebase_tip.helpers.bump import BumpHelper
from rebase_tip.helpers.scope import PutWiseScope
from rebase_tip.output.console import RichConsole, parse_level
from rebase_tip.platform.capabilities import detect_capabilities
from rebase_tip.workflow.context import WorkflowContext
from rebase_tip.workflow.model import Invocation, Stage, parse_stage


def build_invocation(
    config: Config,
    module: str,
    argv: Sequence[str] | None = None,
) -> Invocation:
    """Describe how to start this entry point again with the same arguments."""
    argv = list(sys.argv if argv is None else argv)
    script = Path(argv[0]) if argv and argv[0] else None

    if script is not None and script.is_file():
        program: tuple[str, ...] = (str(script.resolve()),)
    else:
        program = (sys.executable, "-m", module)

    args = config.command_args if config.command_args is not None else tuple(argv[1:])
    return Invocation(program=program, args=args)


def build_context(module: str, argv: Sequence[str] | None = None) -> WorkflowContext:
    config_result = resolve_config()
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ExitCode.FATAL))
    config = config_result.value

    console = RichConsole(level=parse_level(config.log_level))

    toplevel = Repository(Path.cwd()).toplevel()
    if isinstance(toplevel, Err):
        console.error(toplevel.error.message)
        raise typer.Exit(code=int(ExitCode.FATAL))
    repo = Repository(toplevel.value)

    capabilities = detect_capabilities()
    return WorkflowContext(
        repo=repo,
        console=console,
        config=config,
        capabilities=capabilities,
        bumper=BumpHelper(repo),
        scope=PutWiseScope(repo, capabilities),
        invocation=build_invocation(config, module, argv),
    )


def resume_stage(ctx: WorkflowContext) -> Stage:
    """The stage a re-invocation resumes at; NONE for a fresh run."""
    stage = parse_stage(ctx.config.resume_stage)
    if stage is None:
        ctx.console.error(f"Unknown resume stage: {ctx.config.resume_stage}")
        raise typer.Exit(code=int(ExitCode.FATAL))
    if stage is not Stage.NONE:
        ctx.console.debug(f"Resuming at {stage}")
    return stage
