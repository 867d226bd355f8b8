"""Shared helpers for both entry points."""

from __future__ import annotations

from collections.abc import Callable, Sequence

import click
import typer

from rebase_tip.core.errors import ExitCode
from rebase_tip.core.result import Err, Result
from rebase_tip.core.structured import parse_bool
from rebase_tip.output.console import ConsoleProtocol, Style
from rebase_tip.workflow.errors import TipError


def unwrap_or_exit[T](result: Result[T, TipError], console: ConsoleProtocol) -> T:
    """Return the Ok value, or report the error and exit 1.

    Replaces the pattern:
        match result:
            case Err(e):
                console.error(e.message)
                if e.hint:
                    console.print(f"hint: {e.hint}", Style.DIM)
                raise typer.Exit(code=1)
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        error = result.error
        console.error(error.message)
        if error.hint:
            console.print(f"hint: {error.hint.rstrip()}", Style.DIM)
        raise typer.Exit(code=int(ExitCode.FATAL))
    return result.value


def optional_arg(value: str | None) -> str | None:
    """Map the "-" placeholder (and empty strings) to None."""
    if value is None:
        return None
    value = value.strip()
    return None if value in ("", "-") else value


def bool_arg(name: str, value: str | None, default: bool) -> bool:
    """Parse a true/false positional; "-" keeps the default."""
    text = optional_arg(value)
    if text is None:
        return default
    parsed = parse_bool(text)
    if parsed is None:
        typer.echo(f"error: Please specify true or false for '{name}', not: {value}", err=True)
        raise typer.Exit(code=int(ExitCode.FATAL))
    return parsed


def guarded(body: Callable[[], None]) -> None:
    """Run a command body, mapping interrupts and crashes to exit codes."""
    try:
        body()
    except typer.Exit:
        raise
    except KeyboardInterrupt:
        typer.echo("error: interrupted", err=True)
        raise typer.Exit(code=int(ExitCode.INTERRUPTED)) from None
    except Exception as e:  # noqa: BLE001 - last-resort exit code
        typer.echo(f"error: unexpected failure: {e!r}", err=True)
        raise typer.Exit(code=int(ExitCode.INTERNAL)) from e


def run_app(app: typer.Typer, args: Sequence[str] | None = None) -> int:
    """Run ``app`` and return its exit code.

    Usage errors exit 1; click's own exit 2 is reserved for internal failures.
    """
    try:
        code = app(args=list(args) if args is not None else None, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return int(ExitCode.FATAL)
    except click.Abort:
        typer.echo("error: interrupted", err=True)
        return int(ExitCode.INTERRUPTED)
    return code if isinstance(code, int) else int(ExitCode.OK)
