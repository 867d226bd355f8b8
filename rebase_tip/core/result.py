"""Result type for explicit error handling.

Every operation that can fail hands back either ``Ok(value)`` or
``Err(error)`` instead of raising, so callers decide what a failure means
at the point where they have the context to do so. Callers narrow with
``isinstance(result, Err)`` and return early, or ``match``:

    match repo.rev_parse("origin/main"):
        case Ok(sha):
            console.info(f"upstream at {sha}")
        case Err(e):
            console.error(e.message)
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Err", "Ok", "Result"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
