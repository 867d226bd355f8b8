"""Resumable state-machine driver.

A workflow is a mapping from Stage to a handler. The driver starts at
whatever stage the resume token names and calls handlers until one
finishes, fails, or pauses on a conflict. A pause hands the
Continuation to the adapter that matches the paused operation, which
arranges for the program to be started again at the next stage.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.workflow.continuation import ContinuationAdapter
from rebase_tip.workflow.errors import TipError
from rebase_tip.workflow.model import Continuation, Stage


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    state: S


@dataclass(frozen=True, slots=True)
class StepPause:
    continuation: Continuation


@dataclass(frozen=True, slots=True)
class StepFinish[S]:
    state: S


type StepOutcome[S] = StepAdvance[S] | StepPause | StepFinish[S]
type StepHandler[S] = Callable[[S], Result[StepOutcome[S], TipError]]


@dataclass(frozen=True, slots=True)
class Completed[S]:
    state: S


@dataclass(frozen=True, slots=True)
class Suspended:
    continuation: Continuation


type WorkflowOutcome[S] = Completed[S] | Suspended


def advance[S](state: S) -> StepAdvance[S]:
    return StepAdvance(state=state)


def finish[S](state: S) -> StepFinish[S]:
    return StepFinish(state=state)


def run_workflow[S](
    *,
    initial_state: S,
    get_stage: Callable[[S], Stage],
    handlers: Mapping[Stage, StepHandler[S]],
    adapters: Callable[[Continuation], ContinuationAdapter],
) -> Result[WorkflowOutcome[S], TipError]:
    current = initial_state

    while True:
        stage = get_stage(current)
        if stage is Stage.DONE:
            return Ok(Completed(state=current))

        handler = handlers.get(stage)
        if handler is None:
            return Err(TipError(kind="usage", message=f"unknown workflow stage: {stage}"))

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome

        match outcome.value:
            case StepFinish(state=state):
                return Ok(Completed(state=state))
            case StepPause(continuation=continuation):
                queued = adapters(continuation).queue(continuation)
                if isinstance(queued, Err):
                    return queued
                return Ok(Suspended(continuation=continuation))
            case StepAdvance(state=state):
                current = state
