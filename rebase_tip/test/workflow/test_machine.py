"""Tests for workflow/machine.py."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Stopped
from rebase_tip.workflow.errors import TipError, usage
from rebase_tip.workflow.machine import (
    Completed,
    StepOutcome,
    StepPause,
    Suspended,
    advance,
    finish,
    run_workflow,
)
from rebase_tip.workflow.model import Continuation, Invocation, Stage


@dataclass(frozen=True)
class State:
    stage: Stage
    visited: tuple[Stage, ...] = ()


@dataclass
class RecordingAdapter:
    queued: list[Continuation] = field(default_factory=list)
    fail: bool = False

    def queue(self, continuation: Continuation) -> Result[None, TipError]:
        if self.fail:
            return Err(usage("cannot queue"))
        self.queued.append(continuation)
        return Ok(None)


def _to(next_stage: Stage):
    def handler(state: State) -> Result[StepOutcome[State], TipError]:
        return Ok(advance(replace(state, stage=next_stage, visited=(*state.visited, state.stage))))

    return handler


def _pause(next_stage: Stage):
    def handler(state: State) -> Result[StepOutcome[State], TipError]:
        continuation = Continuation(
            stage=next_stage,
            invocation=Invocation(program=("prog",), args=()),
            stopped=Stopped(operation="rebase"),
        )
        return Ok(StepPause(continuation=continuation))

    return handler


def _run(initial: State, handlers, adapter: RecordingAdapter | None = None):
    adapter = adapter or RecordingAdapter()
    return run_workflow(
        initial_state=initial,
        get_stage=lambda s: s.stage,
        handlers=handlers,
        adapters=lambda _: adapter,
    )


class TestRunWorkflow:
    def test_runs_to_done(self) -> None:
        handlers = {Stage.NONE: _to(Stage.STAGE_REBASED), Stage.STAGE_REBASED: _to(Stage.DONE)}

        result = _run(State(Stage.NONE), handlers)

        assert result == Ok(Completed(State(Stage.DONE, (Stage.NONE, Stage.STAGE_REBASED))))

    def test_finish_short_circuits(self) -> None:
        handlers = {
            Stage.NONE: lambda s: Ok(finish(replace(s, stage=Stage.DONE))),
            Stage.STAGE_REBASED: _to(Stage.DONE),
        }

        result = _run(State(Stage.NONE), handlers)

        assert result == Ok(Completed(State(Stage.DONE)))

    def test_resume_skips_earlier_stages(self) -> None:
        handlers = {Stage.NONE: _pause(Stage.STAGE_REBASED), Stage.STAGE_REBASED: _to(Stage.DONE)}

        result = _run(State(Stage.STAGE_REBASED), handlers)

        assert isinstance(result, Ok)
        assert isinstance(result.value, Completed)
        assert result.value.state.visited == (Stage.STAGE_REBASED,)

    def test_pause_queues_continuation(self) -> None:
        adapter = RecordingAdapter()
        handlers = {Stage.NONE: _pause(Stage.STAGE_REBASED), Stage.STAGE_REBASED: _to(Stage.DONE)}

        result = _run(State(Stage.NONE), handlers, adapter)

        assert isinstance(result, Ok)
        assert isinstance(result.value, Suspended)
        assert result.value.continuation.stage is Stage.STAGE_REBASED
        assert adapter.queued == [result.value.continuation]

    def test_queue_failure_is_error(self) -> None:
        handlers = {Stage.NONE: _pause(Stage.STAGE_REBASED)}

        result = _run(State(Stage.NONE), handlers, RecordingAdapter(fail=True))

        assert isinstance(result, Err)
        assert result.error.message == "cannot queue"

    def test_handler_error_propagates(self) -> None:
        handlers = {Stage.NONE: lambda _: Err(usage("bad args"))}

        result = _run(State(Stage.NONE), handlers)

        assert result == Err(usage("bad args"))

    def test_unknown_stage(self) -> None:
        result = _run(State(Stage.STAGE_MERGED), {Stage.NONE: _to(Stage.DONE)})

        assert isinstance(result, Err)
        assert result.error.kind == "usage"

    def test_done_returns_immediately(self) -> None:
        assert _run(State(Stage.DONE), {}) == Ok(Completed(State(Stage.DONE)))
