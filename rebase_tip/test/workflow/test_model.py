"""Tests for workflow/model.py."""

from __future__ import annotations

import pytest

from rebase_tip.workflow.model import Invocation, Stage, parse_stage


class TestStage:
    def test_str_is_resume_token(self) -> None:
        assert str(Stage.STAGE_REBASED) == "STAGE_REBASED"

    def test_parse_stage(self) -> None:
        assert parse_stage(None) is Stage.NONE
        assert parse_stage("") is Stage.NONE
        assert parse_stage("STAGE_SCOPED") is Stage.STAGE_SCOPED
        assert parse_stage(" stage_merged ") is Stage.STAGE_MERGED
        assert parse_stage("STAGE_BOGUS") is None


class TestInvocation:
    def test_positional_indexes(self) -> None:
        inv = Invocation(program=("prog",), args=("origin/main", "--linear", "-", "main"))
        assert inv.positional_indexes() == [0, 2, 3]

    def test_replace_existing_positional(self) -> None:
        inv = Invocation(program=("prog",), args=("origin/main", "main", "-", "true", "-"))
        assert inv.with_positional(4, "abc1234").args == ("origin/main", "main", "-", "true", "abc1234")

    def test_pads_missing_positionals(self) -> None:
        inv = Invocation(program=("prog",), args=("origin/main", "main"))
        assert inv.with_positional(4, "abc1234").args == ("origin/main", "main", "-", "-", "abc1234")

    def test_options_stay_after_positionals(self) -> None:
        inv = Invocation(program=("prog",), args=("origin/main", "main", "--linear"))
        assert inv.with_positional(4, "abc").args == ("origin/main", "main", "-", "-", "abc", "--linear")

    def test_original_unchanged(self) -> None:
        inv = Invocation(program=("prog",), args=("a",))
        inv.with_positional(0, "b")
        assert inv.args == ("a",)

    def test_frozen(self) -> None:
        inv = Invocation(program=("prog",), args=())
        with pytest.raises(AttributeError):
            inv.args = ("x",)  # type: ignore[misc]
