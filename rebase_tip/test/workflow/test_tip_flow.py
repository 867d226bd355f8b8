"""Tests for the branch-creation flow (workflow/tip.py)."""

from __future__ import annotations

from _support import FakeBumper, GitSandbox, commit, git, make_context

from rebase_tip.core.config import Config
from rebase_tip.core.result import Err, Ok
from rebase_tip.output.console import MockConsole
from rebase_tip.platform.capabilities import Capabilities
from rebase_tip.version.tag import parse
from rebase_tip.workflow.machine import Completed, Suspended
from rebase_tip.workflow.model import Stage
from rebase_tip.workflow.tip import TipParams, run_tip, tip_branch_name, tip_branch_of


def _expected_branch(sandbox: GitSandbox, version: str | None = "v1.2.3", slug: str = "feature") -> str:
    date = git(sandbox.work, "log", "-1", "--format=%cs", "origin/main")
    short = git(sandbox.work, "rev-parse", "--short=7", "origin/main")
    return tip_branch_name("tip/", slug, date, short, parse(version) if version else None)


def _all_refs(sandbox: GitSandbox) -> str:
    return git(sandbox.work, "for-each-ref", "--format=%(refname) %(objectname)")


def _upstream_with_release(sandbox: GitSandbox) -> None:
    """Upstream: v1.2.3 plus one more commit. Local main: one private commit."""
    sandbox.publish("lib.txt", "1\n", tags=("v1.2.3",))
    sandbox.publish("lib.txt", "2\n")
    commit(sandbox.work, "private.txt", "mine\n")


class TestTipBranchName:
    def test_with_version(self) -> None:
        version = parse("v1.2.3")
        assert tip_branch_name("tip/", "feat", "2024-05-01", "abc1234", version) == "tip/feat-2024-05-01-v1.2.3-abc1234"

    def test_without_version(self) -> None:
        assert tip_branch_name("", "feat", "2024-05-01", "abc1234") == "feat-2024-05-01-abc1234"


class TestTipFlow:
    def test_creates_rebases_and_tags(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        bumper = FakeBumper(sandbox.repo)
        ctx = make_context(sandbox.repo, bumper=bumper)

        result = run_tip(ctx, TipParams(slug="feature", upstream="origin/main"))

        assert isinstance(result, Ok)
        assert isinstance(result.value, Completed)
        branch = tip_branch_of(result.value)
        assert branch == _expected_branch(sandbox)
        assert sandbox.repo.current_branch() == branch
        assert sandbox.repo.is_ancestor("origin/main", "HEAD") is True
        # v1.2.3, the extra upstream commit, and the private commit.
        assert bumper.created == ["1.2.4-alpha.2"]
        assert sandbox.repo.tag_commit("1.2.4-alpha.2") == sandbox.repo.rev_parse("HEAD")
        assert result.value.state.version_tag == "1.2.4-alpha.2"

    def test_second_run_is_a_no_op(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        params = TipParams(slug="feature", upstream="origin/main")
        first = run_tip(make_context(sandbox.repo), params)
        refs_before = _all_refs(sandbox)

        console = MockConsole()
        bumper = FakeBumper(sandbox.repo)
        second = run_tip(make_context(sandbox.repo, console=console, bumper=bumper), params)

        assert isinstance(first, Ok) and isinstance(second, Ok)
        assert tip_branch_of(second.value) == tip_branch_of(first.value)
        assert isinstance(second.value, Completed) and second.value.state.already_tipped is True
        assert _all_refs(sandbox) == refs_before
        assert bumper.created == []
        assert console.find("Already TIPped")

    def test_conflict_then_resume(self, sandbox: GitSandbox) -> None:
        sandbox.publish("README", "upstream\n", tags=("v1.2.3",))
        commit(sandbox.work, "README", "local\n")
        args = ("feature", "origin/main")
        bumper = FakeBumper(sandbox.repo)
        params = TipParams(slug="feature", upstream="origin/main")

        paused = run_tip(make_context(sandbox.repo, bumper=bumper, args=args), params)

        assert isinstance(paused, Ok)
        assert isinstance(paused.value, Suspended)
        assert paused.value.continuation.stage is Stage.STAGE_REBASED
        todo = (sandbox.work / ".git" / "rebase-merge" / "git-rebase-todo").read_text(encoding="utf-8")
        assert "TIP_REBASE_CMD=STAGE_REBASED true feature origin/main &" in todo
        assert bumper.created == []

        # The operator resolves and continues; the queued exec line runs `true`.
        (sandbox.work / "README").write_text("resolved\n", encoding="utf-8")
        git(sandbox.work, "add", "README")
        git(sandbox.work, "rebase", "--continue")

        console = MockConsole()
        resumed = run_tip(
            make_context(sandbox.repo, console=console, bumper=bumper, args=args),
            params,
            Stage.STAGE_REBASED,
        )

        assert isinstance(resumed, Ok)
        assert tip_branch_of(resumed.value) == _expected_branch(sandbox)
        assert bumper.created == ["1.2.4-alpha.1"]
        assert not console.find("Created TIP branch")

    def test_skip_rebase(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        ctx = make_context(sandbox.repo, capabilities=Capabilities())

        result = run_tip(ctx, TipParams(slug="feature", upstream="origin/main", add_version_tag=False, skip_rebase=True))

        assert isinstance(result, Ok)
        assert sandbox.repo.current_branch() == _expected_branch(sandbox)
        assert sandbox.repo.is_ancestor("origin/main", "HEAD") is False

    def test_no_version_tags(self, sandbox: GitSandbox) -> None:
        sandbox.publish("lib.txt", "1\n")
        console = MockConsole()
        bumper = FakeBumper(sandbox.repo)

        result = run_tip(make_context(sandbox.repo, console=console, bumper=bumper), TipParams("feature", "origin/main"))

        assert isinstance(result, Ok)
        assert tip_branch_of(result.value) == _expected_branch(sandbox, version=None)
        assert console.find("No version tag found: Skipping TIP version tag")
        assert bumper.created == []

    def test_mirror_is_created_and_fast_forwarded(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        ctx = make_context(sandbox.repo)
        params = TipParams(slug="feature", upstream="origin/main", mirror="upstream-main", add_version_tag=False)

        assert isinstance(run_tip(ctx, params), Ok)
        assert sandbox.repo.rev_parse("upstream-main") == sandbox.repo.rev_parse("origin/main")

        newer = sandbox.publish("lib.txt", "3\n")
        assert isinstance(run_tip(make_context(sandbox.repo), params), Ok)
        assert sandbox.repo.rev_parse("upstream-main") == Ok(newer)

    def test_diverged_mirror(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        sandbox.repo.create_branch("upstream-main", "HEAD", checkout=False)

        result = run_tip(
            make_context(sandbox.repo),
            TipParams(slug="feature", upstream="origin/main", mirror="upstream-main"),
        )

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert "diverged" in result.error.message

    def test_liminal_branch_follows_tip(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        params = TipParams(slug="feature", upstream="origin/main", liminal="origin/liminal", add_version_tag=False)

        result = run_tip(make_context(sandbox.repo), params)

        assert isinstance(result, Ok)
        assert sandbox.repo.rev_parse("liminal") == sandbox.repo.rev_parse("HEAD")


class TestTipFlowErrors:
    def test_upstream_must_be_remote_branch(self, sandbox: GitSandbox) -> None:
        result = run_tip(make_context(sandbox.repo), TipParams(slug="feature", upstream="main"))

        assert isinstance(result, Err)
        assert result.error.kind == "usage"

    def test_unknown_remote_branch(self, sandbox: GitSandbox) -> None:
        result = run_tip(make_context(sandbox.repo), TipParams(slug="feature", upstream="origin/nope"))

        assert isinstance(result, Err)
        assert result.error.kind == "usage"
        assert result.error.message == "No such remote branch: origin/nope"

    def test_empty_slug(self, sandbox: GitSandbox) -> None:
        result = run_tip(make_context(sandbox.repo), TipParams(slug=" ", upstream="origin/main"))

        assert isinstance(result, Err)
        assert result.error.kind == "usage"

    def test_dirty_tree(self, sandbox: GitSandbox) -> None:
        (sandbox.work / "scratch.txt").write_text("x", encoding="utf-8")

        result = run_tip(make_context(sandbox.repo), TipParams(slug="feature", upstream="origin/main"))

        assert isinstance(result, Err)
        assert result.error.message == "Working directory not tidy."

    def test_dirty_tree_on_resume(self, sandbox: GitSandbox) -> None:
        _upstream_with_release(sandbox)
        bumper = FakeBumper(sandbox.repo)
        (sandbox.work / "scratch.txt").write_text("x", encoding="utf-8")

        result = run_tip(
            make_context(sandbox.repo, bumper=bumper),
            TipParams(slug="feature", upstream="origin/main"),
            Stage.STAGE_REBASED,
        )

        assert isinstance(result, Err)
        assert result.error.message == "Working directory not tidy."
        assert bumper.created == []

    def test_missing_bump_helper(self, sandbox: GitSandbox) -> None:
        ctx = make_context(sandbox.repo, capabilities=Capabilities())

        result = run_tip(ctx, TipParams(slug="feature", upstream="origin/main"))

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert "git-bump-version-tag" in result.error.message

    def test_conflict_with_mr_action_but_no_mr(self, sandbox: GitSandbox) -> None:
        sandbox.publish("README", "upstream\n", tags=("v1.2.3",))
        commit(sandbox.work, "README", "local\n")
        config = Config().with_environ({"MR_REPO": str(sandbox.work), "MR_ACTION": "tip"})
        ctx = make_context(sandbox.repo, config=config, capabilities=Capabilities(bump_helper=True))

        result = run_tip(ctx, TipParams(slug="feature", upstream="origin/main"))

        assert isinstance(result, Err)
        assert result.error.kind == "precondition"
        assert "'mr' is not installed" in result.error.message
        todo = (sandbox.work / ".git" / "rebase-merge" / "git-rebase-todo").read_text(encoding="utf-8")
        assert "mr -d" not in todo

    def test_invalid_branch_name(self, sandbox: GitSandbox) -> None:
        result = run_tip(make_context(sandbox.repo), TipParams(slug="bad..slug", upstream="origin/main"))

        assert isinstance(result, Err)
        assert result.error.kind == "usage"
