"""Tests for the bump-version-tag and put-wise adapters."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from _support import GitSandbox

from rebase_tip.core.config import HelperOptions
from rebase_tip.core.result import Err, Ok
from rebase_tip.git.repository import Repository
from rebase_tip.helpers.bump import BumpHelper
from rebase_tip.helpers.scope import PutWiseScope
from rebase_tip.platform.capabilities import PUT_WISE, SORT_BY_SCOPE, Capabilities


def completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


class TestBumpHelper:
    @patch("subprocess.run")
    def test_next_version_takes_last_line(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(stdout="Current: 1.2.3\n1.2.4\n")

        result = BumpHelper(Repository(tmp_path)).next_version()

        assert result == Ok("1.2.4")
        assert mock_run.call_args[0][0] == ["git", "bump-version-tag", "p", "--check", "--", "-"]

    @patch("subprocess.run")
    def test_next_version_failure_keeps_stderr(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(returncode=1, stderr="ERROR: no version tag\n")

        result = BumpHelper(Repository(tmp_path)).next_version()

        assert isinstance(result, Err)
        assert result.error.kind == "tool_failed"
        assert result.error.hint == "ERROR: no version tag"

    @patch("subprocess.run")
    def test_next_version_empty_output(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(stdout="\n")

        assert isinstance(BumpHelper(Repository(tmp_path)).next_version(), Err)

    @patch("subprocess.run")
    def test_create_tag_passes_options(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed()

        result = BumpHelper(Repository(tmp_path)).create_tag(
            "1.2.4-alpha.2",
            HelperOptions(no_normalize=True, restrict_local=False),
        )

        assert result == Ok(None)
        assert mock_run.call_args[0][0] == ["git", "bump-version-tag", "1.2.4-alpha.2", "--", "-"]
        env = mock_run.call_args.kwargs["env"]
        assert env["BMP_NO_NORMALIZE"] == "true"
        assert env["BMP_RESTRICT_LOCAL"] == "false"

    @patch("subprocess.run")
    def test_create_tag_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(returncode=2, stderr="tag exists\n")

        result = BumpHelper(Repository(tmp_path)).create_tag("x", HelperOptions())

        assert isinstance(result, Err)
        assert result.error.hint == "tag exists"


class TestPutWiseScope:
    SCOPING = Capabilities(put_wise=True, sort_by_scope=True)

    @patch("subprocess.run")
    def test_boundary_unavailable(self, mock_run: MagicMock, tmp_path: Path) -> None:
        scope = PutWiseScope(Repository(tmp_path), Capabilities(put_wise=True))

        assert scope.available is False
        assert scope.boundary() == Ok(None)
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_boundary(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(stdout="abc1234\n")

        result = PutWiseScope(Repository(tmp_path), self.SCOPING).boundary()

        assert result == Ok("abc1234")
        assert mock_run.call_args[0][0] == ["git", "put-wise", "--scope"]
        assert mock_run.call_args.kwargs["env"]["LOG_LEVEL"] == ""

    @patch("subprocess.run")
    def test_boundary_empty_means_none(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(stdout="")

        assert PutWiseScope(Repository(tmp_path), self.SCOPING).boundary() == Ok(None)

    @patch("subprocess.run")
    def test_boundary_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed(returncode=1, stderr="not a put-wise project\n")

        result = PutWiseScope(Repository(tmp_path), self.SCOPING).boundary()

        assert isinstance(result, Err)
        assert PUT_WISE.removeprefix("git-") in result.error.message
        assert result.error.hint == "not a put-wise project"

    @patch("subprocess.run")
    def test_sort_runs_helper(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = completed()

        result = PutWiseScope(Repository(tmp_path), self.SCOPING).sort("abc1234")

        assert result == Ok(None)
        assert mock_run.call_args[0][0] == [SORT_BY_SCOPE, "abc1234"]

    def test_sort_failure_outside_rebase(self, sandbox: GitSandbox) -> None:
        # The helper is not installed here, so it fails without starting a rebase.
        result = PutWiseScope(sandbox.repo, self.SCOPING).sort("HEAD")

        assert isinstance(result, Err)
        assert "sort commits by scope" in result.error.message
