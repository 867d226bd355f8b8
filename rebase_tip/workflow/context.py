from __future__ import annotations

from dataclasses import dataclass

from rebase_tip.core.config import Config
from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Repository
from rebase_tip.helpers.bump import VersionBumper
from rebase_tip.helpers.scope import ScopeTool
from rebase_tip.output.console import ConsoleProtocol
from rebase_tip.platform.capabilities import Capabilities
from rebase_tip.version.synth import TipVersionSynthesizer
from rebase_tip.workflow.continuation import wait_until_settled
from rebase_tip.workflow.errors import TipError, from_git_error, precondition
from rebase_tip.workflow.model import Invocation


@dataclass(frozen=True, slots=True)
class WorkflowContext:
    """Everything a workflow needs, resolved once at startup."""

    repo: Repository
    console: ConsoleProtocol
    config: Config
    capabilities: Capabilities
    bumper: VersionBumper
    scope: ScopeTool
    invocation: Invocation

    def synthesizer(self) -> TipVersionSynthesizer:
        return TipVersionSynthesizer(
            self.repo,
            self.bumper,
            self.console,
            options=self.config.helper,
            prefix=self.config.tag_prefix,
        )

    def insist_tidy(self) -> Result[None, TipError]:
        clean = self.repo.is_clean()
        if isinstance(clean, Err):
            return Err(from_git_error(clean.error, "Cannot check working tree"))
        if not clean.value:
            return Err(
                precondition(
                    "Working directory not tidy.",
                    hint=f'Try: cd "{self.repo.path}" && git status',
                )
            )
        return Ok(None)

    def insist_settled(self) -> Result[None, TipError]:
        """A resumed run starts only after the paused operation is finished and committed."""
        settled = wait_until_settled(self.repo, self.console)
        if isinstance(settled, Err):
            return settled
        return self.insist_tidy()

    def insist_bump_helper(self, add_version_tag: bool) -> Result[None, TipError]:
        if add_version_tag and not self.capabilities.bump_helper:
            return Err(
                precondition(
                    "Missing system command 'git-bump-version-tag' (needed to add a version tag)",
                    hint=self.capabilities.bump_hint,
                )
            )
        return Ok(None)
