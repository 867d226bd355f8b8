"""Stamping a TIP with a synthesized pre-release version tag.

The tag reads ``<next version><sep><stage label><sep><distance>``, where
the distance counts commits from the upstream base tag to the scoped
head. Inside a Python project (a ``pyproject.toml`` at the root) the
separators are dropped so the tag stays a valid PEP 440 version
(``1.2.4alpha3``); elsewhere it is SemVer-like (``1.2.4-alpha.3``).

The bump helper will not create a pre-release while a release tag of the
same basevers exists, so any such release tag is deleted for the
duration of the create and then put back exactly as it was, whether or
not the create succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass

from rebase_tip.core.config import HelperOptions
from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.repository import Repository
from rebase_tip.helpers.bump import VersionBumper
from rebase_tip.output.console import ConsoleProtocol
from rebase_tip.version.tag import DEFAULT_PREFIX, VersionTag, parse
from rebase_tip.workflow.errors import TipError, from_git_error

__all__ = ["SavedTag", "TipVersionSynthesizer", "format_tip_version"]

PEP440_MARKER = "pyproject.toml"


@dataclass(frozen=True, slots=True)
class SavedTag:
    """A tag removed temporarily, with the object it pointed at."""

    name: str
    object_id: str


def format_tip_version(next_version: str, stage_label: str, distance: int, *, pep440: bool) -> str:
    dash, dot = ("", "") if pep440 else ("-", ".")
    return f"{next_version}{dash}{stage_label}{dot}{distance}"


class TipVersionSynthesizer:
    def __init__(
        self,
        repo: Repository,
        bumper: VersionBumper,
        console: ConsoleProtocol,
        *,
        options: HelperOptions | None = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self.repo = repo
        self.bumper = bumper
        self.console = console
        self.options = options or HelperOptions()
        self.prefix = prefix

    def distance(self, base: VersionTag, scope_boundary: str | None) -> Result[int, TipError]:
        scoped_head = scope_boundary or "HEAD"
        result = self.repo.count_commits(f"refs/tags/{base.raw}", scoped_head)
        if isinstance(result, Err):
            return Err(from_git_error(result.error, f"Cannot measure distance from {base.raw}"))
        return Ok(result.value)

    def uses_pep440(self) -> bool:
        root = self.repo.toplevel()
        return isinstance(root, Ok) and (root.value / PEP440_MARKER).is_file()

    def synthesize(
        self,
        base: VersionTag,
        scope_boundary: str | None,
        stage_label: str,
    ) -> Result[str, TipError]:
        """Create the TIP version tag on HEAD and return its name.

        Re-running with unchanged inputs yields the same name and leaves a
        single tag of that name.
        """
        next_version = self.bumper.next_version()
        if isinstance(next_version, Err):
            return next_version

        distance = self.distance(base, scope_boundary)
        if isinstance(distance, Err):
            return distance

        tip_version = format_tip_version(
            next_version.value,
            stage_label,
            distance.value,
            pep440=self.uses_pep440(),
        )

        # A previous run (whose TIP branch was since deleted) may have left it.
        if self.repo.tag_exists(tip_version):
            self.console.debug(f"git tag -d {tip_version}")
            deleted = self.repo.delete_tag(tip_version)
            if isinstance(deleted, Err):
                return Err(from_git_error(deleted.error, f"Cannot delete stale tag {tip_version}"))

        saved = self._stash_blocking_releases(tip_version)
        if isinstance(saved, Err):
            return saved

        try:
            created = self.bumper.create_tag(tip_version, self.options)
        finally:
            restored = self._restore(saved.value)

        if isinstance(created, Err):
            return created
        if isinstance(restored, Err):
            return restored
        return Ok(tip_version)

    def _blocking_releases(self, tip_version: str) -> Result[list[str], TipError]:
        tip = parse(tip_version, self.prefix)
        if tip is None:
            return Ok([])

        patterns = [f"{self.prefix}[0-9]*", "[0-9]*"] if self.prefix else ["[0-9]*"]
        listed = self.repo.list_tags(patterns)
        if isinstance(listed, Err):
            return Err(from_git_error(listed.error, "Cannot list release tags"))

        blocking: list[str] = []
        for name in listed.value:
            tag = parse(name, self.prefix)
            if tag is not None and tag.is_basevers and tag.basevers_key == tip.basevers_key:
                blocking.append(name)
        return Ok(blocking)

    def _stash_blocking_releases(self, tip_version: str) -> Result[list[SavedTag], TipError]:
        blocking = self._blocking_releases(tip_version)
        if isinstance(blocking, Err):
            return blocking

        saved: list[SavedTag] = []
        for name in blocking.value:
            object_id = self.repo.tag_object(name)
            if object_id is None:
                continue
            self.console.debug(f"Temporarily removing release tag {name} ({object_id[:7]})")
            deleted = self.repo.delete_tag(name)
            if isinstance(deleted, Err):
                self._restore(saved)
                return Err(from_git_error(deleted.error, f"Cannot move release tag {name} aside"))
            saved.append(SavedTag(name=name, object_id=object_id))
        return Ok(saved)

    def _restore(self, saved: list[SavedTag]) -> Result[None, TipError]:
        """Put every saved tag back; keep going past failures, report the first."""
        first_error: TipError | None = None
        for tag in saved:
            result = self.repo.update_ref(f"refs/tags/{tag.name}", tag.object_id)
            if isinstance(result, Err) and first_error is None:
                first_error = from_git_error(result.error, f"Cannot restore release tag {tag.name}")
        if first_error is not None:
            return Err(first_error)
        return Ok(None)
