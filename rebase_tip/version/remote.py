"""Resolving version tags against a remote.

``git ls-remote`` is a network round trip, so the tag list is fetched
once into a ``RemoteTagCache`` snapshot, queried, and discarded when the
``with`` block ends. A snapshot never outlives the resolution that
created it.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from types import TracebackType

from rebase_tip.core.result import Err, Ok, Result
from rebase_tip.git.remote import parse_remote_branch
from rebase_tip.git.repository import GitError, Repository
from rebase_tip.output.console import ConsoleProtocol
from rebase_tip.version.tag import (
    DEFAULT_PREFIX,
    VersionTag,
    largest_version_tag,
    parse,
    pick_largest_basevers,
    pick_largest_full,
    restrict_to_basevers,
)

__all__ = [
    "RemoteTagCache",
    "TagAbsent",
    "TagConflict",
    "TagPresent",
    "TagVerification",
    "fetch_tag_snapshot",
    "largest_basevers",
    "largest_full",
    "largest_in_snapshot",
    "largest_version_tag_for",
    "verify_tag_at_commit",
]

_TAGS_REF = "refs/tags/"


class RemoteTagCache:
    """Single-use snapshot of one remote's (prefiltered) tag names."""

    def __init__(self, remote: str, names: tuple[str, ...], prefix: str = DEFAULT_PREFIX) -> None:
        self.remote = remote
        self.prefix = prefix
        self._names: tuple[str, ...] | None = names

    @property
    def discarded(self) -> bool:
        return self._names is None

    @property
    def names(self) -> tuple[str, ...]:
        if self._names is None:
            raise RuntimeError(f"tag snapshot for {self.remote} was already discarded")
        return self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def discard(self) -> None:
        self._names = None

    def __enter__(self) -> RemoteTagCache:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.discard()


def _prefilter_patterns(prefix: str) -> list[str]:
    # A glob, not a precise filter: anything starting with the prefix or a digit.
    patterns = [f"{_TAGS_REF}[0-9]*"]
    if prefix:
        patterns.insert(0, f"{_TAGS_REF}{prefix}[0-9]*")
    return patterns


def fetch_tag_snapshot(
    repo: Repository,
    remote: str,
    prefix: str = DEFAULT_PREFIX,
) -> Result[RemoteTagCache, GitError]:
    """List the remote's version-like tags in one round trip."""
    result = repo.ls_remote(remote, _prefilter_patterns(prefix), tags=True, refs_only=True)
    if isinstance(result, Err):
        return result

    names = tuple(r.ref.removeprefix(_TAGS_REF) for r in result.value if r.ref.startswith(_TAGS_REF))
    return Ok(RemoteTagCache(remote, names, prefix))


def largest_basevers(cache: RemoteTagCache) -> VersionTag | None:
    return pick_largest_basevers(cache.names, cache.prefix)


def largest_full(cache: RemoteTagCache, basevers: VersionTag) -> VersionTag | None:
    """Largest tag of the snapshot within one basevers family."""
    return pick_largest_full(restrict_to_basevers(cache.names, basevers, cache.prefix), cache.prefix)


def largest_in_snapshot(cache: RemoteTagCache) -> VersionTag | None:
    """The largest basevers as its release tag if the remote has one, else its largest pre-release."""
    basevers = largest_basevers(cache)
    if basevers is None:
        return None

    for name in (basevers.raw, f"{cache.prefix}{basevers.raw}"):
        if name in cache.names:
            return parse(name, cache.prefix)
    return largest_full(cache, basevers)


# -----------------------------------------------------------------------------
# Verifying one tag against one commit
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TagPresent:
    """The remote tag exists and points at the expected commit."""


@dataclass(frozen=True, slots=True)
class TagAbsent:
    """The remote has no such tag."""


@dataclass(frozen=True, slots=True)
class TagConflict:
    """The remote tag exists but points elsewhere."""

    actual_commit: str


TagVerification = TagPresent | TagAbsent | TagConflict


def verify_tag_at_commit(
    repo: Repository,
    tag_name: str,
    remote: str,
    expected_commit: str,
) -> Result[TagVerification, GitError]:
    """Check what ``remote`` says ``tag_name`` points at.

    Asks for both the tag ref and its peeled form in one request; an
    annotated tag reports its commit on the ``^{}`` line, a lightweight
    tag on the plain line.
    """
    ref = f"{_TAGS_REF}{tag_name}"
    peeled_ref = f"{ref}^{{}}"
    result = repo.ls_remote(remote, [ref, peeled_ref], tags=True)
    if isinstance(result, Err):
        return result

    by_ref = {r.ref: r.object_id for r in result.value}
    actual = by_ref.get(peeled_ref) or by_ref.get(ref)
    if not actual:
        return Ok(TagAbsent())
    if actual == expected_commit:
        return Ok(TagPresent())
    return Ok(TagConflict(actual_commit=actual))


# -----------------------------------------------------------------------------
# Upstream version resolution
# -----------------------------------------------------------------------------


def _remote_of(repo: Repository, upstream: str) -> str | None:
    parsed = parse_remote_branch(upstream)
    if parsed is None or not repo.remote_exists(parsed.remote):
        return None
    return parsed.remote


def largest_version_tag_for(
    repo: Repository,
    upstream: str,
    console: ConsoleProtocol,
    prefix: str = DEFAULT_PREFIX,
    *,
    fetch: bool = True,
) -> Result[VersionTag | None, GitError]:
    """Largest version tag of the upstream being integrated.

    When ``upstream`` is ``<remote>/<branch>`` for a configured remote, the
    remote is fetched (unless the caller already did, ``fetch=False``) so
    its tags also exist locally, and only the remote's tags are
    considered. Otherwise, or when the remote has no version tags, local
    tags reachable from ``upstream`` are used.
    """
    remote = _remote_of(repo, upstream)
    if remote is not None and fetch:
        console.debug(f"git fetch --prune {remote}")
        fetched = repo.fetch(remote, prune=True)
        if isinstance(fetched, Err):
            return fetched

    if remote is not None:
        snapshot = fetch_tag_snapshot(repo, remote, prefix)
        if isinstance(snapshot, Err):
            return snapshot

        with snapshot.value as cache:
            found = largest_in_snapshot(cache)

        if found is not None:
            return Ok(found)
        console.warning(f"The upstream remote has no version tags: {remote}")

    local = repo.list_tags([f"{prefix}[0-9]*", "[0-9]*"] if prefix else ["[0-9]*"], merged=upstream)
    if isinstance(local, Err):
        return local
    return Ok(largest_version_tag(local.value, prefix))
