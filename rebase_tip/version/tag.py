"""Version-like tag names: parsing, ordering and picking the largest.

The grammar accepts what people actually tag with rather than strict
SemVer:

    [prefix] MAJOR "." MINOR [ "." PATCH [label] [counter] ]

``label`` is any run starting with a non-digit (``-rc.``, ``a``, ``+tip.``)
and ``counter`` is the trailing run of digits, so ``1.2.3rc1`` splits into
label ``rc`` and counter ``1``.

Ordering compares major, minor, patch (missing sorts lowest), then the
label lexically, then the counter (missing sorts lowest). Lexical labels
are only "sortable enough": ``1.0.0-alpha.beta`` vs ``1.0.0-beta.2`` is
decided by text, not SemVer precedence. The same comparison also ranks a
plain release below its own pre-releases, which is why
``largest_version_tag`` lets an existing release tag win outright.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache

__all__ = [
    "DEFAULT_PREFIX",
    "VersionTag",
    "compare_basevers",
    "compare_full",
    "largest_version_tag",
    "parse",
    "pick_largest_basevers",
    "pick_largest_full",
    "restrict_to_basevers",
]

DEFAULT_PREFIX = "v"

# Sorts below any real (non-negative) patch or counter.
_MISSING = -1


@lru_cache(maxsize=8)
def _pattern(prefix: str) -> re.Pattern[str]:
    optional_prefix = f"(?P<prefix>{re.escape(prefix)})?" if prefix else "(?P<prefix>)"
    return re.compile(
        rf"^{optional_prefix}(?P<major>\d+)\.(?P<minor>\d+)"
        r"(?:\.(?P<patch>\d+)(?P<label>[^0-9].*?)?(?P<counter>\d+)?)?$"
    )


@dataclass(frozen=True, slots=True)
class VersionTag:
    """A parsed version tag.

    Attributes:
        raw: The tag name exactly as found.
        prefix: The matched prefix literal ("" if absent).
        major: Major number.
        minor: Minor number.
        patch: Patch number, None for two-part versions like "1.2".
        label: Pre-release label including separators ("" if none).
        counter: Trailing pre-release number, None if absent.
        digits: The numeric parts as written, so "01" survives a round trip.
            Not part of equality or ordering.
    """

    raw: str
    prefix: str
    major: int
    minor: int
    patch: int | None = None
    label: str = ""
    counter: int | None = None
    digits: tuple[str | None, ...] = field(default=(), compare=False, repr=False)

    def __str__(self) -> str:
        return self.raw

    @property
    def is_basevers(self) -> bool:
        """True for a plain release (no pre-release part)."""
        return not self.label and self.counter is None

    def _text(self, index: int, value: int | None) -> str:
        written = self.digits[index] if index < len(self.digits) else None
        if written is not None:
            return written
        return "" if value is None else str(value)

    @property
    def basevers(self) -> VersionTag:
        """The release-only portion, without prefix (e.g. "1.2.3" or "1.2")."""
        text = f"{self._text(0, self.major)}.{self._text(1, self.minor)}"
        if self.patch is not None:
            text += f".{self._text(2, self.patch)}"
        return VersionTag(
            raw=text,
            prefix="",
            major=self.major,
            minor=self.minor,
            patch=self.patch,
            digits=self.digits[:3],
        )

    @property
    def basevers_key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, _MISSING if self.patch is None else self.patch)

    @property
    def full_key(self) -> tuple[int, int, int, str, int]:
        counter = _MISSING if self.counter is None else self.counter
        return (*self.basevers_key, self.label, counter)

    def render(self) -> str:
        """Rebuild the tag name from its components, keeping leading zeros."""
        text = f"{self.prefix}{self._text(0, self.major)}.{self._text(1, self.minor)}"
        if self.patch is not None:
            text += f".{self._text(2, self.patch)}{self.label}{self._text(3, self.counter)}"
        return text


def parse(raw: str, prefix: str = DEFAULT_PREFIX) -> VersionTag | None:
    """Parse a tag name; None when it is not a version (major or minor missing)."""
    m = _pattern(prefix).match(raw)
    if m is None:
        return None

    patch = m.group("patch")
    counter = m.group("counter")
    return VersionTag(
        raw=raw,
        prefix=m.group("prefix") or "",
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=None if patch is None else int(patch),
        label=m.group("label") or "",
        counter=None if counter is None else int(counter),
        digits=(m.group("major"), m.group("minor"), patch, counter),
    )


def _cmp[K](a: K, b: K) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def compare_basevers(a: VersionTag, b: VersionTag) -> int:
    """Compare major.minor.patch only. Returns -1, 0 or 1."""
    return _cmp(a.basevers_key, b.basevers_key)


def compare_full(a: VersionTag, b: VersionTag) -> int:
    """Compare using all five keys. Returns -1, 0 or 1."""
    return _cmp(a.full_key, b.full_key)


def _parse_all(names: Iterable[str], prefix: str) -> list[VersionTag]:
    # Sorted, de-duplicated input makes ties resolve the same way every time.
    parsed = (parse(name, prefix) for name in sorted(set(names)))
    return [tag for tag in parsed if tag is not None]


def pick_largest_basevers(names: Iterable[str], prefix: str = DEFAULT_PREFIX) -> VersionTag | None:
    """Largest basevers among all version-like names (unparsable names are skipped)."""
    tags = _parse_all(names, prefix)
    if not tags:
        return None
    return max(tags, key=lambda t: t.basevers_key).basevers


def restrict_to_basevers(
    names: Iterable[str],
    basevers: VersionTag,
    prefix: str = DEFAULT_PREFIX,
) -> list[str]:
    """Names that parse to the given basevers, whatever their pre-release part."""
    return [t.raw for t in _parse_all(names, prefix) if t.basevers_key == basevers.basevers_key]


def pick_largest_full(names: Iterable[str], prefix: str = DEFAULT_PREFIX) -> VersionTag | None:
    """Largest tag by full ordering.

    Only meaningful when every name shares one basevers; narrow with
    ``restrict_to_basevers`` first.
    """
    tags = _parse_all(names, prefix)
    if not tags:
        return None
    return max(tags, key=lambda t: t.full_key)


def largest_version_tag(names: Iterable[str], prefix: str = DEFAULT_PREFIX) -> VersionTag | None:
    """The largest version tag, letting an existing release beat its pre-releases.

    Finds the largest basevers; if a plain release tag for it is among
    ``names`` (with or without prefix), that tag wins. Otherwise the
    largest pre-release of that basevers is returned.
    """
    pool = set(names)
    basevers = pick_largest_basevers(pool, prefix)
    if basevers is None:
        return None

    family = restrict_to_basevers(pool, basevers, prefix)
    releases = [name for name in family if name in (basevers.raw, f"{prefix}{basevers.raw}")]
    if releases:
        return parse(sorted(releases)[0], prefix)
    return pick_largest_full(family, prefix)
