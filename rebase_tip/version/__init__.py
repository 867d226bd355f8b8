"""Version tags: the model, the remote resolver and the TIP tag synthesizer."""

from rebase_tip.version.tag import (
    VersionTag,
    compare_basevers,
    compare_full,
    largest_version_tag,
    parse,
    pick_largest_basevers,
    pick_largest_full,
)

__all__ = [
    "VersionTag",
    "compare_basevers",
    "compare_full",
    "largest_version_tag",
    "parse",
    "pick_largest_basevers",
    "pick_largest_full",
]
