"""
Recursive glob resolution.

The standard library glob is used strictly non-recursively (one directory
level per wildcard). A `**` path segment is expanded here by rewriting the
pattern one directory level at a time and unioning the matches:

    a/**/x.txt  ->  a/x.txt  +  a/**/x.txt (non-recursive, i.e. a/*/x.txt)
                    +  <each dir d in a>/**/x.txt

Results are a set: a path reachable through several expansion branches
appears once.
"""

import glob as _glob
import logging
import os
import re
from enum import IntFlag
from typing import FrozenSet, List, Optional, Set, Tuple

from xfilesystem.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

_SEPARATORS = "/" + "".join(s for s in (os.sep, os.altsep) if s and s != "/")
_SEPARATOR_CLASS = "[" + re.escape(_SEPARATORS) + "]"
_RECURSIVE_SEGMENT = re.compile(f"(?:^|{_SEPARATOR_CLASS})\\*\\*(?:{_SEPARATOR_CLASS}|$)")


class GlobFlags(IntFlag):
    """Flags forwarded to the non-recursive glob primitive."""
    NONE = 0
    ONLYDIR = 1   # Only return directories
    MARK = 2      # Append a separator to every directory
    NOSORT = 4    # Keep filesystem order
    NOCHECK = 8   # Return the pattern itself when nothing matches


_ALL_FLAGS = GlobFlags.ONLYDIR | GlobFlags.MARK | GlobFlags.NOSORT | GlobFlags.NOCHECK


def _coerce_flags(flags) -> GlobFlags:
    if isinstance(flags, bool) or not isinstance(flags, int) or flags < 0 or int(flags) & ~int(_ALL_FLAGS):
        raise InvalidArgumentError(f'Invalid glob flags: "{flags}"', argument="flags", value=flags)
    return GlobFlags(flags)


def _join(prefix: str, tail: str) -> str:
    if not prefix:
        return tail
    if prefix[-1] in _SEPARATORS:
        return prefix + tail
    return prefix + "/" + tail


def split_recursive(pattern: str) -> Optional[Tuple[str, str]]:
    """
    Split a pattern around its first `**` segment.

    Returns:
        (prefix, remainder) without the separating slashes, or None if the
        pattern has no `**` segment. A trailing `**` yields remainder "*".
    """
    match = _RECURSIVE_SEGMENT.search(pattern)
    if match is None:
        return None

    prefix = pattern[:match.start()]
    if not prefix and match.group(0)[0] in _SEPARATORS:
        # Absolute pattern rooted at the filesystem root
        prefix = match.group(0)[0]

    remainder = pattern[match.end():] or "*"
    return prefix, remainder


def glob_segment(pattern: str, flags=GlobFlags.NONE) -> List[str]:
    """
    Non-recursive glob: `*`, `?` and character classes, no `**`.

    Args:
        pattern: Glob pattern
        flags: GlobFlags

    Returns:
        Matching paths, sorted unless GlobFlags.NOSORT is set
    """
    flags = _coerce_flags(flags)
    paths = _glob.glob(pattern, recursive=False)

    if flags & GlobFlags.ONLYDIR:
        paths = [p for p in paths if os.path.isdir(p)]
    if flags & GlobFlags.MARK:
        paths = [p + os.sep if os.path.isdir(p) and not p.endswith(os.sep) else p for p in paths]
    if not flags & GlobFlags.NOSORT:
        paths.sort()
    if not paths and flags & GlobFlags.NOCHECK:
        paths = [pattern]
    return paths


def _resolve(pattern: str, flags: GlobFlags, ancestors: FrozenSet[str]) -> Set[str]:
    parts = split_recursive(pattern)
    if parts is None:
        return set(glob_segment(pattern, flags))

    prefix, remainder = parts
    dirs = glob_segment(_join(prefix, "*"), GlobFlags.ONLYDIR | GlobFlags.NOSORT)

    # The pattern as-is: the non-recursive primitive reads `**` like `*`,
    # so this matches exactly one directory level below prefix
    matches = set(glob_segment(_join(_join(prefix, "**"), remainder), flags))

    if not any(sep in remainder for sep in _SEPARATORS):
        # `**` standing for zero directories
        matches.update(glob_segment(_join(prefix, remainder), flags))

    for directory in dirs:
        real = os.path.realpath(directory)
        chain = ancestors | {os.path.realpath(os.path.dirname(directory) or os.curdir)}
        if real in chain:
            logger.warning(f"Skipping {directory}: symlink cycle back to {real}")
            continue

        sub_pattern = _join(_join(_glob.escape(directory), "**"), remainder)
        logger.debug(f"Descending into {directory} for {sub_pattern}")
        matches.update(_resolve(sub_pattern, flags, chain | {real}))

    return matches


def resolve(pattern: str, flags=GlobFlags.NONE) -> Set[str]:
    """
    Resolve a glob pattern that may contain a `**` segment.

    Args:
        pattern: Glob pattern; no tilde expansion or variable substitution
        flags: GlobFlags forwarded to the non-recursive primitive

    Returns:
        Set of matching paths

    Raises:
        InvalidArgumentError: If flags contains unknown bits
    """
    flags = _coerce_flags(flags)
    return _resolve(pattern, flags & ~GlobFlags.NOCHECK, frozenset())


def glob(pattern: str, flags=GlobFlags.NONE) -> List[str]:
    """
    Find paths by a glob pattern, with support for the `**` wildcard.

    Returns:
        Distinct matching paths, sorted unless GlobFlags.NOSORT is set.
        With GlobFlags.NOCHECK, [pattern] if nothing matched.
    """
    flags = _coerce_flags(flags)
    paths = list(resolve(pattern, flags))

    if not flags & GlobFlags.NOSORT:
        paths.sort()
    if not paths and flags & GlobFlags.NOCHECK:
        paths = [pattern]
    return paths


__all__ = [
    "GlobFlags",
    "split_recursive",
    "glob_segment",
    "resolve",
    "glob",
]
