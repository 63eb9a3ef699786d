"""
Ignore rules for filesystem events.

Rules are evaluated in a fixed order and the first match wins:
  1. extension: the path's extension equals one of ignore.extensions
  2. filename: the base name matches one of the ignore.files globs
  3. directory: the full path matches one of the ignore.directories globs

Glob patterns support `*`, `?` and `[...]`, are case-sensitive, and `*`
never crosses a path separator. Directory patterns are matched component
by component from the right, so `*/node_modules/*` matches
`/proj/node_modules/x.js`, while an absolute pattern has to match the whole
path.
"""

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRules:
    files: tuple = ()
    extensions: frozenset = frozenset()
    directories: tuple = ()


@dataclass(frozen=True)
class IgnoreVerdict:
    ignored: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.ignored


NOT_IGNORED = IgnoreVerdict(False)


def _slashed(path: str) -> str:
    return path.replace("\\", "/")


def base_name(path: str) -> str:
    """Return the final component of a POSIX or Windows style path."""
    return _slashed(path).rstrip("/").rsplit("/", 1)[-1]


def extension(path: str) -> str:
    """
    Return the extension of the last path component, dot included.

    "archive.tar.gz" gives ".gz", ".bashrc" gives ".bashrc" and a name
    without a dot gives "".
    """
    name = base_name(path)
    idx = name.rfind(".")
    return name[idx:] if idx >= 0 else ""


def match_filename(name: str, pattern: str) -> bool:
    return fnmatch.fnmatchcase(name, pattern)


def match_path(path: str, pattern: str) -> bool:
    return PurePosixPath(_slashed(path)).match(_slashed(pattern))


def _first_match(subject: str, patterns: Iterable[str], matcher, category: str) -> Optional[str]:
    for pattern in patterns:
        try:
            if matcher(subject, pattern):
                return pattern
        except (ValueError, re.error) as e:
            logger.warning(f"Skipping malformed {category} pattern {pattern!r}: {e}")
    return None


def should_ignore(path: str, rules: IgnoreRules) -> IgnoreVerdict:
    """
    Decide whether an event for a normalized path should be dropped.

    Args:
        path (str): Normalized path of the event.
        rules (IgnoreRules): Configured ignore rules.

    Returns:
        IgnoreVerdict: ignored=True with the matching rule as reason, or
        NOT_IGNORED.
    """
    ext = extension(path)
    if ext and ext in rules.extensions:
        return IgnoreVerdict(True, f"extension match: {ext}")

    pattern = _first_match(base_name(path), rules.files, match_filename, "filename")
    if pattern is not None:
        return IgnoreVerdict(True, f"filename match: {pattern}")

    pattern = _first_match(path, rules.directories, match_path, "directory")
    if pattern is not None:
        return IgnoreVerdict(True, f"directory match: {pattern}")

    return NOT_IGNORED
