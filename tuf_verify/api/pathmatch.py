# Copyright the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""Path pattern matching for delegated roles.

A pattern is either an exact path or a literal prefix followed by a single
trailing wildcard, e.g. ``/v2/library/*``. Matching is case-sensitive and
works on normalized paths: absolute, i.e. starting with ``/``.
"""

from typing import Iterable

WILDCARD = "*"


def normalize_path(path: str) -> str:
    """Return ``path`` with a leading ``/``."""
    if not path.startswith("/"):
        return f"/{path}"
    return path


def validate_pattern(pattern: str) -> None:
    """Raise ``ValueError`` if ``pattern`` is not a supported path pattern.

    Only a single wildcard as the very last character is supported.
    """
    if not isinstance(pattern, str):
        raise ValueError(f"Path pattern must be a string, got {pattern!r}")
    if not pattern:
        raise ValueError("Path pattern must not be empty")
    if WILDCARD in pattern[:-1]:
        raise ValueError(
            f"Wildcard is only allowed as last character: '{pattern}'"
        )


def match_pattern(path: str, pattern: str) -> bool:
    """Determine whether ``path`` matches ``pattern``."""
    if pattern.endswith(WILDCARD):
        return path.startswith(pattern[:-1])

    return path == pattern


def match_any(path: str, patterns: Iterable[str]) -> bool:
    """Determine whether ``path`` matches any pattern in ``patterns``."""
    return any(match_pattern(path, pattern) for pattern in patterns)
