"""Parsers turning config lines into structured results."""

import re
from dataclasses import dataclass
from typing import Optional

from tstune.conffile.patterns import (
    EXTENSION_NAME,
    SHARED_LIB_PATTERN,
    TUNABLE_GROUP_COUNT,
)
from tstune.core.exceptions import PatternInvariantError


@dataclass
class TunableParseResult:
    """Most recent match of a setting key in the file.

    ``index`` is the zero-based line position, or -1 together with
    ``missing=True`` when no line matched.
    """

    index: int
    commented: bool
    missing: bool
    key: str
    value: str
    extra: str = ""


@dataclass
class SharedLibResult:
    """Parse result for the shared_preload_libraries line."""

    index: int
    commented: bool
    has_timescale: bool
    comment_group: str
    libs: str


def parse_tunable_line(line: str, pattern: re.Pattern) -> Optional[TunableParseResult]:
    """Match a line against a setting pattern.

    Args:
        line: Raw line content
        pattern: Compiled setting pattern with four groups

    Returns:
        Parse result with index 0 (the caller assigns the position), or
        None when the line does not match

    Raises:
        PatternInvariantError: If the pattern matched with other than
            four capture groups
    """
    match = pattern.match(line)
    if match is None:
        return None
    if len(match.groups()) != TUNABLE_GROUP_COUNT:
        raise PatternInvariantError(
            f"pattern {pattern.pattern!r} matched with {len(match.groups())} groups",
            details=[f"Line: {line}", f"Expected groups: {TUNABLE_GROUP_COUNT}"],
        )

    comment, key, value, extra = match.groups()
    return TunableParseResult(
        index=0,
        commented=bool(comment),
        missing=False,
        key=key,
        value=value,
        extra=extra or "",
    )


def parse_shared_lib_line(line: str) -> Optional[SharedLibResult]:
    """Match a line against the shared_preload_libraries pattern."""
    match = SHARED_LIB_PATTERN.search(line)
    if match is None:
        return None

    comment_group = match.group(1) or ""
    libs = match.group(2)
    return SharedLibResult(
        index=0,
        commented=bool(comment_group),
        has_timescale=EXTENSION_NAME in libs,
        comment_group=comment_group,
        libs=libs,
    )


def update_shared_lib_line(line: str, result: SharedLibResult) -> str:
    """Rewrite a shared_preload_libraries line so it loads the extension.

    A commented line is uncommented; the extension is appended to the
    library list when it is not already there.
    """
    updated = line
    if result.commented:
        updated = updated.replace(result.comment_group, "", 1)
    if result.has_timescale:
        return updated

    libs = f"{result.libs},{EXTENSION_NAME}" if result.libs else EXTENSION_NAME
    return updated.replace(f"= '{result.libs}'", f"= '{libs}'", 1)
