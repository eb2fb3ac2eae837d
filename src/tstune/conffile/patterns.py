"""Regular expressions for recognizing setting lines in postgresql.conf.

Only a narrow subset of the config grammar is recognized: one setting per
line written as ``key = value``, optionally commented out with a run of
``#`` and optionally followed by whitespace and a trailing comment.
"""

import re
from collections.abc import Iterable, Iterator
from typing import Optional

EXTENSION_NAME = "timescaledb"
SHARED_LIB_KEY = "shared_preload_libraries"

# Group 1: comment prefix, 2: key, 3: value, 4: trailing whitespace/comment
TUNABLE_REGEX_FMT = r"^(\s*#+?\s*)?({key}) = (\S+?)(\s*(?:#.*|))$"
TUNABLE_QUOTED_REGEX_FMT = r"^(\s*#+?\s*)?({key}) = '(.+?)'(\s*(?:#.*|))$"

TUNABLE_GROUP_COUNT = 4

SHARED_LIB_PATTERN = re.compile(
    r"(#+?\s*)?" + SHARED_LIB_KEY + r" = '(.*?)'.*"
)


def compile_tunable(key: str) -> re.Pattern:
    """Compile the plain-value pattern for a setting key."""
    return re.compile(TUNABLE_REGEX_FMT.format(key=re.escape(key)))


def compile_tunable_quoted(key: str) -> re.Pattern:
    """Compile the single-quoted-value pattern for a setting key."""
    return re.compile(TUNABLE_QUOTED_REGEX_FMT.format(key=re.escape(key)))


class PatternRegistry:
    """Mapping of setting keys to the compiled patterns that find them.

    The registry is built once from a list of keys and handed to the
    config file state builder.

    Example:
        registry = PatternRegistry(["shared_buffers", "work_mem"])
        registry.get("work_mem").match("work_mem = 4MB")
    """

    def __init__(
        self,
        keys: Iterable[str] = (),
        *,
        quoted: bool = False,
    ) -> None:
        compiler = compile_tunable_quoted if quoted else compile_tunable
        self._patterns: dict[str, re.Pattern] = {}
        for key in keys:
            self._patterns[key] = compiler(key)

    def add(self, key: str, pattern: re.Pattern) -> None:
        """Register a pre-compiled pattern for a key."""
        self._patterns[key] = pattern

    def get(self, key: str) -> Optional[re.Pattern]:
        return self._patterns.get(key)

    def keys(self) -> list[str]:
        return list(self._patterns)

    def items(self) -> Iterator[tuple[str, re.Pattern]]:
        return iter(self._patterns.items())

    def __contains__(self, key: object) -> bool:
        return key in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)
