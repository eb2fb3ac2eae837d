"""In-memory state of a postgresql.conf file.

The state keeps every line of the file in order so that writing it back
reproduces the original byte for byte, apart from the lines the tuner
rewrites, appends or marks for removal.
"""

import io
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, Optional, Union

from tstune.conffile.line import ConfigLine
from tstune.conffile.parsers import (
    SharedLibResult,
    TunableParseResult,
    parse_shared_lib_line,
    parse_tunable_line,
)
from tstune.conffile.patterns import PatternRegistry, compile_tunable_quoted
from tstune.core.exceptions import ConfigFileError

LINE_ENCODING = "utf-8"
# Bytes that are not valid UTF-8 survive a read and write unchanged
LINE_ERRORS = "surrogateescape"


class ConfigLineProcessor(ABC):
    """A step applied to every line of the file in order.

    Raising from ``process`` aborts the pipeline.
    """

    @abstractmethod
    def process(self, line: ConfigLine) -> None:
        """Inspect or modify a line."""
        pass


class RemoveDuplicatesProcessor(ConfigLineProcessor):
    """Keep only the last line matching a pattern.

    Each time a matching line is found, the previously matched line is
    marked for removal.
    """

    def __init__(self, pattern: re.Pattern) -> None:
        self.pattern = pattern
        self._last: Optional[ConfigLine] = None

    def process(self, line: ConfigLine) -> None:
        if not self.pattern.match(line.content):
            return
        if self._last is not None:
            self._last.remove = True
        self._last = line


def get_remove_dupe_processors(keys: Iterable[str]) -> list[ConfigLineProcessor]:
    """Build one duplicate remover per key, matching quoted values."""
    return [RemoveDuplicatesProcessor(compile_tunable_quoted(key)) for key in keys]


def _strip_line_ending(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode(LINE_ENCODING, LINE_ERRORS)
    if raw.endswith("\n"):
        raw = raw[:-1]
    if raw.endswith("\r"):
        raw = raw[:-1]
    return raw


def _is_binary_writer(writer: Any) -> bool:
    if isinstance(writer, io.TextIOBase):
        return False
    if isinstance(writer, (io.RawIOBase, io.BufferedIOBase)):
        return True
    return "b" in getattr(writer, "mode", "")


class ConfigFileState:
    """Ordered lines of a config file plus the settings found in them.

    Attributes:
        lines: Every line of the file, in file order
        tunables: Last parse result per registered setting key
        shared_lib: Last shared_preload_libraries parse result, if any
    """

    def __init__(self) -> None:
        self.lines: list[ConfigLine] = []
        self.tunables: dict[str, TunableParseResult] = {}
        self.shared_lib: Optional[SharedLibResult] = None

    @classmethod
    def from_stream(
        cls,
        stream: Iterable[Union[str, bytes]],
        registry: PatternRegistry,
    ) -> "ConfigFileState":
        """Parse a stream of lines into a new state.

        Each line is tested against the shared_preload_libraries pattern
        first; only lines that are not the shared library line are tested
        against the registry. For every pattern, the last matching line
        wins.

        Args:
            stream: Text or binary file object, or any iterable of lines
            registry: Setting patterns to look for

        Returns:
            Populated state

        Raises:
            ConfigFileError: If the stream cannot be read
        """
        state = cls()
        try:
            for raw in stream:
                state._add_parsed_line(_strip_line_ending(raw), registry)
        except OSError as e:
            raise ConfigFileError(
                "could not read config file",
                details=[str(e)],
            ) from e
        return state

    @classmethod
    def from_string(cls, text: str, registry: PatternRegistry) -> "ConfigFileState":
        """Parse config file contents held in a string."""
        return cls.from_stream(io.StringIO(text), registry)

    def _add_parsed_line(self, content: str, registry: PatternRegistry) -> None:
        index = len(self.lines)
        shared_lib = parse_shared_lib_line(content)
        if shared_lib is not None:
            shared_lib.index = index
            self.shared_lib = shared_lib
        else:
            for key, pattern in registry.items():
                result = parse_tunable_line(content, pattern)
                if result is not None:
                    result.index = index
                    self.tunables[key] = result
        self.lines.append(ConfigLine(content=content))

    def append_line(self, content: str) -> int:
        """Append a new line and return its index."""
        self.lines.append(ConfigLine(content=content))
        return len(self.lines) - 1

    def replace_line(self, index: int, content: str) -> None:
        """Replace the whole content of an existing line."""
        self.lines[index].content = content

    def process_lines(self, *processors: ConfigLineProcessor) -> None:
        """Run processors over every line in order.

        For each line, every processor is applied in the order given. The
        first exception raised by a processor stops the run.
        """
        for line in self.lines:
            for processor in processors:
                processor.process(line)

    def write_to(self, writer: Any) -> int:
        """Write all lines not marked for removal, one per line.

        Writers that can truncate and seek are truncated to zero length
        and rewound first, so the result replaces the previous contents.

        Args:
            writer: Text or binary writable object

        Returns:
            Number of bytes written

        Raises:
            ConfigFileError: If truncation or any write fails
        """
        truncate = getattr(writer, "truncate", None)
        seek = getattr(writer, "seek", None)
        seekable = getattr(writer, "seekable", None)
        can_truncate = callable(truncate) and callable(seek)
        if can_truncate and callable(seekable):
            can_truncate = bool(seekable())

        if can_truncate:
            try:
                truncate(0)
                seek(0)
            except (OSError, ValueError) as e:
                raise ConfigFileError(
                    "could not truncate config file before writing",
                    details=[str(e)],
                ) from e

        binary = _is_binary_writer(writer)
        total = 0
        for line in self.lines:
            if line.remove:
                continue
            data = line.content + "\n"
            encoded = data.encode(LINE_ENCODING, LINE_ERRORS)
            try:
                writer.write(encoded if binary else data)
            except (OSError, ValueError) as e:
                raise ConfigFileError(
                    "could not write config file",
                    details=[str(e)],
                ) from e
            total += len(encoded)
        return total
