"""postgresql.conf parsing, diffing and serialization."""

from tstune.conffile.diff import compute_visible_keys, is_close_enough
from tstune.conffile.line import ConfigLine
from tstune.conffile.parsers import (
    SharedLibResult,
    TunableParseResult,
    parse_shared_lib_line,
    parse_tunable_line,
    update_shared_lib_line,
)
from tstune.conffile.patterns import PatternRegistry
from tstune.conffile.state import (
    ConfigFileState,
    ConfigLineProcessor,
    RemoveDuplicatesProcessor,
    get_remove_dupe_processors,
)

__all__ = [
    "ConfigFileState",
    "ConfigLine",
    "ConfigLineProcessor",
    "PatternRegistry",
    "RemoveDuplicatesProcessor",
    "SharedLibResult",
    "TunableParseResult",
    "compute_visible_keys",
    "get_remove_dupe_processors",
    "is_close_enough",
    "parse_shared_lib_line",
    "parse_tunable_line",
    "update_shared_lib_line",
]
