"""TimescaleDB tuning recommendations.

Provides:
- System resource detection (CPU, memory)
- Recommenders producing PostgreSQL-formatted values per setting key
- Settings groups tying a label and its keys to a recommender
- Float parsers for comparing on-disk values against recommendations
"""

import os
import re
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from tstune.core.exceptions import RecommenderError
from tstune.services.units import (
    GIGABYTE,
    KILOBYTE,
    MEGABYTE,
    UNIT_SIZES,
    bytes_to_pg_format,
    round_half_up,
)

# Setting keys
SHARED_BUFFERS_KEY = "shared_buffers"
EFFECTIVE_CACHE_KEY = "effective_cache_size"
MAINTENANCE_WORK_MEM_KEY = "maintenance_work_mem"
WORK_MEM_KEY = "work_mem"

MAX_BACKGROUND_WORKERS_KEY = "timescaledb.max_background_workers"
MAX_WORKER_PROCESSES_KEY = "max_worker_processes"
MAX_PARALLEL_WORKERS_GATHER_KEY = "max_parallel_workers_per_gather"
MAX_PARALLEL_WORKERS_KEY = "max_parallel_workers"  # pg10+

WAL_BUFFERS_KEY = "wal_buffers"
MIN_WAL_KEY = "min_wal_size"
MAX_WAL_KEY = "max_wal_size"

BGWRITER_FLUSH_AFTER_KEY = "bgwriter_flush_after"

STATS_TARGET_KEY = "default_statistics_target"
RANDOM_PAGE_COST_KEY = "random_page_cost"
EFFECTIVE_IO_KEY = "effective_io_concurrency"
CHECKPOINT_KEY = "checkpoint_completion_target"
MAX_CONNECTIONS_KEY = "max_connections"

MEMORY_KEYS = [SHARED_BUFFERS_KEY, EFFECTIVE_CACHE_KEY, MAINTENANCE_WORK_MEM_KEY, WORK_MEM_KEY]
PARALLEL_KEYS = [
    MAX_BACKGROUND_WORKERS_KEY,
    MAX_WORKER_PROCESSES_KEY,
    MAX_PARALLEL_WORKERS_GATHER_KEY,
    MAX_PARALLEL_WORKERS_KEY,
]
WAL_KEYS = [WAL_BUFFERS_KEY, MIN_WAL_KEY, MAX_WAL_KEY]
BGWRITER_KEYS = [BGWRITER_FLUSH_AFTER_KEY]
MISC_KEYS = [
    STATS_TARGET_KEY,
    RANDOM_PAGE_COST_KEY,
    EFFECTIVE_IO_KEY,
    CHECKPOINT_KEY,
    MAX_CONNECTIONS_KEY,
]

ALL_TUNABLE_KEYS = MEMORY_KEYS + PARALLEL_KEYS + WAL_KEYS + BGWRITER_KEYS + MISC_KEYS

MEMORY_LABEL = "memory"
PARALLEL_LABEL = "parallelism"
WAL_LABEL = "WAL"
BGWRITER_LABEL = "background writer"
MISC_LABEL = "miscellaneous"

# Defaults
MAX_BACKGROUND_WORKERS_DEFAULT = 8
MAX_CONNECTIONS_DEFAULT = 20
MIN_BUILT_IN_PROCESSES = 3  # checkpointer, WAL writer, vacuum launcher

_SHARED_BUFFERS_WINDOWS = 512 * MEGABYTE
_WAL_BUFFERS_THRESHOLD = 2 * GIGABYTE
_WAL_BUFFERS_DEFAULT = 16 * MEGABYTE
_WAL_SEGMENT = 16 * MEGABYTE
_DEFAULT_MAX_WAL_BYTES = 1 * GIGABYTE

_MISC_DEFAULTS = {
    STATS_TARGET_KEY: "500",
    RANDOM_PAGE_COST_KEY: "1.1",
    EFFECTIVE_IO_KEY: "200",
    CHECKPOINT_KEY: "0.9",
}


class TuneProfile(Enum):
    """Workload profiles that adjust recommendations."""

    DEFAULT = "default"
    PROMSCALE = "promscale"

    @property
    def description(self) -> str:
        """Human-readable description of the profile."""
        descriptions = {
            "default": "General purpose TimescaleDB workload",
            "promscale": "Promscale metric ingest (disables background writer flushing)",
        }
        return descriptions[self.value]


@dataclass
class SystemInfo:
    """Resources the recommendations are based on."""

    total_memory: int  # bytes
    cpus: int
    pg_version: str
    wal_disk_size: int = 0  # bytes, 0 when unknown
    max_conns: int = MAX_CONNECTIONS_DEFAULT
    max_bg_workers: int = MAX_BACKGROUND_WORKERS_DEFAULT


def get_total_memory(meminfo_path: Path = Path("/proc/meminfo")) -> int:
    """Get total system memory in bytes.

    Reads MemTotal from /proc/meminfo, falling back to sysconf where
    /proc is unavailable.
    """
    try:
        with open(meminfo_path) as f:
            for line in f:
                if line.startswith("MemTotal:"):
                    # Format: "MemTotal:     16384000 kB"
                    return int(line.split()[1]) * KILOBYTE
    except (OSError, ValueError, IndexError):
        pass
    try:
        return os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (OSError, ValueError, AttributeError):
        return 4 * GIGABYTE  # Default to 4GB


def get_cpu_count() -> int:
    """Get number of CPU cores."""
    count = os.cpu_count()
    return count if count and count > 0 else 1


# =============================================================================
# Recommenders
# =============================================================================


class Recommender(ABC):
    """Produces recommended values for setting keys."""

    def is_available(self) -> bool:
        """Whether the recommender can be used on this system."""
        return True

    @abstractmethod
    def recommend(self, key: str) -> Optional[str]:
        """Recommended value for a key, or None for no recommendation."""
        pass


class NullRecommender(Recommender):
    """Never recommends anything."""

    def recommend(self, key: str) -> Optional[str]:
        return None


class MemoryRecommender(Recommender):
    """Memory settings sized from total memory and CPU count."""

    def __init__(self, total_memory: int, cpus: int, platform: str = sys.platform) -> None:
        self.total_memory = total_memory
        self.cpus = cpus
        self.windows = platform.startswith("win")

    def recommend(self, key: str) -> Optional[str]:
        mem_gb = self.total_memory / GIGABYTE
        if key == SHARED_BUFFERS_KEY:
            if self.windows:
                return bytes_to_pg_format(_SHARED_BUFFERS_WINDOWS)
            return bytes_to_pg_format(self.total_memory // 4)
        if key == EFFECTIVE_CACHE_KEY:
            return bytes_to_pg_format(self.total_memory * 3 // 4)
        if key == MAINTENANCE_WORK_MEM_KEY:
            value = min(mem_gb * 128.0 * MEGABYTE, 2 * GIGABYTE)
            return bytes_to_pg_format(int(value))
        if key == WORK_MEM_KEY:
            return self._recommend_work_mem(mem_gb)
        return None

    def _recommend_work_mem(self, mem_gb: float) -> str:
        cpu_factor = max(round_half_up(self.cpus / 2.0), 1)
        if self.windows and self.total_memory > 2 * GIGABYTE:
            base = 2.0 * 6.4 * MEGABYTE
            value = ((mem_gb - 2) * (8.53336 * MEGABYTE) + base) / cpu_factor
        else:
            value = mem_gb * (6.4 * MEGABYTE) / cpu_factor
        return bytes_to_pg_format(int(value))


class ParallelRecommender(Recommender):
    """Worker and parallelism settings sized from the CPU count."""

    def __init__(self, cpus: int, max_bg_workers: int = MAX_BACKGROUND_WORKERS_DEFAULT) -> None:
        self.cpus = cpus
        self.max_bg_workers = max_bg_workers

    def is_available(self) -> bool:
        return self.cpus > 1

    def recommend(self, key: str) -> Optional[str]:
        if self.cpus <= 1:
            raise RecommenderError("cannot make recommendations with just 1 CPU")
        if self.max_bg_workers < MAX_BACKGROUND_WORKERS_DEFAULT:
            raise RecommenderError(
                f"cannot make recommendations with less than "
                f"{MAX_BACKGROUND_WORKERS_DEFAULT} background workers"
            )
        if key == MAX_WORKER_PROCESSES_KEY:
            return str(MIN_BUILT_IN_PROCESSES + self.max_bg_workers + self.cpus)
        if key == MAX_PARALLEL_WORKERS_KEY:
            return str(self.cpus)
        if key == MAX_PARALLEL_WORKERS_GATHER_KEY:
            return str(round_half_up(self.cpus / 2.0))
        if key == MAX_BACKGROUND_WORKERS_KEY:
            return str(self.max_bg_workers)
        return None


class WALRecommender(Recommender):
    """WAL settings sized from memory and the WAL disk."""

    def __init__(self, total_memory: int, wal_disk_size: int = 0) -> None:
        self.total_memory = total_memory
        self.wal_disk_size = wal_disk_size

    def recommend(self, key: str) -> Optional[str]:
        if key == WAL_BUFFERS_KEY:
            if self.total_memory < _WAL_BUFFERS_THRESHOLD:
                value = (self.total_memory / GIGABYTE) * (7864.0 * KILOBYTE)
                return bytes_to_pg_format(int(value))
            return bytes_to_pg_format(_WAL_BUFFERS_DEFAULT)
        if key == MIN_WAL_KEY:
            return bytes_to_pg_format(self._max_wal_bytes() // 2)
        if key == MAX_WAL_KEY:
            return bytes_to_pg_format(self._max_wal_bytes())
        return None

    def _max_wal_bytes(self) -> int:
        if self.wal_disk_size == 0:
            return _DEFAULT_MAX_WAL_BYTES
        max_wal = self.wal_disk_size * 80 // 100
        if max_wal % _WAL_SEGMENT != 0:
            max_wal = (max_wal // _WAL_SEGMENT + 1) * _WAL_SEGMENT
        return max_wal


class MiscRecommender(Recommender):
    """Fixed planner, I/O and connection settings."""

    def __init__(self, max_conns: int = MAX_CONNECTIONS_DEFAULT) -> None:
        self.max_conns = max_conns

    def recommend(self, key: str) -> Optional[str]:
        if key == MAX_CONNECTIONS_KEY:
            return str(self.max_conns)
        return _MISC_DEFAULTS.get(key)


class PromscaleBgwriterRecommender(Recommender):
    """Background writer settings for Promscale ingest."""

    def recommend(self, key: str) -> Optional[str]:
        if key == BGWRITER_FLUSH_AFTER_KEY:
            return "0"
        return None


# =============================================================================
# Settings groups
# =============================================================================


class SettingsGroup(ABC):
    """A labelled set of keys tuned together by one recommender."""

    label: str = ""

    def __init__(self, info: SystemInfo) -> None:
        self.info = info

    @abstractmethod
    def keys(self) -> list[str]:
        pass

    @abstractmethod
    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        pass


class MemorySettingsGroup(SettingsGroup):
    label = MEMORY_LABEL

    def keys(self) -> list[str]:
        return list(MEMORY_KEYS)

    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        return MemoryRecommender(self.info.total_memory, self.info.cpus)


class ParallelSettingsGroup(SettingsGroup):
    label = PARALLEL_LABEL

    def keys(self) -> list[str]:
        # max_parallel_workers does not exist before PostgreSQL 10
        if self.info.pg_version == "9.6":
            return PARALLEL_KEYS[:-1]
        return list(PARALLEL_KEYS)

    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        return ParallelRecommender(self.info.cpus, self.info.max_bg_workers)


class WALSettingsGroup(SettingsGroup):
    label = WAL_LABEL

    def keys(self) -> list[str]:
        return list(WAL_KEYS)

    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        return WALRecommender(self.info.total_memory, self.info.wal_disk_size)


class BgwriterSettingsGroup(SettingsGroup):
    label = BGWRITER_LABEL

    def keys(self) -> list[str]:
        return list(BGWRITER_KEYS)

    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        if profile == TuneProfile.PROMSCALE:
            return PromscaleBgwriterRecommender()
        return NullRecommender()


class MiscSettingsGroup(SettingsGroup):
    label = MISC_LABEL

    def keys(self) -> list[str]:
        return list(MISC_KEYS)

    def get_recommender(self, profile: TuneProfile = TuneProfile.DEFAULT) -> Recommender:
        return MiscRecommender(self.info.max_conns)


def get_settings_groups(info: SystemInfo) -> list[SettingsGroup]:
    """All settings groups, in the order they are tuned."""
    return [
        MemorySettingsGroup(info),
        ParallelSettingsGroup(info),
        WALSettingsGroup(info),
        BgwriterSettingsGroup(info),
        MiscSettingsGroup(info),
    ]


# =============================================================================
# Float parsers
# =============================================================================

_PG_BYTES_VALUE_PATTERN = re.compile(r"^'?([0-9]+(?:\.[0-9]+)?)((?:k|M|G|T)B)'?$")
_NUMERIC_PATTERN = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


class FloatParser(ABC):
    """Converts a setting value into a comparable number."""

    @abstractmethod
    def parse_float(self, value: str) -> float:
        """Parse a value.

        Raises:
            ValueError: If the value is not in the expected format
        """
        pass


class BytesFloatParser(FloatParser):
    """Parses PostgreSQL byte values such as ``2GB`` or ``'1.95GB'``.

    A unit is required: PostgreSQL reads a bare number in the setting's own
    base unit (8kB pages for shared_buffers), so it is treated as unparseable.
    """

    def parse_float(self, value: str) -> float:
        match = _PG_BYTES_VALUE_PATTERN.match(value)
        if match is None:
            raise ValueError(f"incorrect PostgreSQL bytes format: '{value}'")
        return float(match.group(1)) * UNIT_SIZES[match.group(2)]


class NumericFloatParser(FloatParser):
    """Parses plain decimal numbers."""

    def parse_float(self, value: str) -> float:
        if not _NUMERIC_PATTERN.match(value):
            raise ValueError(f"not a number: '{value}'")
        return float(value)


def get_float_parser(recommender: Recommender) -> FloatParser:
    """Float parser matching the kind of values a recommender produces."""
    if isinstance(recommender, (MemoryRecommender, WALRecommender)):
        return BytesFloatParser()
    return NumericFloatParser()
