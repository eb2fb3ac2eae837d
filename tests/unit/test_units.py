"""Unit tests for byte and duration formatting."""

from datetime import timedelta

import pytest

from tstune.core.exceptions import ValidationError
from tstune.services.units import (
    GIGABYTE,
    KILOBYTE,
    MEGABYTE,
    TERABYTE,
    bytes_to_decimal_format,
    bytes_to_pg_format,
    pg_format_to_bytes,
    pretty_duration,
    round_half_up,
)


class TestBytesToPgFormat:
    """Tests for bytes_to_pg_format."""

    @pytest.mark.parametrize("num_bytes,expected", [
        (8 * GIGABYTE, "8GB"),
        (2 * TERABYTE, "2TB"),
        (512 * MEGABYTE, "512MB"),
        (1536 * MEGABYTE, "1536MB"),
        (64 * KILOBYTE, "64kB"),
        (1536, "2kB"),
        (512, "1kB"),
        (1, "1kB"),
    ])
    def test_formats(self, num_bytes: int, expected: str):
        assert bytes_to_pg_format(num_bytes) == expected

    def test_fraction_uses_smaller_unit(self):
        """Fractional megabytes should be written in kilobytes."""
        assert bytes_to_pg_format(int(25.6 * MEGABYTE)) == "26214kB"

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            bytes_to_pg_format(0)


class TestPgFormatToBytes:
    """Tests for pg_format_to_bytes."""

    @pytest.mark.parametrize("value,expected", [
        ("8GB", 8 * GIGABYTE),
        ("512MB", 512 * MEGABYTE),
        ("64kB", 64 * KILOBYTE),
        ("1TB", TERABYTE),
        ("1024", 1024),
        ("'2GB'", 2 * GIGABYTE),
    ])
    def test_valid(self, value: str, expected: int):
        assert pg_format_to_bytes(value) == expected

    @pytest.mark.parametrize("value", ["8gb", "1.5GB", "GB", "8 GB", "", "-1GB"])
    def test_invalid(self, value: str):
        with pytest.raises(ValidationError) as exc:
            pg_format_to_bytes(value)
        assert "incorrect PostgreSQL bytes format" in str(exc.value)


class TestDecimalFormat:
    """Tests for bytes_to_decimal_format."""

    def test_formats(self):
        assert bytes_to_decimal_format(8 * GIGABYTE) == "8.00 GB"
        assert bytes_to_decimal_format(1536 * MEGABYTE) == "1.50 GB"


class TestRoundHalfUp:
    """Tests for round_half_up."""

    def test_halves_round_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(1.5) == 2
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4) == 2
        assert round_half_up(-1.5) == -2


class TestPrettyDuration:
    """Tests for pretty_duration."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(seconds=30), "less than a minute"),
        (timedelta(minutes=1), "1 minute"),
        (timedelta(minutes=45), "45 minutes"),
        (timedelta(hours=1), "1 hour"),
        (timedelta(hours=47), "47 hours"),
        (timedelta(days=3), "3 days"),
    ])
    def test_durations(self, delta: timedelta, expected: str):
        assert pretty_duration(delta) == expected
