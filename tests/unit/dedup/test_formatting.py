"""
Unit tests for size parsing and human-readable formatting.
"""

import pytest

from dupfinder.config.exceptions import ConfigurationError
from dupfinder.dedup.formatting import format_size, format_timestamp, parse_size


class TestParseSize:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("0", 0),
            ("100", 100),
            ("10K", 10 * 1024),
            ("10k", 10 * 1024),
            ("1M", 1024**2),
            ("2G", 2 * 1024**3),
            ("1T", 1024**4),
            (" 5K ", 5 * 1024),
        ],
    )
    def test_valid_sizes(self, text, expected):
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "1.5M", "10KB", "-1", "M"])
    def test_invalid_sizes_raise(self, text):
        with pytest.raises(ConfigurationError, match="Invalid size"):
            parse_size(text)


class TestFormatSize:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0B"),
            (1023, "1023B"),
            (1024, "1KB"),
            (1536, "1KB"),
            (5 * 1024**2, "5MB"),
            (3 * 1024**3 + 7, "3GB"),
            (2048 * 1024**3, "2048GB"),
        ],
    )
    def test_integer_steps(self, size, expected):
        assert format_size(size) == expected


class TestFormatTimestamp:
    def test_format_shape(self):
        text = format_timestamp(1_700_000_000)
        assert len(text) == len("2023-11-14 22:13:20")
        assert text[4] == "-" and text[13] == ":"

    def test_out_of_range_is_unknown(self):
        assert format_timestamp(1e20) == "Unknown date"
