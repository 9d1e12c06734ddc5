"""Tests for the pg_stat_database line parser."""

import logging

import pytest

from pg_selective_backup.core.models import ActivityRecord
from pg_selective_backup.io.stats_parser import StatsParser, split_lines


@pytest.fixture
def parser():
    return StatsParser()


class TestStatsParser:
    """Test parsing of delimited stats lines."""

    def test_parse_single_line(self, parser):
        """Test that all seven fields land in the record."""
        snapshot = parser.parse(["2024-05-01 10:15:00+00|16384|dbA|120|5|2|1\n"])

        assert snapshot.names() == ["dbA"]
        assert snapshot["dbA"] == ActivityRecord(
            timestamp="2024-05-01 10:15:00+00",
            id="16384",
            name="dbA",
            commits=120,
            inserted=5,
            updated=2,
            deleted=1,
        )

    def test_parse_sorts_names(self, parser):
        """Test that snapshot iteration is in ascending name order."""
        snapshot = parser.parse([
            "t|3|zeta|1|0|0|0",
            "t|1|alpha|1|0|0|0",
            "t|2|mid|1|0|0|0",
        ])

        assert snapshot.names() == ["alpha", "mid", "zeta"]
        assert list(snapshot) == ["alpha", "mid", "zeta"]

    def test_lines_without_name_are_skipped(self, parser):
        """Test that blank lines, headers and the shared-objects row are ignored."""
        snapshot = parser.parse([
            "\n",
            "",
            "t|0||5|1|1|1",
            "t|16384|dbA|1|2|3|4",
        ])

        assert snapshot.names() == ["dbA"]

    def test_wrong_field_count_is_skipped(self, parser, caplog):
        """Test that malformed lines are dropped with a warning and parsing continues."""
        with caplog.at_level(logging.WARNING):
            snapshot = parser.parse([
                "t|1|short|1|2",
                "t|2|long|1|2|3|4|5",
                "t|3|good|1|2|3|4",
            ])

        assert snapshot.names() == ["good"]
        assert "malformed" in caplog.text

    def test_non_numeric_counter_is_skipped(self, parser, caplog):
        """Test that non-integer counters make the line malformed."""
        with caplog.at_level(logging.WARNING):
            snapshot = parser.parse(["t|1|dbA|1|x|3|4", "t|2|dbB|1|2|3|4"])

        assert snapshot.names() == ["dbB"]
        assert "dbA" in caplog.text

    def test_duplicate_name_last_wins(self, parser):
        """Test that a later line for the same database replaces the earlier one."""
        snapshot = parser.parse([
            "t1|1|dbA|1|1|1|1",
            "t2|1|dbA|2|9|9|9",
        ])

        assert len(snapshot) == 1
        assert snapshot["dbA"].timestamp == "t2"
        assert snapshot["dbA"].inserted == 9

    def test_windows_line_endings(self, parser):
        """Test that CRLF endings do not leak into the deleted counter."""
        snapshot = parser.parse(["t|1|dbA|1|2|3|4\r\n"])

        assert snapshot["dbA"].deleted == 4

    def test_custom_delimiter(self):
        """Test parsing with a different delimiter."""
        snapshot = StatsParser(delimiter=",").parse(["t,1,dbA,1,2,3,4"])

        assert snapshot["dbA"].updated == 3

    def test_empty_input(self, parser):
        """Test that no lines gives an empty snapshot."""
        snapshot = parser.parse([])

        assert snapshot.is_empty
        assert len(snapshot) == 0

    def test_split_lines_keeps_endings(self):
        """Test that split_lines keeps the text needed to store lines verbatim."""
        assert split_lines("a|b\nc|d\n") == ["a|b\n", "c|d\n"]
        assert split_lines("") == []
