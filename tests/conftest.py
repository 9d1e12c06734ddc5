"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to Python path for imports
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Import after path setup
from pg_selective_backup.core.logging import setup_logging
from pg_selective_backup.core.models import ConnectionParams


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for all tests."""
    setup_logging(level="ERROR")  # Reduce noise during tests


class FakeStatsSource:
    """Stats source returning canned pg_stat_database lines."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.calls = []

    def run_query(self, connection):
        self.calls.append(connection)
        return list(self.lines)


class FakeDumpEngine:
    """Dump engine that writes a small payload per command.

    Commands whose last argument is in ``failing`` write partial output and
    report failure, like a pg_dump that dies part way through.
    """

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.commands = []

    def run_dump(self, command, connection, destination):
        self.commands.append(command)
        target = command.args[-1] if command.args else command.program
        if target in self.failing or command.program in self.failing:
            destination.write(b"partial")
            return False
        destination.write(f"{command.program} {' '.join(command.args)}\n".encode("utf-8"))
        return True

    def dumped(self):
        """(program, last argument) for every command run, in order."""
        return [(command.program, command.args[-1]) for command in self.commands]


@pytest.fixture
def connection():
    return ConnectionParams(host="localhost", port="5432", username="postgres", database="postgres")


@pytest.fixture
def fake_stats_source():
    return FakeStatsSource


@pytest.fixture
def fake_dump_engine():
    return FakeDumpEngine
