"""Tests for the dump-to-temp-then-publish protocol."""

import gzip
import os
from unittest.mock import patch

import pytest

from pg_selective_backup.core.dump_orchestrator import DumpOrchestrator
from pg_selective_backup.core.models import DumpStatus
from pg_selective_backup.io.commands import CommandBuilder


@pytest.fixture
def builder(tmp_path, connection):
    return CommandBuilder(connection=connection, backup_dir=str(tmp_path / "backups"))


class TestDumpOrchestrator:
    """Test publishing and failure handling of dumps."""

    def test_successful_dump_is_published(self, builder, connection, fake_dump_engine):
        """Test that output lands at the final path and the temp file is gone."""
        orchestrator = DumpOrchestrator(fake_dump_engine(), connection)
        target = builder.full_target("dbA")

        result = orchestrator.dump(target)

        assert result.success
        assert result.status == DumpStatus.SUCCESS
        assert result.path == target.path
        with open(target.path, "rb") as f:
            assert f.read().startswith(b"pg_dump --format=custom")
        assert not os.path.exists(target.temp_path)

    def test_compressed_dump_is_gzipped(self, builder, connection, fake_dump_engine):
        """Test that globals and schema dumps are gzip compressed."""
        orchestrator = DumpOrchestrator(fake_dump_engine(), connection)
        target = builder.schema_target("dbA")

        orchestrator.dump(target)

        with gzip.open(target.path, "rb") as f:
            assert f.read().startswith(b"pg_dump --schema-only")

    def test_success_replaces_previous_backup(self, builder, connection, fake_dump_engine):
        """Test that a new dump overwrites the prior file for the target."""
        target = builder.full_target("dbA")
        os.makedirs(os.path.dirname(target.path))
        with open(target.path, "wb") as f:
            f.write(b"old backup")

        DumpOrchestrator(fake_dump_engine(), connection).dump(target)

        with open(target.path, "rb") as f:
            assert f.read() != b"old backup"

    def test_failed_dump_keeps_previous_backup(self, builder, connection, fake_dump_engine):
        """A failed dump leaves the prior backup byte-identical and is reported."""
        target = builder.full_target("dbA")
        os.makedirs(os.path.dirname(target.path))
        with open(target.path, "wb") as f:
            f.write(b"previous good backup")

        result = DumpOrchestrator(fake_dump_engine(failing={"dbA"}), connection).dump(target)

        assert not result.success
        assert result.status == DumpStatus.FAILED
        assert "dbA" in result.message
        with open(target.path, "rb") as f:
            assert f.read() == b"previous good backup"
        assert not os.path.exists(target.temp_path)

    def test_failed_first_dump_creates_nothing(self, builder, connection, fake_dump_engine):
        """Test that a failed dump with no prior backup leaves no file behind."""
        target = builder.full_target("dbA")

        result = DumpOrchestrator(fake_dump_engine(failing={"dbA"}), connection).dump(target)

        assert not result.success
        assert not os.path.exists(target.path)
        assert not os.path.exists(target.temp_path)

    def test_missing_temp_file_is_failure(self, builder, connection):
        """Test the secondary check when the engine reports success without output."""
        target = builder.full_target("dbA")

        class VanishingEngine:
            def run_dump(self, command, connection, destination):
                os.unlink(target.temp_path)
                return True

        result = DumpOrchestrator(VanishingEngine(), connection).dump(target)

        assert not result.success
        assert "was not created" in result.message
        assert not os.path.exists(target.path)

    def test_publish_failure_is_reported(self, builder, connection, fake_dump_engine):
        """Test that a failing rename is a failed result, not an exception."""
        target = builder.full_target("dbA")

        with patch("pg_selective_backup.core.dump_orchestrator.os.replace", side_effect=OSError("busy")):
            result = DumpOrchestrator(fake_dump_engine(), connection).dump(target)

        assert not result.success
        assert isinstance(result.error, OSError)
        assert not os.path.exists(target.temp_path)

    def test_unwritable_backup_dir_is_reported(self, tmp_path, connection, fake_dump_engine):
        """Test that an unusable backup directory fails the target without raising."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        builder = CommandBuilder(connection=connection, backup_dir=str(blocker))

        result = DumpOrchestrator(fake_dump_engine(), connection).dump(builder.full_target("dbA"))

        assert not result.success
        assert result.error is not None

    def test_engine_receives_connection(self, builder, connection, fake_dump_engine):
        """Test that the configured connection is passed to the engine."""
        calls = []

        class RecordingEngine:
            def run_dump(self, command, conn, destination):
                calls.append(conn)
                destination.write(b"x")
                return True

        DumpOrchestrator(RecordingEngine(), connection).dump(builder.full_target("dbA"))

        assert calls == [connection]
