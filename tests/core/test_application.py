"""Tests for the main Application class."""

import os
from argparse import Namespace
from unittest.mock import patch

import pytest

from pg_selective_backup.config.config import Config
from pg_selective_backup.core.application import Application
from pg_selective_backup.core.errors import StatsQueryError
from pg_selective_backup.io.postgres_tools import PostgresTools

CURRENT = ["t|16384|dbA|1|5|2|1\n", "t|16385|dbB|1|0|0|0\n"]


def make_args(**overrides):
    values = dict(
        config=None, host=None, port=None, username=None, database=None, backup_dir=None,
        format=None, all=None, verbose=None, debug=None, log_level=None, log_format=None,
        log_file=None,
    )
    values.update(overrides)
    return Namespace(**values)


@pytest.fixture(autouse=True)
def quiet_logging():
    """Isolate runs from the environment and keep logging quiet."""
    clean_env = {"PATH": os.environ.get("PATH", "")}
    with patch("pg_selective_backup.core.application.setup_logging"), \
            patch("pg_selective_backup.config.config.load_dotenv"), \
            patch.dict(os.environ, clean_env, clear=True):
        yield


class TestApplication:
    """Test the Application class."""

    def test_run_success(self, tmp_path, fake_stats_source, fake_dump_engine):
        """Test a full run with fake collaborators."""
        engine = fake_dump_engine()
        app = Application(stats_source=fake_stats_source(CURRENT), dump_engine=engine)

        result = app.run(make_args(backup_dir=str(tmp_path)))

        assert result == 0
        assert os.path.exists(tmp_path / "globals-only.backup.gz")
        assert os.path.exists(tmp_path / "dbA.backup")
        assert os.path.exists(tmp_path / "last_stats")

    def test_run_with_failed_dump_returns_error(self, tmp_path, fake_stats_source, fake_dump_engine):
        """Test that a failed dump makes the exit code non-zero."""
        app = Application(stats_source=fake_stats_source(CURRENT),
                          dump_engine=fake_dump_engine(failing={"dbA"}))

        assert app.run(make_args(backup_dir=str(tmp_path))) == 1
        assert os.path.exists(tmp_path / "dbB.backup")

    def test_run_with_stats_failure_returns_error(self, tmp_path, fake_dump_engine):
        """Test that a failed stats query aborts the run with exit code 1."""

        class BrokenStatsSource:
            def run_query(self, connection):
                raise StatsQueryError("connection refused")

        app = Application(stats_source=BrokenStatsSource(), dump_engine=fake_dump_engine())

        assert app.run(make_args(backup_dir=str(tmp_path))) == 1
        assert not os.path.exists(tmp_path / "last_stats")

    def test_run_with_invalid_config_returns_error(self, fake_stats_source, fake_dump_engine):
        """Test that configuration errors stop the run before any work."""
        engine = fake_dump_engine()
        app = Application(stats_source=fake_stats_source(CURRENT), dump_engine=engine)

        assert app.run(make_args(port="99999")) == 1
        assert engine.commands == []

    def test_force_all_from_cli(self, tmp_path, fake_stats_source, fake_dump_engine):
        """Test that -a reaches the driver."""
        app = Application(stats_source=fake_stats_source(CURRENT), dump_engine=fake_dump_engine())
        app.run(make_args(backup_dir=str(tmp_path)))
        engine = fake_dump_engine()

        result = Application(stats_source=fake_stats_source(CURRENT), dump_engine=engine).run(
            make_args(backup_dir=str(tmp_path), all=True)
        )

        assert result == 0
        assert [program for program, _ in engine.dumped()].count("pg_dump") == 4

    def test_default_collaborators_are_postgres_tools(self, tmp_path):
        """Test that the real client tools are used when nothing is injected."""
        config = Config(backup_dir=str(tmp_path))

        with patch("pg_selective_backup.core.application.BackupDriver") as mock_driver:
            mock_driver.return_value.run.return_value.exit_code = 0
            assert Application().run_backup(config) == 0

        kwargs = mock_driver.call_args.kwargs
        assert isinstance(kwargs["stats_source"], PostgresTools)
        assert kwargs["stats_source"] is kwargs["dump_engine"]
        assert kwargs["force_all"] is False
