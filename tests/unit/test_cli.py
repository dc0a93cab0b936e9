"""Unit tests for the command line interface."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from sqlalchemy import update

from registrar import __version__
from registrar.cli import main
from registrar.records import RecordStore, SchoolClass


@pytest.fixture
def db_path():
    """Temporary database file, removed with its WAL side files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield str(Path(tmpdir) / "cli.db")


@pytest.fixture
def runner(db_path: str) -> CliRunner:
    """Runner that keeps log files next to the test database."""
    return CliRunner(env={"REGISTRAR_LOG_DIR": str(Path(db_path).parent)})


@pytest.mark.unit
class TestCli:
    """Tests for registrar commands."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init_db(self, runner: CliRunner, db_path: str) -> None:
        result = runner.invoke(main, ["init-db", "--db", db_path])

        assert result.exit_code == 0
        assert Path(db_path).exists()

    def test_seed(self, runner: CliRunner, db_path: str) -> None:
        result = runner.invoke(main, ["seed", "--db", db_path])

        assert result.exit_code == 0, result.output
        assert "Departments: 3" in result.output
        assert "Students: 3" in result.output

        store = RecordStore(db_path)
        try:
            assert store.list_students().total == 3
            assert store.check_counters().consistent
        finally:
            store.close()

    def test_seed_twice_resets(self, runner: CliRunner, db_path: str) -> None:
        runner.invoke(main, ["seed", "--db", db_path])
        result = runner.invoke(main, ["seed", "--db", db_path])

        assert result.exit_code == 0

    def test_seed_keep_conflicts(self, runner: CliRunner, db_path: str) -> None:
        """Seeding on top of existing data fails on the duplicate codes."""
        runner.invoke(main, ["seed", "--db", db_path])
        result = runner.invoke(main, ["seed", "--keep", "--db", db_path])

        assert result.exit_code == 1
        assert "Seed error" in result.output

    def test_check_and_repair_counters(self, runner: CliRunner, db_path: str) -> None:
        runner.invoke(main, ["seed", "--db", db_path])
        store = RecordStore(db_path)
        session = store.database.get_session()
        try:
            session.execute(update(SchoolClass).values(current_strength=9))
            session.commit()
        finally:
            session.close()
            store.close()

        check = runner.invoke(main, ["check-counters", "--db", db_path])
        assert check.exit_code == 1
        assert "Counter drift detected in 3 counter(s)" in check.output

        repair = runner.invoke(main, ["repair-counters", "--db", db_path])
        assert repair.exit_code == 0
        assert "Repaired 3 counter(s)" in repair.output

        clean = runner.invoke(main, ["check-counters", "--db", db_path])
        assert clean.exit_code == 0
        assert "All counters consistent" in clean.output

    def test_bad_environment(self, runner: CliRunner, db_path: str) -> None:
        result = runner.invoke(
            main, ["init-db", "--db", db_path], env={"REGISTRAR_WRITE_RETRIES": "-1"}
        )

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_serve_runs_uvicorn(self, runner: CliRunner, db_path: str) -> None:
        with patch("registrar.cli.uvicorn.run") as run, patch.dict(os.environ):
            result = runner.invoke(main, ["serve", "--db", db_path, "--port", "9100"])
            assert os.environ["REGISTRAR_DB_PATH"] == db_path

        assert result.exit_code == 0, result.output
        args, kwargs = run.call_args
        assert args == ("registrar.api.app:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9100
