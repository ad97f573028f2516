"""Configuration, structured logging, the database manager and the CLI."""

import io
import json
import logging
import sqlite3
import sys
import uuid

import pytest
from pydantic import ValidationError

import main
from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import JSONFormatter, StructuredLogger
from family_budget.models.family import Family
from family_budget.repositories import create_repositories
from family_budget.repositories.mongo import MongoFamilyRepository, MongoUserRepository
from family_budget.repositories.postgres import PostgresFamilyRepository, PostgresReportRepository
from family_budget.repositories.sqlite import SQLiteFamilyRepository
from family_budget.utils.audit import log_audit_event


class TestAppConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DB_BACKEND", raising=False)
        config = AppConfig()
        assert config.DB_BACKEND == "sqlite"
        assert config.INVITE_VALIDITY_DAYS == 7
        assert config.DEFAULT_QUERY_LIMIT == 50
        assert config.MAX_QUERY_LIMIT == 1000
        assert config.SUPABASE_KEY.get_secret_value() == ""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DB_BACKEND", "mongodb")
        monkeypatch.setenv("MONGODB_DATABASE", "budget_test")
        monkeypatch.setenv("INVITE_VALIDITY_DAYS", "3")
        config = AppConfig()
        assert config.DB_BACKEND == "mongodb"
        assert config.MONGODB_DATABASE == "budget_test"
        assert config.INVITE_VALIDITY_DAYS == 3

    def test_unknown_backend(self):
        with pytest.raises(ValidationError):
            AppConfig(DB_BACKEND="oracle")

    def test_secret_is_masked(self):
        config = AppConfig(SUPABASE_KEY="service-role-key")
        assert "service-role-key" not in repr(config)
        assert config.SUPABASE_KEY.get_secret_value() == "service-role-key"

    @pytest.mark.parametrize(
        "name, level", [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("loud", logging.INFO)]
    )
    def test_log_level(self, name, level):
        assert AppConfig(LOG_LEVEL=name).log_level == level


class TestStructuredLogging:
    def _record(self, **extra):
        record = logging.LogRecord(
            name="family_budget.test",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Invite %s expired",
            args=("abc",),
            exc_info=None,
        )
        record.__dict__.update(extra)
        return record

    def test_json_shape(self):
        entry = json.loads(JSONFormatter().format(self._record()))
        assert entry["level"] == "WARNING"
        assert entry["logger_name"] == "family_budget.test"
        assert entry["message"] == "Invite abc expired"
        assert entry["timestamp"].endswith("+00:00")
        assert "extra" not in entry

    def test_extra_fields(self):
        entry = json.loads(JSONFormatter().format(self._record(expired=3)))
        assert entry["extra"] == {"expired": 3}

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self._record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]

    def test_logger_writes_json_lines(self, tmp_path):
        stream = io.StringIO()
        log = StructuredLogger(
            name=f"family_budget.test.{uuid.uuid4().hex}",
            level=logging.INFO,
            stream=stream,
            log_file=str(tmp_path / "logs" / "app.log"),
        )
        log.debug("hidden")
        log.info("Family %s created", "Smith")
        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "Family Smith created"
        assert (tmp_path / "logs" / "app.log").read_text(encoding="utf-8").strip() == lines[0]

    def test_audit_persistence_failure_does_not_raise(self, logger):
        conn = sqlite3.connect(":memory:")
        log_audit_event(logger, "CREATE", "Family", uuid.uuid4(), conn=conn)
        conn.close()


class TestDatabaseManager:
    def test_unsupported_backend(self, logger):
        with pytest.raises(ValueError, match="Unsupported backend"):
            DatabaseManager(backend="oracle", logger=logger)

    def test_only_selected_backend_is_available(self, sqlite_db, pg_db, mongo_db, supabase):
        assert sqlite_db.backend == "sqlite"
        with pytest.raises(RuntimeError):
            sqlite_db.supabase
        with pytest.raises(RuntimeError):
            sqlite_db.mongo

        assert pg_db.supabase is supabase
        with pytest.raises(RuntimeError):
            pg_db.sqlite

        assert mongo_db.mongo is not None
        with pytest.raises(RuntimeError):
            mongo_db.sqlite

    def test_batch_write_commits_once(self, sqlite_db, repos):
        with sqlite_db.batch_write():
            assert sqlite_db.in_batch
            repos["families"].create(Family(name="Smith", currency="USD"))
            repos["families"].create(Family(name="Jones", currency="EUR"))
        assert not sqlite_db.in_batch
        assert {f.name for f in repos["families"].get_all()} == {"Smith", "Jones"}

    def test_batch_write_rolls_back(self, sqlite_db, repos):
        with pytest.raises(RuntimeError):
            with sqlite_db.batch_write():
                repos["families"].create(Family(name="Smith", currency="USD"))
                raise RuntimeError("abort")
        assert not sqlite_db.in_batch
        assert repos["families"].get_all() == []

    def test_close_is_idempotent(self, logger):
        db = DatabaseManager(backend="sqlite", logger=logger, sqlite_path=":memory:")
        db.close()
        db.close()

    def test_from_config(self, logger, tmp_path):
        config = AppConfig(DB_BACKEND="sqlite", SQLITE_PATH=str(tmp_path / "budget.db"))
        db = DatabaseManager.from_config(config, logger)
        try:
            assert db.backend == "sqlite"
            assert db.sqlite.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        finally:
            db.close()


class TestRepositoryFactory:
    def test_sqlite(self, repos):
        assert isinstance(repos["families"], SQLiteFamilyRepository)
        assert set(repos) == {
            "families", "users", "invites", "categories",
            "transactions", "budgets", "reports",
        }

    def test_postgres(self, pg_db, logger):
        repositories = create_repositories(pg_db, logger)
        assert isinstance(repositories["families"], PostgresFamilyRepository)
        assert isinstance(repositories["reports"], PostgresReportRepository)

    def test_mongo(self, mongo_db, logger):
        repositories = create_repositories(mongo_db, logger)
        assert isinstance(repositories["families"], MongoFamilyRepository)
        assert isinstance(repositories["users"], MongoUserRepository)


class TestCommandLine:
    @pytest.fixture
    def db_path(self, tmp_path, monkeypatch):
        path = tmp_path / "budget.db"
        monkeypatch.setattr(
            main, "get_config",
            lambda: AppConfig(DB_BACKEND="sqlite", SQLITE_PATH=str(path)),
        )
        return path

    def test_parser(self):
        parser = main._build_parser()
        args = parser.parse_args(["stats", "--family-id", "abc"])
        assert args.command == "stats"
        assert args.family_id == "abc"
        with pytest.raises(SystemExit):
            parser.parse_args([])
        with pytest.raises(SystemExit):
            parser.parse_args(["stats"])

    def test_init_db_and_sweep(self, db_path):
        assert main.main(["init-db"]) == 0
        assert db_path.exists()
        assert main.main(["sweep-invites"]) == 0

    def test_stats(self, db_path, logger, capsys):
        assert main.main(["init-db"]) == 0
        db = DatabaseManager(backend="sqlite", logger=logger, sqlite_path=str(db_path))
        family = create_repositories(db, logger)["families"].create(
            Family(name="Smith", currency="USD")
        )
        db.close()

        assert main.main(["stats", "--family-id", str(family.id)]) == 0
        out = capsys.readouterr().out
        assert f'"family_id": "{family.id}"' in out
        assert '"balance": 0.0' in out

    def test_stats_for_unknown_family(self, db_path):
        assert main.main(["stats", "--family-id", str(uuid.uuid4())]) == 1
