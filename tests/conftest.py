"""
Pytest configuration for the family budget data layer.

Provides an in-memory SQLite database with the full schema, the wired
repositories and services on top of it, and recording fakes for the
Supabase and MongoDB clients so the remote backends can be exercised
without a server.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Keep test log output out of the working directory.
os.environ.setdefault(
    "LOG_FILE", os.path.join(tempfile.gettempdir(), "family_budget_tests.log")
)

from family_budget.config import AppConfig
from family_budget.database import DatabaseManager
from family_budget.logger import StructuredLogger
from family_budget.models.category import Category
from family_budget.models.enums import CategoryType, UserRole
from family_budget.models.family import Family
from family_budget.models.user import User
from family_budget.repositories import create_repositories
from family_budget.schema import initialize_schema
from family_budget.services import create_services

# Any non-empty string satisfies the repository; services hash for real.
PLACEHOLDER_HASH = "pbkdf2_sha256$1000$00ff$00ff"


@pytest.fixture(scope="session")
def logger():
    return StructuredLogger(name="family_budget.tests")


@pytest.fixture
def config():
    """Low hash cost so registration-heavy tests stay fast."""
    return AppConfig(PASSWORD_HASH_ITERATIONS=1_000, INVITE_VALIDITY_DAYS=7)


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_db(logger):
    db = DatabaseManager(backend="sqlite", logger=logger, sqlite_path=":memory:")
    initialize_schema(db.sqlite, logger)
    yield db
    db.close()


@pytest.fixture
def repos(sqlite_db, logger, config):
    return create_repositories(sqlite_db, logger, config)


@pytest.fixture
def services(sqlite_db, config, repos):
    return create_services(sqlite_db, config, repositories=repos)


@pytest.fixture
def family(repos):
    return repos["families"].create(Family(name="Smith", currency="USD"))


@pytest.fixture
def admin(repos, family):
    return repos["users"].create(User(
        email="a@b.com",
        password_hash=PLACEHOLDER_HASH,
        first_name="Anna",
        last_name="Smith",
        role=UserRole.ADMIN,
        family_id=family.id,
    ))


@pytest.fixture
def make_user(repos, family):
    """Create an active user in the fixture family."""
    def factory(email, role=UserRole.MEMBER, first_name="Test"):
        return repos["users"].create(User(
            email=email,
            password_hash=PLACEHOLDER_HASH,
            first_name=first_name,
            last_name="Smith",
            role=role,
            family_id=family.id,
        ))
    return factory


@pytest.fixture
def food(repos, family):
    return repos["categories"].create(Category(
        name="Food", type=CategoryType.EXPENSE, family_id=family.id,
    ))


@pytest.fixture
def salary(repos, family):
    return repos["categories"].create(Category(
        name="Salary", type=CategoryType.INCOME, family_id=family.id,
    ))


@pytest.fixture
def month():
    """A fixed calendar month used as a budget / report range."""
    start = datetime(2026, 3, 1, tzinfo=timezone.utc)
    return start, start + timedelta(days=31) - timedelta(microseconds=1)


# ---------------------------------------------------------------------------
# Supabase / PostgREST fake
# ---------------------------------------------------------------------------


class FakeQuery:
    """Records every builder call; ``execute`` replays the next queued response."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def called(self, name):
        return [(args, kwargs) for call, args, kwargs in self.calls if call == name]

    def execute(self):
        self.client.executed.append(self)
        if not self.client.responses:
            raise AssertionError(f"unexpected query on {self.table}: {self.calls}")
        response = self.client.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeSupabase:
    def __init__(self):
        self.responses = []
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        query = FakeQuery(self, name)
        query.calls.append(("rpc", (name, params), {}))
        return query

    def queue(self, data=None, count=None):
        self.responses.append(SimpleNamespace(data=data, count=count))

    def queue_none(self):
        """``maybe_single().execute()`` returns ``None`` when nothing matches."""
        self.responses.append(None)

    def queue_error(self, exc):
        self.responses.append(exc)


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def pg_db(logger, supabase):
    return DatabaseManager(backend="postgresql", logger=logger, supabase_client=supabase)


# ---------------------------------------------------------------------------
# MongoDB mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mongo_client():
    """A ``MongoClient`` stand-in; each collection is a distinct MagicMock."""
    client = MagicMock(name="MongoClient")
    database = MagicMock(name="Database")
    collections = {}

    def collection(name):
        if name not in collections:
            collections[name] = MagicMock(name=f"collection[{name}]")
        return collections[name]

    database.__getitem__.side_effect = collection
    client.__getitem__.return_value = database
    client.collections = collections
    return client


@pytest.fixture
def mongo_db(logger, mongo_client):
    return DatabaseManager(backend="mongodb", logger=logger, mongo_client=mongo_client)
