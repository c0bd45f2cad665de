"""
Shared pytest fixtures for the migration tests.

Each test gets its own SQLite database file so sessions opened by the
service under test see the same data as the assertions.
"""

import os

# Keep log files out of the test run; must happen before core.* is imported
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from core.crypto import encrypt_identifier
from db.init_db import init_database
from db.models import User, Question


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture
async def test_engine(tmp_path):
    """Async engine on a throwaway SQLite file with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'migrate_test.db'}",
        echo=False,
    )
    await init_database(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# MODEL FIXTURES
# =============================================================================

@pytest.fixture
async def questions(session_factory):
    """Reference questions p1..p3, all counters at zero."""
    rows = [
        Question(pid="p1", course="Algebra", subject=1, type="choice"),
        Question(pid="p2", course="Geometry", subject=1, type="blank"),
        Question(pid="p3", course="Mechanics", subject=2, type="choice"),
    ]
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()
    return rows


@pytest.fixture
def make_user(session_factory):
    """Insert a user whose id-number is stored encrypted, like real rows."""

    async def _make_user(id_number, name="Existing", identifier=None, stored_id=None):
        user = User(
            id_number=stored_id or encrypt_identifier(id_number),
            identifier=identifier,
            name=name,
            password="not-a-real-hash",
            school="Old School",
            major="History",
            main_subject=1,
            last_login=datetime(2020, 1, 1, tzinfo=timezone.utc),
            reg_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make_user


@pytest.fixture
def fetch_question(session_factory):
    async def _fetch(pid):
        async with session_factory() as session:
            result = await session.execute(select(Question).where(Question.pid == pid))
            return result.scalar_one()

    return _fetch
