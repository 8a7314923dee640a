import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import text

from server_registry.db import database as db_module

SERVICE_ROOT = Path(__file__).resolve().parents[1]


# Session-wide Postgres test container
@pytest.fixture(scope="session")
def _test_postgres():
    if os.getenv("SKIP_DOCKER_TESTS") == "1":
        pytest.skip("SKIP_DOCKER_TESTS=1")
    from testcontainers.postgres import PostgresContainer

    image = os.getenv("TEST_POSTGRES_IMAGE", "postgres:16-alpine")
    with PostgresContainer(image) as pg:
        url = pg.get_connection_url()
        os.environ["TEST_DATABASE_URL"] = url
        yield url


# Apply Alembic migrations once
@pytest.fixture(scope="session")
def _migrated_db(_test_postgres):
    cfg = Config(str(SERVICE_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(SERVICE_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", _test_postgres)
    command.upgrade(cfg, "head")
    yield _test_postgres


@pytest.fixture(scope="session")
def _engine(_migrated_db):
    db_module.dispose_engine()
    engine = db_module.init_engine(_migrated_db)
    yield engine
    db_module.dispose_engine()


@pytest.fixture
def session_factory(_engine):
    """Open independent sessions (one per simulated request/thread)."""
    opened = []

    def _open():
        session = db_module.SessionLocal()
        opened.append(session)
        return session

    yield _open
    for session in opened:
        session.rollback()
        session.close()


# Rows are committed by the code under test, so clean up by truncation
@pytest.fixture
def db_session(_engine, session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with _engine.begin() as conn:
            conn.execute(text("TRUNCATE servers"))


@pytest.fixture
def db(db_session):
    return db_session
