import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, text

from server_registry.db import models
from server_registry.db.publish_lock import hash_server_name, with_publish_lock
from server_registry.db.repositories import servers as server_repo
from server_registry.errors import ConflictError, DuplicateVersionError
from server_registry.services.registry_service import RegistryService
from tests.factories import make_record, make_server

pytestmark = pytest.mark.integration

NAME = "com.example/fs"


def _publish(session_factory, name, version):
    return RegistryService(session_factory()).publish(make_server(name, version))


def _latest_versions(db, name):
    page, _ = server_repo.list_servers(db, None, None, 100)
    return sorted(s.version for s in page if s.name == name and s.official.is_latest)


def _count(db):
    return db.query(func.count(models.ServerVersion.version_id)).scalar()


@pytest.mark.parametrize(
    "first,second,second_is_latest",
    [
        ("1.0.0", "2.0.0", True),
        ("2.0.0", "1.0.0", False),
        ("v1.0", "v1.1", True),
        ("1.0.0", "1.0.0-beta", False),
        ("latest", "1.0.0", True),
        ("1.0.0", "1.0.0+build.5", False),
    ],
)
def test_latest_resolution_through_publish(db_session, session_factory, first, second, second_is_latest):
    a = _publish(session_factory, NAME, first)
    b = _publish(session_factory, NAME, second)

    assert a.official.server_id == b.official.server_id
    assert b.official.is_latest is second_is_latest
    expected_latest = second if second_is_latest else first
    assert _latest_versions(db_session, NAME) == [expected_latest]
    stored_a = server_repo.get_by_version_id(db_session, a.official.version_id)
    assert stored_a.official.is_latest is (not second_is_latest)


def test_duplicate_version_leaves_storage_unchanged(db_session, session_factory):
    _publish(session_factory, NAME, "1.0.0")
    _publish(session_factory, NAME, "2.0.0")
    before = _count(db_session)

    with pytest.raises(DuplicateVersionError):
        _publish(session_factory, NAME, "1.0.0")

    db_session.rollback()
    assert _count(db_session) == before
    assert _latest_versions(db_session, NAME) == ["2.0.0"]


def test_failed_insert_rolls_back_the_unmark(db_session, session_factory):
    current = _publish(session_factory, NAME, "1.0.0")
    clash = make_record(
        NAME, "2.0.0", server_id=current.official.server_id, version_id=current.official.version_id
    )

    session = session_factory()
    with pytest.raises(ConflictError):
        with_publish_lock(
            session,
            NAME,
            lambda db: server_repo.create_server(db, clash, current.official.version_id),
        )

    db_session.rollback()
    stored = server_repo.get_by_version_id(db_session, current.official.version_id)
    assert stored.version == "1.0.0"
    assert stored.official.is_latest is True
    assert _count(db_session) == 1


def test_same_name_publishes_are_serialized(db_session, session_factory):
    log = []
    first_inside = threading.Event()

    def slow(db):
        log.append("first:start")
        first_inside.set()
        time.sleep(0.3)
        log.append("first:end")

    def fast(db):
        log.append("second:start")
        log.append("second:end")

    with ThreadPoolExecutor(max_workers=2) as pool:
        f1 = pool.submit(with_publish_lock, session_factory(), NAME, slow)
        assert first_inside.wait(5)
        f2 = pool.submit(with_publish_lock, session_factory(), NAME, fast)
        f1.result(timeout=10)
        f2.result(timeout=10)

    assert log == ["first:start", "first:end", "second:start", "second:end"]


def test_different_names_do_not_block_each_other(db_session, session_factory):
    assert hash_server_name("com.example/a") != hash_server_name("com.example/b")
    b_inside = threading.Event()

    def hold_a(db):
        # Only completes if b can take its lock while a is held
        return b_inside.wait(5)

    def run_b(db):
        b_inside.set()

    with ThreadPoolExecutor(max_workers=2) as pool:
        fa = pool.submit(with_publish_lock, session_factory(), "com.example/a", hold_a)
        fb = pool.submit(with_publish_lock, session_factory(), "com.example/b", run_b)
        fb.result(timeout=10)
        assert fa.result(timeout=10) is True


def test_lock_is_released_when_fn_fails(db_session, session_factory):
    def boom(db):
        raise RuntimeError("publish failed")

    with pytest.raises(RuntimeError):
        with_publish_lock(session_factory(), NAME, boom)

    probe = session_factory()
    acquired = probe.execute(
        text("SELECT pg_try_advisory_xact_lock(:lock_id)"), {"lock_id": hash_server_name(NAME)}
    ).scalar()
    probe.rollback()
    assert acquired is True


def test_concurrent_publishes_leave_exactly_one_latest(db_session, session_factory):
    versions = ["1.0.0", "1.2.0", "1.10.0", "2.0.0-rc.1", "2.0.0", "1.9.9", "0.1.0", "2.0.0-beta"]
    sessions = [session_factory() for _ in versions]

    def publish(args):
        session, version = args
        return RegistryService(session).publish(make_server(NAME, version))

    with ThreadPoolExecutor(max_workers=len(versions)) as pool:
        results = list(pool.map(publish, zip(sessions, versions)))

    assert len({r.official.server_id for r in results}) == 1
    assert _count(db_session) == len(versions)
    assert _latest_versions(db_session, NAME) == ["2.0.0"]
    latest = server_repo.get_by_server_id(db_session, results[0].official.server_id)
    assert latest.version == "2.0.0"
