import threading
import uuid
from unittest.mock import MagicMock

import pytest

from server_registry.db.repositories import servers as server_repo
from server_registry.errors import InvalidInputError, OperationCancelledError
from tests.factories import make_record, make_server


@pytest.fixture
def cancelled():
    event = threading.Event()
    event.set()
    return event


@pytest.mark.parametrize(
    "call",
    [
        lambda db, c: server_repo.list_servers(db, cancel=c),
        lambda db, c: server_repo.get_by_version_id(db, str(uuid.uuid4()), cancel=c),
        lambda db, c: server_repo.get_by_server_id(db, str(uuid.uuid4()), cancel=c),
        lambda db, c: server_repo.get_by_server_id_and_version(db, str(uuid.uuid4()), "1.0.0", cancel=c),
        lambda db, c: server_repo.get_all_versions_by_server_id(db, str(uuid.uuid4()), cancel=c),
        lambda db, c: server_repo.get_latest_by_name(db, "com.example/fs", cancel=c),
        lambda db, c: server_repo.create_server(db, make_record("com.example/fs", "1.0.0"), cancel=c),
    ],
)
def test_cancelled_operations_never_reach_the_database(cancelled, call):
    db = MagicMock()
    with pytest.raises(OperationCancelledError):
        call(db, cancelled)
    db.query.assert_not_called()
    db.add.assert_not_called()


def test_list_rejects_malformed_cursor_before_querying():
    db = MagicMock()
    with pytest.raises(InvalidInputError):
        server_repo.list_servers(db, cursor="not-a-uuid", limit=5)
    db.query.assert_not_called()


def test_create_requires_registry_metadata():
    db = MagicMock()
    with pytest.raises(InvalidInputError):
        server_repo.create_server(db, make_server("com.example/fs", "1.0.0"))
    db.begin_nested.assert_not_called()


def test_update_rejects_mismatched_version_id():
    db = MagicMock()
    record = make_record("com.example/fs", "1.0.0")
    with pytest.raises(InvalidInputError, match="versionId must match"):
        server_repo.update_server(db, str(uuid.uuid4()), record)
    db.query.assert_not_called()
    db.commit.assert_not_called()


def test_update_rejects_document_without_registry_metadata():
    db = MagicMock()
    with pytest.raises(InvalidInputError):
        server_repo.update_server(db, str(uuid.uuid4()), make_server("com.example/fs", "1.0.0"))
    db.query.assert_not_called()


def test_update_accepts_case_insensitive_id_match():
    db = MagicMock()
    db.query.return_value.filter.return_value.update.return_value = 1
    record = make_record("com.example/fs", "1.0.0")
    server_repo.update_server(db, record.official.version_id.upper(), record)
    db.commit.assert_called_once()
