import re
import sqlite3
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from agentboard.models import (
    AgentUpdate,
    GeneralError,
    InvalidArgsError,
    NotFoundError,
)
from agentboard.storage import (
    Store,
    default_db_path,
    generate_agent_name,
    generate_id,
    parse_datetime,
)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "board.db"


@pytest.fixture
def store(db_path):
    with Store(db_path) as opened:
        yield opened


def _insert_card(path, card_id, board_id, status, deleted_at=None):
    conn = sqlite3.connect(str(path), isolation_level=None)
    try:
        conn.execute(
            "INSERT INTO cards (id, board_id, name, description, status, "
            "created_at, updated_at, deleted_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (card_id, board_id, card_id, "", status,
             "2024-01-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00", deleted_at),
        )
    finally:
        conn.close()


def _card_deleted_at(path, card_id):
    conn = sqlite3.connect(str(path))
    try:
        return conn.execute(
            "SELECT deleted_at FROM cards WHERE id = ?", (card_id,)
        ).fetchone()[0]
    finally:
        conn.close()


def test_default_db_path_uses_environment(monkeypatch, tmp_path):
    target = tmp_path / "custom.db"
    monkeypatch.setenv("AGENT_BOARD_DB_PATH", str(target))
    assert default_db_path() == target


def test_default_db_path_in_home(monkeypatch):
    monkeypatch.delenv("AGENT_BOARD_DB_PATH", raising=False)
    path = default_db_path()
    assert path.parts[-2:] == (".agent-board", "data.db")
    assert path.parent.parent == Path.home()


def test_generate_id_shape():
    ident = generate_id("card")
    assert re.fullmatch(r"card_[0-9a-f]{12}", ident)
    assert generate_id("card") != ident


def test_parse_datetime_zulu():
    assert parse_datetime("2024-01-02T03:04:05Z") == datetime(
        2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc
    )


def test_parse_datetime_offset_converts_to_utc():
    parsed = parse_datetime("2024-01-02T05:04:05+02:00")
    assert parsed == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(0)


def test_parse_datetime_long_fraction():
    parsed = parse_datetime("2024-01-02T03:04:05.123456789+00:00")
    assert parsed.microsecond == 123456


def test_parse_datetime_invalid_is_now():
    before = datetime.now(timezone.utc)
    parsed = parse_datetime("not a date")
    after = datetime.now(timezone.utc)
    assert before <= parsed <= after


def test_generate_agent_name_shape():
    name = generate_agent_name()
    parts = name.split("-")
    assert len(parts) == 2
    assert all(part.isalpha() and part.islower() for part in parts)


def test_store_creates_parent_directories(tmp_path):
    path = tmp_path / "a" / "b" / "data.db"
    with Store(path) as opened:
        assert opened.list_boards() == []
    assert path.exists()


def test_store_open_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(GeneralError):
        Store(blocker / "sub" / "data.db")


def test_register_and_get_agent(store):
    agent = store.register_agent("alpha", "claude", "/work", "helper")
    assert agent.id.startswith("agent_")
    fetched = store.get_agent(agent.id)
    assert fetched.name == "alpha"
    assert fetched.command == "claude"
    assert fetched.working_directory == "/work"
    assert fetched.description == "helper"
    assert fetched.deactivated_at is None
    assert fetched.created_at == fetched.updated_at


def test_register_agent_without_name_or_description(store):
    agent = store.register_agent(None, "aider", "/w", None)
    assert re.fullmatch(r"[a-z]+-[a-z]+", agent.name)
    assert agent.description == ""


def test_register_duplicate_name(store):
    store.register_agent("alpha", "claude", "/w", None)
    with pytest.raises(InvalidArgsError) as info:
        store.register_agent("alpha", "aider", "/w", None)
    assert "Agent name 'alpha' already exists" in str(info.value)
    assert info.value.exit_code() == 2


def test_get_missing_agent(store):
    with pytest.raises(NotFoundError) as info:
        store.get_agent("agent_missing")
    assert str(info.value) == "Not found: Agent not found: agent_missing"


def test_unregister_agent(store):
    agent = store.register_agent("alpha", "claude", "/w", None)
    store.unregister_agent(agent.id)
    with pytest.raises(NotFoundError):
        store.get_agent(agent.id)
    with pytest.raises(NotFoundError):
        store.unregister_agent(agent.id)
    assert store.list_agents(False) == []
    inactive = store.list_agents(True)
    assert [a.id for a in inactive] == [agent.id]
    assert inactive[0].deactivated_at is not None


def test_list_agents_newest_first(store):
    first = store.register_agent("one", "c", "/w", None)
    time.sleep(0.02)
    second = store.register_agent("two", "c", "/w", None)
    assert [a.id for a in store.list_agents(False)] == [second.id, first.id]


def test_update_agent_fields(store):
    agent = store.register_agent("alpha", "claude", "/w", None)
    store.update_agent(
        agent.id,
        AgentUpdate(name="beta", command="aider", description="d", working_directory="/x"),
    )
    fetched = store.get_agent(agent.id)
    assert (fetched.name, fetched.command, fetched.description, fetched.working_directory) == (
        "beta", "aider", "d", "/x",
    )
    assert fetched.updated_at >= agent.updated_at


def test_update_agent_keeps_unset_fields(store):
    agent = store.register_agent("alpha", "claude", "/w", "desc")
    store.update_agent(agent.id, AgentUpdate(command="aider"))
    fetched = store.get_agent(agent.id)
    assert fetched.name == "alpha"
    assert fetched.description == "desc"
    assert fetched.command == "aider"


def test_update_agent_duplicate_name(store):
    store.register_agent("alpha", "c", "/w", None)
    other = store.register_agent("beta", "c", "/w", None)
    with pytest.raises(InvalidArgsError):
        store.update_agent(other.id, AgentUpdate(name="alpha"))
    assert store.get_agent(other.id).name == "beta"


def test_update_missing_agent(store):
    with pytest.raises(NotFoundError):
        store.update_agent("agent_missing", AgentUpdate(name="x"))


def test_create_and_get_board(store):
    board = store.create_board("Sprint", "work")
    assert board.id.startswith("board_")
    fetched = store.get_board(board.id)
    assert fetched.name == "Sprint"
    assert fetched.description == "work"
    assert fetched.deleted_at is None


def test_get_missing_board(store):
    with pytest.raises(NotFoundError) as info:
        store.get_board("board_missing")
    assert info.value.exit_code() == 4


def test_list_boards_newest_first(store):
    first = store.create_board("A", None)
    time.sleep(0.02)
    second = store.create_board("B", None)
    assert [b.id for b in store.list_boards(False)] == [second.id, first.id]


def test_delete_board_soft_deletes_cards(store, db_path):
    board = store.create_board("A", None)
    _insert_card(db_path, "card_1", board.id, "todo")
    store.delete_board(board.id)
    with pytest.raises(NotFoundError):
        store.get_board(board.id)
    with pytest.raises(NotFoundError):
        store.delete_board(board.id)
    assert store.list_boards(False) == []
    deleted = store.list_boards(True)
    assert [b.id for b in deleted] == [board.id]
    assert deleted[0].deleted_at is not None
    assert _card_deleted_at(db_path, "card_1") is not None


def test_board_summary_counts(store, db_path):
    board = store.create_board("A", None)
    other = store.create_board("B", None)
    _insert_card(db_path, "c1", board.id, "todo")
    _insert_card(db_path, "c2", board.id, "todo")
    _insert_card(db_path, "c3", board.id, "in_progress")
    _insert_card(db_path, "c4", board.id, "pending_review")
    _insert_card(db_path, "c5", board.id, "done")
    _insert_card(db_path, "c6", board.id, "done", "2024-01-01T00:00:00+00:00")
    _insert_card(db_path, "c7", other.id, "done")
    summary = store.get_board_summary(board.id)
    assert summary.todo_count == 2
    assert summary.in_progress_count == 1
    assert summary.pending_review_count == 1
    assert summary.done_count == 1
    assert summary.total_cards == 5


def test_board_summary_empty_and_missing(store):
    board = store.create_board("A", None)
    assert store.get_board_summary(board.id).total_cards == 0
    with pytest.raises(NotFoundError):
        store.get_board_summary("board_missing")


def test_data_persists_across_reopen(db_path):
    with Store(db_path) as first:
        board = first.create_board("Persist", None)
    with Store(db_path) as second:
        assert second.get_board(board.id).name == "Persist"