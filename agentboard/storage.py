"""SQLite-backed storage for agents and boards."""

from __future__ import annotations

import os
import random
import re
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from agentboard.models import (
    Agent,
    AgentUpdate,
    Board,
    BoardSummary,
    GeneralError,
    InvalidArgsError,
    NotFoundError,
)

DB_PATH_ENV = "AGENT_BOARD_DB_PATH"

SCHEMA = """
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    command TEXT NOT NULL,
    working_directory TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deactivated_at TEXT
);
CREATE TABLE IF NOT EXISTS boards (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE TABLE IF NOT EXISTS cards (
    id TEXT PRIMARY KEY,
    board_id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'todo',
    assigned_to TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_cards_board ON cards (board_id);
CREATE INDEX IF NOT EXISTS idx_cards_assignee ON cards (assigned_to);
CREATE TABLE IF NOT EXISTS card_tags (
    card_id TEXT NOT NULL,
    tag TEXT NOT NULL,
    PRIMARY KEY (card_id, tag)
);
CREATE TABLE IF NOT EXISTS checklists (
    id TEXT PRIMARY KEY,
    card_id TEXT NOT NULL,
    name TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_checklists_card ON checklists (card_id);
CREATE TABLE IF NOT EXISTS checklist_items (
    id TEXT PRIMARY KEY,
    checklist_id TEXT NOT NULL,
    text TEXT NOT NULL,
    checked INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_items_checklist ON checklist_items (checklist_id);
CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    card_id TEXT NOT NULL,
    author TEXT,
    text TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_comments_card ON comments (card_id);
"""

_AGENT_COLUMNS = (
    "id, name, command, working_directory, description, "
    "created_at, updated_at, deactivated_at"
)
_BOARD_COLUMNS = "id, name, description, created_at, updated_at, deleted_at"

_TIMESTAMP = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)

_ADJECTIVES = (
    "agile", "bold", "brave", "bright", "calm", "clever", "cosmic", "crisp",
    "eager", "fancy", "gentle", "happy", "humble", "jolly", "keen", "lively",
    "lucky", "mellow", "nimble", "peaceful", "quiet", "rapid", "shiny",
    "steady", "swift", "tidy", "vivid", "witty", "zesty",
)
_NOUNS = (
    "anchor", "badger", "beacon", "canyon", "comet", "falcon", "forest",
    "garden", "harbor", "island", "lantern", "meadow", "otter", "pebble",
    "planet", "plant", "river", "rocket", "sparrow", "summit", "thunder",
    "tiger", "valley", "willow", "zephyr",
)


def default_db_path() -> Path:
    """Database location: the environment override, else ~/.agent-board/data.db."""
    custom = os.environ.get(DB_PATH_ENV)
    if custom:
        return Path(custom)
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as exc:
        raise GeneralError("Could not determine home directory") from exc
    return home / ".agent-board" / "data.db"


def generate_id(prefix: str) -> str:
    """A new identifier: the prefix, an underscore and 12 hex digits."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def parse_datetime(text: Optional[str]) -> datetime:
    """Parse an RFC 3339 timestamp into UTC; unreadable text yields the current time."""
    match = _TIMESTAMP.match(text or "")
    if match:
        date_part, time_part, fraction, offset = match.groups()
        micro = (fraction or "").ljust(6, "0")[:6]
        if offset in ("Z", "z"):
            offset = "+00:00"
        try:
            parsed = datetime.fromisoformat(f"{date_part}T{time_part}.{micro}{offset}")
        except ValueError:
            pass
        else:
            return parsed.astimezone(timezone.utc)
    return datetime.now(timezone.utc)


def generate_agent_name() -> str:
    """A random adjective-noun name for an agent."""
    return f"{random.choice(_ADJECTIVES)}-{random.choice(_NOUNS)}"


def _now_text() -> str:
    # Fixed-width timestamps keep text ordering equal to time ordering.
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _optional_datetime(text: Optional[str]) -> Optional[datetime]:
    return parse_datetime(text) if text is not None else None


class Store:
    """Connection to the board database with agent and board operations."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        db_path = Path(path) if path is not None else default_db_path()
        self.path = db_path
        try:
            if str(db_path) != ":memory:":
                db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), isolation_level=None)
        except (OSError, sqlite3.Error) as exc:
            raise GeneralError(f"Failed to open database: {exc}") from exc
        try:
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as exc:
            self._conn.close()
            raise GeneralError(f"Failed to initialize schema: {exc}") from exc

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @contextmanager
    def _guard(self, what: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise GeneralError(f"{what}: {exc}") from exc

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._guard("Query failed"):
            return self._conn.execute(sql, params).fetchall()

    def _execute(self, what: str, sql: str, params: tuple = ()) -> int:
        with self._guard(what):
            return self._conn.execute(sql, params).rowcount

    @staticmethod
    def _agent_from_row(row: tuple) -> Agent:
        return Agent(
            id=row[0] or "",
            name=row[1] or "",
            command=row[2] or "",
            working_directory=row[3] or "",
            description=row[4],
            created_at=parse_datetime(row[5]),
            updated_at=parse_datetime(row[6]),
            deactivated_at=_optional_datetime(row[7]),
        )

    @staticmethod
    def _board_from_row(row: tuple) -> Board:
        return Board(
            id=row[0] or "",
            name=row[1] or "",
            description=row[2],
            created_at=parse_datetime(row[3]),
            updated_at=parse_datetime(row[4]),
            deleted_at=_optional_datetime(row[5]),
        )

    # Agents

    def register_agent(
        self,
        name: Optional[str],
        command: str,
        working_directory: str,
        description: Optional[str] = None,
    ) -> Agent:
        """Create an agent, naming it at random when no name is given."""
        agent_name = name if name is not None else generate_agent_name()
        agent_id = generate_id("agent")
        now = _now_text()
        try:
            self._conn.execute(
                f"INSERT INTO agents ({_AGENT_COLUMNS[:-len(', deactivated_at')]}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (agent_id, agent_name, command, working_directory,
                 description or "", now, now),
            )
        except sqlite3.Error as exc:
            if "UNIQUE constraint failed" in str(exc):
                raise InvalidArgsError(
                    f"Agent name '{agent_name}' already exists"
                ) from exc
            raise GeneralError(f"Insert failed: {exc}") from exc
        return self.get_agent(agent_id)

    def get_agent(self, agent_id: str) -> Agent:
        """An active agent by id."""
        rows = self._query(
            f"SELECT {_AGENT_COLUMNS} FROM agents "
            "WHERE id = ? AND deactivated_at IS NULL",
            (agent_id,),
        )
        if not rows:
            raise NotFoundError(f"Agent not found: {agent_id}")
        return self._agent_from_row(rows[0])

    def list_agents(self, include_inactive: bool = False) -> list[Agent]:
        """Agents, newest first."""
        where = "" if include_inactive else " WHERE deactivated_at IS NULL"
        rows = self._query(
            f"SELECT {_AGENT_COLUMNS} FROM agents{where} ORDER BY created_at DESC"
        )
        return [self._agent_from_row(row) for row in rows]

    def update_agent(self, agent_id: str, update: AgentUpdate) -> None:
        """Change the fields of an active agent that the update sets."""
        self.get_agent(agent_id)
        now = _now_text()
        if update.name is not None:
            try:
                self._conn.execute(
                    "UPDATE agents SET name = ?, updated_at = ? WHERE id = ?",
                    (update.name, now, agent_id),
                )
            except sqlite3.Error as exc:
                if "UNIQUE constraint failed" in str(exc):
                    raise InvalidArgsError(
                        f"Agent name '{update.name}' already exists"
                    ) from exc
                raise GeneralError(f"Update failed: {exc}") from exc
        for column, value in (
            ("command", update.command),
            ("description", update.description),
            ("working_directory", update.working_directory),
        ):
            if value is not None:
                self._execute(
                    "Update failed",
                    f"UPDATE agents SET {column} = ?, updated_at = ? WHERE id = ?",
                    (value, now, agent_id),
                )

    def unregister_agent(self, agent_id: str) -> None:
        """Deactivate an agent without removing its record."""
        self.get_agent(agent_id)
        now = _now_text()
        self._execute(
            "Unregister failed",
            "UPDATE agents SET deactivated_at = ?, updated_at = ? WHERE id = ?",
            (now, now, agent_id),
        )

    # Boards

    def list_boards(self, include_deleted: bool = False) -> list[Board]:
        """Boards, newest first."""
        where = "" if include_deleted else " WHERE deleted_at IS NULL"
        rows = self._query(
            f"SELECT {_BOARD_COLUMNS} FROM boards{where} ORDER BY created_at DESC"
        )
        return [self._board_from_row(row) for row in rows]

    def get_board(self, board_id: str) -> Board:
        """A board that has not been deleted, by id."""
        rows = self._query(
            f"SELECT {_BOARD_COLUMNS} FROM boards WHERE id = ? AND deleted_at IS NULL",
            (board_id,),
        )
        if not rows:
            raise NotFoundError(f"Board not found: {board_id}")
        return self._board_from_row(rows[0])

    def delete_board(self, board_id: str) -> None:
        """Soft-delete a board together with its cards."""
        self.get_board(board_id)
        now = _now_text()
        self._execute(
            "Delete failed",
            "UPDATE boards SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, board_id),
        )
        self._execute(
            "Delete cards failed",
            "UPDATE cards SET deleted_at = ?, updated_at = ? "
            "WHERE board_id = ? AND deleted_at IS NULL",
            (now, now, board_id),
        )

    def create_board(self, name: str, description: Optional[str] = None) -> Board:
        """Create a board."""
        board_id = generate_id("board")
        now = _now_text()
        self._execute(
            "Insert failed",
            "INSERT INTO boards (id, name, description, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (board_id, name, description or "", now, now),
        )
        return self.get_board(board_id)

    def get_board_summary(self, board_id: str) -> BoardSummary:
        """Counts of a board's live cards by status."""
        self.get_board(board_id)
        rows = self._query(
            "SELECT status, COUNT(*) FROM cards "
            "WHERE board_id = ? AND deleted_at IS NULL GROUP BY status",
            (board_id,),
        )
        summary = BoardSummary()
        fields = {
            "todo": "todo_count",
            "in_progress": "in_progress_count",
            "pending_review": "pending_review_count",
            "done": "done_count",
        }
        for status, count in rows:
            attr = fields.get(status)
            if attr is not None:
                setattr(summary, attr, int(count))
        summary.total_cards = (
            summary.todo_count
            + summary.in_progress_count
            + summary.pending_review_count
            + summary.done_count
        )
        return summary