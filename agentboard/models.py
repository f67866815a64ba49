"""Domain records, enumerations and errors for the task board."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union


class AgentBoardError(Exception):
    """Base error; each kind carries its own process exit code."""

    code = 1
    prefix = ""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}{self.message}"

    def exit_code(self) -> int:
        """Exit status the command line reports for this error."""
        return self.code


class GeneralError(AgentBoardError):
    """Any failure without a more specific kind."""

    code = 1


class InvalidArgsError(AgentBoardError):
    """The caller supplied arguments that cannot be used."""

    code = 2
    prefix = "Invalid arguments: "


class NotFoundError(AgentBoardError):
    """A requested record does not exist."""

    code = 4
    prefix = "Not found: "


class PermissionDeniedError(AgentBoardError):
    """The operation is not allowed."""

    code = 5
    prefix = "Permission denied: "


class SessionConflictError(AgentBoardError):
    """Two sessions claimed the same resource."""

    code = 6
    prefix = "Session conflict: "


class Status(str, enum.Enum):
    """Lifecycle state of a card."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    DONE = "done"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_db(cls, value: Optional[str]) -> "Status":
        """Read a stored status; anything unrecognised counts as todo."""
        try:
            return cls(value)
        except ValueError:
            return cls.TODO


class OutputFormat(str, enum.Enum):
    """How command results are printed."""

    JSON = "json"
    TABLE = "table"
    SIMPLE = "simple"
    PRETTY = "pretty"

    def __str__(self) -> str:
        return self.value


class _Keep(enum.Enum):
    KEEP = "keep"

    def __repr__(self) -> str:
        return "KEEP"


KEEP = _Keep.KEEP
"""Marks a card assignment that an update leaves untouched."""


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 text in UTC with a trailing Z and only the precision needed."""
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    micro = moment.microsecond
    if micro:
        if micro % 1000 == 0:
            text += f".{micro // 1000:03d}"
        else:
            text += f".{micro:06d}"
    return text + "Z"


@dataclass
class Agent:
    """A registered agent identity."""

    id: str
    name: str
    command: str
    working_directory: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime
    deactivated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "command": self.command,
            "working_directory": self.working_directory,
            "description": self.description,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }
        if self.deactivated_at is not None:
            data["deactivated_at"] = format_timestamp(self.deactivated_at)
        return data


@dataclass
class AgentUpdate:
    """Fields to change on an agent; None leaves a field as it is."""

    name: Optional[str] = None
    command: Optional[str] = None
    description: Optional[str] = None
    working_directory: Optional[str] = None


@dataclass
class Board:
    """A board that holds cards."""

    id: str
    name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }
        if self.deleted_at is not None:
            data["deleted_at"] = format_timestamp(self.deleted_at)
        return data


@dataclass
class ChecklistItem:
    """One entry of a checklist."""

    id: str
    text: str
    checked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "checked": self.checked}


@dataclass
class Checklist:
    """A named list of items attached to a card."""

    id: str
    name: str
    items: list[ChecklistItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class Card:
    """A unit of work on a board."""

    id: str
    board_id: str
    name: str
    description: Optional[str]
    status: Status
    assigned_to: Optional[str]
    created_at: datetime
    updated_at: datetime
    tags: list[str] = field(default_factory=list)
    checklists: list[Checklist] = field(default_factory=list)
    deleted_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "board_id": self.board_id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "assigned_to": self.assigned_to,
            "tags": list(self.tags),
            "checklists": [checklist.to_dict() for checklist in self.checklists],
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }
        if self.deleted_at is not None:
            data["deleted_at"] = format_timestamp(self.deleted_at)
        return data


@dataclass
class CardUpdate:
    """Fields to change on a card.

    ``assignee`` is KEEP to leave the assignment alone, None to unassign,
    or an agent id to assign.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Status] = None
    assignee: Union[str, None, _Keep] = KEEP
    add_tags: list[str] = field(default_factory=list)
    remove_tags: list[str] = field(default_factory=list)


@dataclass
class Comment:
    """A remark left on a card."""

    id: str
    card_id: str
    author: Optional[str]
    text: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "card_id": self.card_id,
            "author": self.author,
            "text": self.text,
            "created_at": format_timestamp(self.created_at),
        }


@dataclass
class BoardSummary:
    """Card counts of a board by status."""

    todo_count: int = 0
    in_progress_count: int = 0
    pending_review_count: int = 0
    done_count: int = 0
    total_cards: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "todo_count": self.todo_count,
            "in_progress_count": self.in_progress_count,
            "pending_review_count": self.pending_review_count,
            "done_count": self.done_count,
            "total_cards": self.total_cards,
        }