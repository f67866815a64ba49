"""Card, checklist and comment operations on top of the board store."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence, Union

from agentboard.models import (
    KEEP,
    Card,
    CardUpdate,
    Checklist,
    ChecklistItem,
    Comment,
    GeneralError,
    NotFoundError,
    Status,
)
from agentboard.storage import (
    Store,
    _now_text,
    _optional_datetime,
    generate_id,
    parse_datetime,
)

_CARD_COLUMNS = (
    "id, board_id, name, description, status, assigned_to, "
    "created_at, updated_at, deleted_at"
)

StatusLike = Union[Status, str]


def _status_value(status: StatusLike) -> str:
    return Status(status).value


class Database(Store):
    """The full board database: agents, boards, cards, checklists and comments."""

    # Cards

    def _load_tags(self, card_id: str) -> list[str]:
        rows = self._query("SELECT tag FROM card_tags WHERE card_id = ?", (card_id,))
        return [row[0] or "" for row in rows]

    def _load_checklists(self, card_id: str) -> list[Checklist]:
        checklists = []
        for checklist_id, name in self._query(
            "SELECT id, name FROM checklists WHERE card_id = ?", (card_id,)
        ):
            items = [
                ChecklistItem(id=item_id or "", text=text or "", checked=bool(checked))
                for item_id, text, checked in self._query(
                    "SELECT id, text, checked FROM checklist_items "
                    "WHERE checklist_id = ?",
                    (checklist_id,),
                )
            ]
            checklists.append(
                Checklist(id=checklist_id or "", name=name or "", items=items)
            )
        return checklists

    def _load_card(self, card_id: str, include_deleted: bool = False) -> Card:
        where = "" if include_deleted else " AND deleted_at IS NULL"
        rows = self._query(
            f"SELECT {_CARD_COLUMNS} FROM cards WHERE id = ?{where}", (card_id,)
        )
        if not rows:
            raise NotFoundError(f"Card not found: {card_id}")
        row = rows[0]
        card_key = row[0] or ""
        return Card(
            id=card_key,
            board_id=row[1] or "",
            name=row[2] or "",
            description=row[3],
            status=Status.from_db(row[4]),
            assigned_to=row[5],
            created_at=parse_datetime(row[6]),
            updated_at=parse_datetime(row[7]),
            tags=self._load_tags(card_key),
            checklists=self._load_checklists(card_key),
            deleted_at=_optional_datetime(row[8]),
        )

    def get_card(self, card_id: str) -> Card:
        """A card that has not been deleted, with its tags and checklists."""
        return self._load_card(card_id)

    def list_cards(
        self,
        board_id: str,
        status: Optional[StatusLike] = None,
        assigned_to: Optional[str] = None,
        tags: Iterable[str] = (),
        include_deleted: bool = False,
    ) -> list[Card]:
        """Cards of a board matching every given filter; tags must all be present."""
        if include_deleted:
            if not self._query("SELECT id FROM boards WHERE id = ?", (board_id,)):
                raise NotFoundError(f"Board not found: {board_id}")
        else:
            self.get_board(board_id)

        conditions = ["board_id = ?"]
        params: list[str] = [board_id]
        if status is not None:
            conditions.append("status = ?")
            params.append(_status_value(status))
        if assigned_to is not None:
            conditions.append("assigned_to = ?")
            params.append(assigned_to)
        if not include_deleted:
            conditions.append("deleted_at IS NULL")
        for tag in tags:
            conditions.append(
                "EXISTS (SELECT 1 FROM card_tags "
                "WHERE card_id = cards.id AND tag = ?)"
            )
            params.append(tag)

        rows = self._query(
            f"SELECT id FROM cards WHERE {' AND '.join(conditions)}", tuple(params)
        )
        return [self._load_card(row[0] or "", include_deleted) for row in rows]

    def get_cards_by_assignee(
        self,
        agent_id: str,
        board_id: Optional[str] = None,
        status: Optional[StatusLike] = None,
    ) -> list[Card]:
        """Live cards assigned to an agent, optionally narrowed by board and status."""
        conditions = ["assigned_to = ?"]
        params: list[str] = [agent_id]
        if board_id is not None:
            conditions.append("board_id = ?")
            params.append(board_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(_status_value(status))
        conditions.append("deleted_at IS NULL")
        rows = self._query(
            f"SELECT id FROM cards WHERE {' AND '.join(conditions)}", tuple(params)
        )
        return [self._load_card(row[0] or "") for row in rows]

    def create_card(
        self,
        board_id: str,
        name: str,
        description: Optional[str] = None,
        status: StatusLike = Status.TODO,
    ) -> Card:
        """Create a card on a live board."""
        self.get_board(board_id)
        card_id = generate_id("card")
        now = _now_text()
        self._execute(
            "Insert failed",
            "INSERT INTO cards (id, board_id, name, description, status, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (card_id, board_id, name, description or "", _status_value(status),
             now, now),
        )
        return self.get_card(card_id)

    def update_card(self, card_id: str, update: CardUpdate) -> None:
        """Apply the changes an update carries to a live card."""
        self.get_card(card_id)
        now = _now_text()
        fields = (
            ("name", update.name),
            ("description", update.description),
            ("status", _status_value(update.status) if update.status is not None else None),
        )
        for column, value in fields:
            if value is not None:
                self._execute(
                    "Update failed",
                    f"UPDATE cards SET {column} = ?, updated_at = ? WHERE id = ?",
                    (value, now, card_id),
                )
        if update.assignee is not KEEP:
            self._execute(
                "Update failed",
                "UPDATE cards SET assigned_to = ?, updated_at = ? WHERE id = ?",
                (update.assignee, now, card_id),
            )
        for tag in update.add_tags:
            self._execute(
                "Insert tag failed",
                "INSERT OR IGNORE INTO card_tags (card_id, tag) VALUES (?, ?)",
                (card_id, tag),
            )
        for tag in update.remove_tags:
            self._execute(
                "Delete tag failed",
                "DELETE FROM card_tags WHERE card_id = ? AND tag = ?",
                (card_id, tag),
            )

    def delete_card(self, card_id: str) -> None:
        """Soft-delete a card."""
        self.get_card(card_id)
        now = _now_text()
        self._execute(
            "Delete failed",
            "UPDATE cards SET deleted_at = ?, updated_at = ? WHERE id = ?",
            (now, now, card_id),
        )

    # Checklists

    def add_checklist(
        self, card_id: str, name: str, items: Sequence[str]
    ) -> Checklist:
        """Attach a checklist of unchecked items to a card."""
        self.get_card(card_id)
        checklist_id = generate_id("checklist")
        self._execute(
            "Insert checklist failed",
            "INSERT INTO checklists (id, card_id, name) VALUES (?, ?, ?)",
            (checklist_id, card_id, name),
        )
        checklist_items = []
        for text in items:
            item_id = generate_id("item")
            self._execute(
                "Insert item failed",
                "INSERT INTO checklist_items (id, checklist_id, text, checked) "
                "VALUES (?, ?, ?, 0)",
                (item_id, checklist_id, text),
            )
            checklist_items.append(ChecklistItem(id=item_id, text=text, checked=False))
        self._execute(
            "Update failed",
            "UPDATE cards SET updated_at = ? WHERE id = ?",
            (_now_text(), card_id),
        )
        return Checklist(id=checklist_id, name=name, items=checklist_items)

    def check_item(self, item_id: str, checked: bool = True) -> None:
        """Set whether a checklist item is checked."""
        changed = self._execute(
            "Update failed",
            "UPDATE checklist_items SET checked = ? WHERE id = ?",
            (1 if checked else 0, item_id),
        )
        if changed == 0:
            raise NotFoundError(f"Checklist item not found: {item_id}")
        self._execute(
            "Update card timestamp failed",
            "UPDATE cards SET updated_at = ? WHERE id = ("
            "SELECT card_id FROM checklists WHERE id = ("
            "SELECT checklist_id FROM checklist_items WHERE id = ?))",
            (_now_text(), item_id),
        )

    # Comments

    def add_comment(
        self, card_id: str, text: str, author: Optional[str] = None
    ) -> Comment:
        """Leave a comment on a live card."""
        self.get_card(card_id)
        comment_id = generate_id("comment")
        now = datetime.now(timezone.utc)
        self._execute(
            "Insert comment failed",
            "INSERT INTO comments (id, card_id, author, text, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (comment_id, card_id, author or "", text,
             now.isoformat(timespec="microseconds")),
        )
        return Comment(
            id=comment_id, card_id=card_id, author=author, text=text, created_at=now
        )

    def list_comments(self, card_id: str) -> list[Comment]:
        """Comments of a live card, oldest first."""
        self.get_card(card_id)
        rows = self._query(
            "SELECT id, card_id, author, text, created_at FROM comments "
            "WHERE card_id = ? ORDER BY created_at ASC, rowid ASC",
            (card_id,),
        )
        return [
            Comment(
                id=row[0] or "",
                card_id=row[1] or "",
                author=row[2],
                text=row[3] or "",
                created_at=parse_datetime(row[4]),
            )
            for row in rows
        ]

    def get_comment_counts(self, card_ids: Sequence[str]) -> dict[str, int]:
        """Number of comments for each of the given cards that has any."""
        ids = list(card_ids)
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        try:
            rows = self._conn.execute(
                "SELECT card_id, COUNT(*) FROM comments "
                f"WHERE card_id IN ({placeholders}) GROUP BY card_id",
                tuple(ids),
            ).fetchall()
        except sqlite3.Error as exc:
            raise GeneralError(f"Query failed: {exc}") from exc
        return {card_id or "": int(count) for card_id, count in rows}