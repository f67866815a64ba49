"""Rendering of boards, cards and agents as JSON, tables, plain ids or a kanban view.

Every ``format_*`` function returns the exact text to write to standard
output, including the final newline; an empty string means nothing is printed.
"""

from __future__ import annotations

import json
import unicodedata
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from agentboard.models import (
    Agent,
    Board,
    BoardSummary,
    Card,
    Comment,
    OutputFormat,
    Status,
)

COL_WIDTH = 28
CARD_INNER = COL_WIDTH - 4
_TEXT_WIDTH = CARD_INNER - 2

_RESET = "\x1b[0m"
_WHITE = "37"
_YELLOW = "33"
_CYAN = "36"
_GREEN = "32"
_BLUE = "34"
_DIMMED = "2"

_COLUMNS = (
    (Status.TODO, "TODO", _WHITE),
    (Status.IN_PROGRESS, "IN PROGRESS", _YELLOW),
    (Status.PENDING_REVIEW, "PENDING REVIEW", _CYAN),
    (Status.DONE, "DONE", _GREEN),
)


def truncate(text: str, max_len: int) -> str:
    """Shorten text to at most ``max_len`` characters, ending in '...' when cut."""
    if len(text) <= max_len:
        return text
    return text[: max(max_len - 3, 0)] + "..."


def _char_width(char: str) -> int:
    if unicodedata.combining(char):
        return 0
    return 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1


def _display_width(text: str) -> int:
    return sum(_char_width(char) for char in text)


def _pad(text: str, width: int) -> str:
    return text + " " * max(width - _display_width(text), 0)


def render_table(headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> str:
    """A table with rounded borders, a header row and left-aligned cells."""
    table = [[str(cell) for cell in headers]]
    for row in rows:
        if len(row) != len(headers):
            raise ValueError("every row needs one cell per header")
        table.append([str(cell) for cell in row])
    cells = [[cell.split("\n") for cell in row] for row in table]
    widths = [
        max(_display_width(line) for cell in column for line in cell)
        for column in zip(*cells)
    ]

    def rule(left: str, middle: str, right: str) -> str:
        return left + middle.join("─" * (width + 2) for width in widths) + right

    def render_row(row: list[list[str]]) -> list[str]:
        height = max(len(cell) for cell in row)
        return [
            "│"
            + "│".join(
                " " + _pad(cell[k] if k < len(cell) else "", width) + " "
                for cell, width in zip(row, widths)
            )
            + "│"
            for k in range(height)
        ]

    lines = [rule("╭", "┬", "╮")]
    lines.extend(render_row(cells[0]))
    if len(cells) > 1:
        lines.append(rule("├", "┼", "┤"))
        for row in cells[1:]:
            lines.extend(render_row(row))
    lines.append(rule("╰", "┴", "╯"))
    return "\n".join(lines)


def _stamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M")


def _json(data: Any, sort_keys: bool = False) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, sort_keys=sort_keys) + "\n"


def _block(lines: Sequence[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


def _text_lines(text: str) -> list[str]:
    parts = text.split("\n")
    if parts and parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _fmt(fmt: OutputFormat | str) -> OutputFormat:
    return OutputFormat(fmt)


def format_cards(cards: Sequence[Card], fmt: OutputFormat | str) -> str:
    """A list of cards in the requested format; pretty falls back to table."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        return _json([card.to_dict() for card in cards])
    if fmt is OutputFormat.SIMPLE:
        return _block([card.id for card in cards])
    if not cards:
        return "No cards found.\n"
    rows = [
        (
            card.id,
            truncate(card.name, 35) + (" [DELETED]" if card.deleted_at is not None else ""),
            str(card.status),
            card.assigned_to if card.assigned_to is not None else "-",
            card.board_id,
            _stamp(card.created_at),
        )
        for card in cards
    ]
    headers = ("ID", "Name", "Status", "Assigned To", "Board", "Created")
    return render_table(headers, rows) + "\n"


def format_card(card: Card, comments: Sequence[Comment], fmt: OutputFormat | str) -> str:
    """One card with its checklists and comments."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        data = {
            "card": card.to_dict(),
            "comments": [comment.to_dict() for comment in comments],
        }
        return _json(data, sort_keys=True)
    if fmt is OutputFormat.SIMPLE:
        return f"{card.id}\n"
    lines = [
        f"Card: {card.id}",
        f"Name: {card.name}",
        f"Board: {card.board_id}",
        f"Status: {card.status}",
        f"Assigned To: {card.assigned_to if card.assigned_to is not None else '-'}",
    ]
    if card.description is not None:
        lines.append(f"Description: {card.description}")
    if card.tags:
        lines.append(f"Tags: {', '.join(card.tags)}")
    for checklist in card.checklists:
        lines.append(f"\nChecklist: {checklist.name} ({checklist.id})")
        for item in checklist.items:
            mark = "x" if item.checked else " "
            lines.append(f"  [{mark}] {item.text} ({item.id})")
    if comments:
        lines.append("\nComments:")
        for comment in comments:
            author = comment.author if comment.author is not None else "anonymous"
            lines.append(f"  [{author}] {_stamp(comment.created_at)} ({comment.id})")
            lines.extend(f"    {line}" for line in _text_lines(comment.text))
    return _block(lines)


def format_boards(boards: Sequence[Board], fmt: OutputFormat | str) -> str:
    """A list of boards in the requested format; pretty falls back to table."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        return _json([board.to_dict() for board in boards])
    if fmt is OutputFormat.SIMPLE:
        return _block([board.id for board in boards])
    if not boards:
        return "No boards found.\n"
    rows = [
        (
            board.id,
            board.name + (" [DELETED]" if board.deleted_at is not None else ""),
            board.description if board.description is not None else "-",
            _stamp(board.created_at),
        )
        for board in boards
    ]
    return render_table(("ID", "Name", "Description", "Created"), rows) + "\n"


def format_board(board: Board, summary: BoardSummary, fmt: OutputFormat | str) -> str:
    """One board with its card counts."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        return _json({"board": board.to_dict(), "summary": summary.to_dict()}, sort_keys=True)
    if fmt is OutputFormat.SIMPLE:
        return f"{board.id}\n"
    lines = [f"Board: {board.id}", f"Name: {board.name}"]
    if board.description is not None:
        lines.append(f"Description: {board.description}")
    lines.extend(
        [
            "\nSummary:",
            f"  Todo: {summary.todo_count}",
            f"  In Progress: {summary.in_progress_count}",
            f"  Pending Review: {summary.pending_review_count}",
            f"  Done: {summary.done_count}",
            f"  Total: {summary.total_cards}",
        ]
    )
    return _block(lines)


def _paint(text: str, code: str, enabled: bool) -> str:
    return f"\x1b[{code}m{text}{_RESET}" if enabled else text


def _boxed(text: str) -> str:
    return f" │ {text} │ │"


def _tags_text(card: Card) -> str:
    return " ".join(f"#{tag}" for tag in card.tags)


def format_kanban(
    board: Board,
    cards: Sequence[Card],
    comment_counts: Optional[Mapping[str, int]] = None,
    color: bool = True,
) -> str:
    """A kanban view of a board, one column per status."""
    counts = comment_counts or {}
    columns = [[card for card in cards if card.status == status] for status, _, _ in _COLUMNS]
    inner = COL_WIDTH * 4
    separator = "─" * COL_WIDTH

    lines = ["", "┌" + "─" * (inner + 3) + "┐"]
    title = f"{board.name} - {board.id}"
    lines.append(f"│ {title:<{inner + 1}} │")
    if board.description is not None:
        lines.append(f"│ {truncate(board.description, inner - 1):<{inner + 1}} │")
    lines.append("├" + "┬".join([separator] * 4) + "┤")
    lines.append(
        "│"
        + "".join(
            " " + _paint(f"{label:<{COL_WIDTH - 1}}", code, color) + "│"
            for _, label, code in _COLUMNS
        )
    )
    lines.append(
        "│"
        + "".join(f" {f'({len(column)} cards)':<{COL_WIDTH - 1}}│" for column in columns)
    )
    lines.append("├" + "┼".join([separator] * 4) + "┤")

    def name_first(card: Card, code: str) -> str:
        return _boxed(_paint(f"{card.name[:_TEXT_WIDTH]:<{_TEXT_WIDTH}}", code, color))

    def name_second(card: Card, code: str) -> str:
        rest = truncate(card.name[_TEXT_WIDTH:], _TEXT_WIDTH) if len(card.name) > _TEXT_WIDTH else ""
        return _boxed(_paint(f"{rest:<{_TEXT_WIDTH}}", code, color))

    def card_id(card: Card, code: str) -> str:
        short = card.id[: CARD_INNER - 5] + "..." if len(card.id) > _TEXT_WIDTH else card.id
        return _boxed(_paint(f"{short:<{_TEXT_WIDTH}}", _DIMMED, color))

    def assignee(card: Card, code: str) -> str:
        who = card.assigned_to if card.assigned_to is not None else "-"
        return _boxed(f"{'@' + truncate(who, CARD_INNER - 4):<{_TEXT_WIDTH}}")

    def tags_first(card: Card, code: str) -> str:
        if not card.tags:
            return _boxed(" " * _TEXT_WIDTH)
        text = _tags_text(card)[:_TEXT_WIDTH]
        return _boxed(_paint(f"{text:<{_TEXT_WIDTH}}", _BLUE, color))

    def tags_second(card: Card, code: str) -> str:
        if not card.tags:
            return _boxed(" " * _TEXT_WIDTH)
        text = _tags_text(card)
        rest = truncate(text[_TEXT_WIDTH:], _TEXT_WIDTH) if len(text) > _TEXT_WIDTH else ""
        return _boxed(_paint(f"{rest:<{_TEXT_WIDTH}}", _BLUE, color))

    def comment_line(card: Card, code: str) -> str:
        count = counts.get(card.id, 0)
        text = "[1 comment]" if count == 1 else f"[{count} comments]"
        return _boxed(_paint(f"{text:<{_TEXT_WIDTH}}", _DIMMED, color))

    def top(card: Card, code: str) -> str:
        return " ┌" + "─" * CARD_INNER + "┐ │"

    def bottom(card: Card, code: str) -> str:
        return " └" + "─" * CARD_INNER + "┘ │"

    renderers = (
        top, name_first, name_second, card_id, assignee,
        tags_first, tags_second, comment_line, bottom,
    )
    blank = " " * COL_WIDTH + "│"
    max_cards = max((len(column) for column in columns), default=0)
    for index in range(max_cards):
        for render in renderers:
            lines.append(
                "│"
                + "".join(
                    render(column[index], code) if index < len(column) else blank
                    for column, (_, _, code) in zip(columns, _COLUMNS)
                )
            )

    if max_cards == 0:
        lines.append("│" + f" {'(empty)':<{COL_WIDTH - 1}}│" * 4)

    lines.append("└" + "┴".join([separator] * 4) + "┘")
    lines.append("")
    return _block(lines)


def format_agents(agents: Sequence[Agent], fmt: OutputFormat | str) -> str:
    """A list of agents in the requested format; pretty falls back to table."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        return _json([agent.to_dict() for agent in agents])
    if fmt is OutputFormat.SIMPLE:
        return _block([agent.id for agent in agents])
    if not agents:
        return "No agents found.\n"
    rows = [
        (
            agent.id,
            agent.name + (" [INACTIVE]" if agent.deactivated_at is not None else ""),
            agent.command,
            truncate(agent.working_directory, 40),
            _stamp(agent.created_at),
        )
        for agent in agents
    ]
    headers = ("ID", "Name", "Command", "Working Directory", "Created")
    return render_table(headers, rows) + "\n"


def format_agent(agent: Agent, fmt: OutputFormat | str) -> str:
    """One agent's details."""
    fmt = _fmt(fmt)
    if fmt is OutputFormat.JSON:
        return _json(agent.to_dict())
    if fmt is OutputFormat.SIMPLE:
        return f"{agent.id}\n"
    lines = [
        f"Agent: {agent.id}",
        f"Name: {agent.name}",
        f"Command: {agent.command}",
        f"Working Directory: {agent.working_directory}",
    ]
    if agent.description is not None:
        lines.append(f"Description: {agent.description}")
    lines.append(f"Created: {_stamp(agent.created_at)}")
    if agent.deactivated_at is not None:
        lines.append(f"Deactivated: {_stamp(agent.deactivated_at)}")
    return _block(lines)


def format_agent_whoami(agent: Agent) -> str:
    """The identity block shown for the current agent."""
    lines = [
        f"Agent: {agent.id}",
        f"Name: {agent.name}",
        f"Command: {agent.command}",
        f"Working Directory: {agent.working_directory}",
    ]
    if agent.description is not None:
        lines.append(f"Description: {agent.description}")
    return _block(lines)


def whoami_warning(agent: Agent, current_dir: str) -> Optional[str]:
    """A warning line when the current directory is not the agent's own, else None."""
    if current_dir == agent.working_directory:
        return None
    return (
        f"WARNING: Current directory ({current_dir}) does not match "
        "registered working directory"
    )