"""Command line interface for the task board."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Callable, Optional, Sequence

from agentboard.cards import Database
from agentboard.models import (
    KEEP,
    AgentBoardError,
    AgentUpdate,
    CardUpdate,
    GeneralError,
    InvalidArgsError,
    OutputFormat,
    Status,
)
from agentboard.output import (
    format_agent,
    format_agent_whoami,
    format_agents,
    format_board,
    format_boards,
    format_card,
    format_cards,
    format_kanban,
    whoami_warning,
)

AGENT_ID_ENV = "AGENT_BOARD_AGENT_ID"

_STATUS_NAMES = {status.value.replace("_", "-"): status for status in Status}
_FORMAT_NAMES = {fmt.value: fmt for fmt in OutputFormat}


def get_agent_id() -> str:
    """The current agent's id from the environment."""
    agent_id = os.environ.get(AGENT_ID_ENV)
    if agent_id is None:
        raise InvalidArgsError(f"{AGENT_ID_ENV} environment variable not set")
    return agent_id


def _enum_parser(names: dict, kind: str) -> Callable[[str], object]:
    def parse(text: str):
        try:
            return names[text]
        except KeyError:
            allowed = ", ".join(names)
            raise argparse.ArgumentTypeError(
                f"invalid {kind} '{text}' (possible values: {allowed})"
            ) from None

    parse.__name__ = kind
    return parse


_parse_status = _enum_parser(_STATUS_NAMES, "status")
_parse_format = _enum_parser(_FORMAT_NAMES, "format")


def _add_globals(parser: argparse.ArgumentParser, top: bool, with_format: bool = True) -> None:
    """Options accepted at every level of the command tree."""

    def default(value):
        return value if top else argparse.SUPPRESS

    parser.add_argument("--api-key", default=default(None),
                        help="Override API key (unused in local mode)")
    parser.add_argument("--api-url", default=default(None),
                        help="Override API endpoint (unused in local mode)")
    if with_format:
        parser.add_argument("--format", type=_parse_format,
                            default=default(OutputFormat.TABLE), help="Output format")
    parser.add_argument("--quiet", action="store_true", default=default(False),
                        help="Suppress non-essential output")
    parser.add_argument("--verbose", action="store_true", default=default(False),
                        help="Show detailed debug output")


def _sub(subparsers, name: str, text: str, own_format: bool = False) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=text, description=text)
    _add_globals(parser, top=False, with_format=not own_format)
    if own_format:
        parser.add_argument("--format", dest="command_format", type=_parse_format,
                            default=None, help="Output format")
    return parser


def _current_dir() -> str:
    try:
        return os.getcwd()
    except OSError as exc:
        raise GeneralError(f"Failed to get current directory: {exc}") from exc


def _chosen_format(args: argparse.Namespace) -> OutputFormat:
    own = getattr(args, "command_format", None)
    return own if own is not None else args.format


def _say(args: argparse.Namespace, message: str) -> None:
    if not args.quiet:
        print(message)


def _write(text: str) -> None:
    sys.stdout.write(text)


def _color_enabled() -> bool:
    forced = os.environ.get("CLICOLOR_FORCE")
    if forced is not None and forced != "0":
        return True
    if "NO_COLOR" in os.environ:
        return False
    return os.environ.get("CLICOLOR") != "0"


# Handlers

def _mine(args, db: Database) -> None:
    agent_id = get_agent_id()
    cards = db.get_cards_by_assignee(agent_id, args.board, args.status)
    _write(format_cards(cards, _chosen_format(args)))


def _agent_register(args, db: Database) -> None:
    cwd = _current_dir()
    agent = db.register_agent(args.name, args.agent_command, cwd, args.description)
    if not args.quiet:
        print(f"Created agent: {agent.id} (Name: {agent.name})")
        print(f"Working directory: {cwd}")
        print()
        print("To use this agent, run:")
        print(f"  export {AGENT_ID_ENV}={agent.id}")


def _agent_unregister(args, db: Database) -> None:
    db.unregister_agent(args.agent_id)
    _say(args, f"Unregistered agent: {args.agent_id}")


def _agent_whoami(args, db: Database) -> None:
    agent = db.get_agent(get_agent_id())
    cwd = _current_dir()
    _write(format_agent_whoami(agent))
    warning = whoami_warning(agent, cwd)
    if warning is not None:
        print(warning, file=sys.stderr)


def _agent_get(args, db: Database) -> None:
    _write(format_agent(db.get_agent(args.agent_id), _chosen_format(args)))


def _agent_list(args, db: Database) -> None:
    _write(format_agents(db.list_agents(args.include_inactive), _chosen_format(args)))


def _agent_update(args, db: Database) -> None:
    workdir = args.workdir
    if workdir == ".":
        workdir = _current_dir()
    update = AgentUpdate(
        name=args.name,
        command=args.agent_command,
        description=args.description,
        working_directory=workdir,
    )
    db.update_agent(args.agent_id, update)
    _say(args, f"Updated agent: {args.agent_id}")


def _card_get(args, db: Database) -> None:
    card = db.get_card(args.card_id)
    comments = db.list_comments(args.card_id)
    _write(format_card(card, comments, _chosen_format(args)))


def _card_list(args, db: Database) -> None:
    cards = db.list_cards(
        args.board_id, args.status, args.assigned_to, args.tag or [], args.include_deleted
    )
    _write(format_cards(cards, _chosen_format(args)))


def _card_create(args, db: Database) -> None:
    card = db.create_card(args.board_id, args.name, args.description, args.status)
    _say(args, f"Created card: {card.id}")


def _card_update(args, db: Database) -> None:
    if args.assign is not None:
        assignee = None if args.assign == "null" else args.assign
    elif args.assign_to_me or args.status is Status.IN_PROGRESS:
        assignee = get_agent_id()
    else:
        assignee = KEEP
    update = CardUpdate(
        name=args.name,
        description=args.description,
        status=args.status,
        assignee=assignee,
        add_tags=args.add_tag or [],
        remove_tags=args.remove_tag or [],
    )
    db.update_card(args.card_id, update)
    _say(args, f"Updated card: {args.card_id}")


def _card_delete(args, db: Database) -> None:
    db.delete_card(args.card_id)
    _say(args, f"Deleted card: {args.card_id}")


def _checklist_add(args, db: Database) -> None:
    checklist = db.add_checklist(args.card_id, args.name, args.item)
    _say(args, f"Added checklist: {checklist.id}")


def _checklist_check(args, db: Database) -> None:
    db.check_item(args.item_id, not args.uncheck)
    _say(args, f"{'Unchecked' if args.uncheck else 'Checked'} item: {args.item_id}")


def _comment_add(args, db: Database) -> None:
    if args.file is not None:
        try:
            with open(args.file, encoding="utf-8") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise GeneralError(f"Failed to read file: {exc}") from exc
    elif args.text is not None:
        content = args.text
    else:
        raise InvalidArgsError("Either text or --file required")
    comment = db.add_comment(args.card_id, content, os.environ.get(AGENT_ID_ENV))
    _say(args, f"Added comment: {comment.id}")


def _board_get(args, db: Database) -> None:
    board = db.get_board(args.board_id)
    fmt = _chosen_format(args)
    if fmt is OutputFormat.PRETTY:
        cards = db.list_cards(args.board_id)
        counts = db.get_comment_counts([card.id for card in cards])
        _write(format_kanban(board, cards, counts, _color_enabled()))
    else:
        _write(format_board(board, db.get_board_summary(args.board_id), fmt))


def _board_list(args, db: Database) -> None:
    _write(format_boards(db.list_boards(args.include_deleted), _chosen_format(args)))


def _board_create(args, db: Database) -> None:
    board = db.create_board(args.name, args.description)
    _say(args, f"Created board: {board.id}")


def _board_delete(args, db: Database) -> None:
    db.delete_board(args.board_id)
    _say(args, f"Deleted board: {args.board_id}")


def build_parser() -> argparse.ArgumentParser:
    """The argument parser for every command."""
    parser = argparse.ArgumentParser(prog="taskboard", description="CLI for managing task boards")
    _add_globals(parser, top=True)
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    mine = _sub(commands, "mine", "Get all cards assigned to current agent", own_format=True)
    mine.add_argument("--board", help="Filter by board")
    mine.add_argument("--status", type=_parse_status, help="Filter by status")
    mine.set_defaults(handler=_mine)

    # Agents
    agent = _sub(commands, "agent", "Agent identity operations")
    agent_cmds = agent.add_subparsers(dest="subcommand", required=True, metavar="COMMAND")

    register = _sub(agent_cmds, "register", "Register a new agent identity")
    register.add_argument("--command", dest="agent_command", required=True,
                          help="Command to invoke this agent")
    register.add_argument("--name", help="Agent name (auto-generated if not provided)")
    register.add_argument("--description", help="Agent description")
    register.set_defaults(handler=_agent_register)

    unregister = _sub(agent_cmds, "unregister", "Unregister an agent (soft delete)")
    unregister.add_argument("agent_id", help="Agent ID")
    unregister.set_defaults(handler=_agent_unregister)

    whoami = _sub(agent_cmds, "whoami", f"Show current agent identity (from {AGENT_ID_ENV})")
    whoami.set_defaults(handler=_agent_whoami)

    agent_get = _sub(agent_cmds, "get", "Get agent details", own_format=True)
    agent_get.add_argument("agent_id", help="Agent ID")
    agent_get.set_defaults(handler=_agent_get)

    agent_list = _sub(agent_cmds, "list", "List all registered agents", own_format=True)
    agent_list.add_argument("--include-inactive", action="store_true",
                            help="Include deactivated agents")
    agent_list.set_defaults(handler=_agent_list)

    agent_update = _sub(agent_cmds, "update", "Update agent details")
    agent_update.add_argument("agent_id", help="Agent ID")
    agent_update.add_argument("--name", help="Update agent name")
    agent_update.add_argument("--command", dest="agent_command", help="Update command")
    agent_update.add_argument("--description", help="Update description")
    agent_update.add_argument("--workdir",
                              help='Update working directory (use "." for current directory)')
    agent_update.set_defaults(handler=_agent_update)

    # Cards
    card = _sub(commands, "card", "Card operations")
    card_cmds = card.add_subparsers(dest="subcommand", required=True, metavar="COMMAND")

    card_get = _sub(card_cmds, "get", "Retrieve full card details", own_format=True)
    card_get.add_argument("card_id", help="Card ID")
    card_get.set_defaults(handler=_card_get)

    card_list = _sub(card_cmds, "list", "Query cards on a board", own_format=True)
    card_list.add_argument("board_id", help="Board ID")
    card_list.add_argument("--status", type=_parse_status, help="Filter by status")
    card_list.add_argument("--assigned-to", help="Filter by assignee")
    card_list.add_argument("--tag", action="append", default=None,
                           help="Filter by tag (repeatable, cards must have ALL tags)")
    card_list.add_argument("--include-deleted", action="store_true",
                           help="Include soft-deleted cards")
    card_list.set_defaults(handler=_card_list)

    card_create = _sub(card_cmds, "create", "Create a new card on a board")
    card_create.add_argument("board_id", help="Board ID")
    card_create.add_argument("name", help="Card name")
    card_create.add_argument("--description", help="Card description")
    card_create.add_argument("--status", type=_parse_status, default=Status.TODO,
                             help="Initial status")
    card_create.set_defaults(handler=_card_create)

    card_update = _sub(card_cmds, "update", "Update card fields")
    card_update.add_argument("card_id", help="Card ID")
    card_update.add_argument("--name", help="Update card name")
    card_update.add_argument("--description", help="Update description")
    card_update.add_argument("--status", type=_parse_status, help="Update status")
    assignment = card_update.add_mutually_exclusive_group()
    assignment.add_argument("--assign",
                            help="Assign card to agent ID (use 'null' to unassign)")
    assignment.add_argument("--assign-to-me", action="store_true",
                            help=f"Assign card to current agent (uses {AGENT_ID_ENV})")
    card_update.add_argument("--add-tag", action="append", default=None,
                             help="Add tag (repeatable)")
    card_update.add_argument("--remove-tag", action="append", default=None,
                             help="Remove tag (repeatable)")
    card_update.set_defaults(handler=_card_update)

    card_delete = _sub(card_cmds, "delete", "Delete a card (soft delete)")
    card_delete.add_argument("card_id", help="Card ID")
    card_delete.set_defaults(handler=_card_delete)

    # Checklists
    checklist = _sub(commands, "checklist", "Checklist operations")
    checklist_cmds = checklist.add_subparsers(dest="subcommand", required=True,
                                              metavar="COMMAND")

    checklist_add = _sub(checklist_cmds, "add", "Add checklist items to a card")
    checklist_add.add_argument("card_id", help="Card ID")
    checklist_add.add_argument("--name", default="Tasks", help="Name for the checklist")
    checklist_add.add_argument("--item", action="append", required=True,
                               help="Checklist item text (repeatable)")
    checklist_add.set_defaults(handler=_checklist_add)

    checklist_check = _sub(checklist_cmds, "check", "Check or uncheck a checklist item")
    checklist_check.add_argument("item_id", help="Item ID")
    checklist_check.add_argument("--uncheck", action="store_true",
                                 help="Uncheck the item instead of checking it")
    checklist_check.set_defaults(handler=_checklist_check)

    # Comments
    comment = _sub(commands, "comment", "Comment operations")
    comment_cmds = comment.add_subparsers(dest="subcommand", required=True, metavar="COMMAND")

    comment_add = _sub(comment_cmds, "add", "Add a comment to a card")
    comment_add.add_argument("card_id", help="Card ID")
    comment_add.add_argument("text", nargs="?", default=None, help="Comment text")
    comment_add.add_argument("--file", help="Read comment text from file")
    comment_add.set_defaults(handler=_comment_add)

    # Boards
    board = _sub(commands, "board", "Board operations")
    board_cmds = board.add_subparsers(dest="subcommand", required=True, metavar="COMMAND")

    board_get = _sub(board_cmds, "get", "Get board overview and summary", own_format=True)
    board_get.add_argument("board_id", help="Board ID")
    board_get.set_defaults(handler=_board_get)

    board_list = _sub(board_cmds, "list", "List all accessible boards", own_format=True)
    board_list.add_argument("--include-deleted", action="store_true",
                            help="Include soft-deleted boards")
    board_list.set_defaults(handler=_board_list)

    board_create = _sub(board_cmds, "create", "Create a new board")
    board_create.add_argument("name", help="Board name")
    board_create.add_argument("--description", help="Board description")
    board_create.set_defaults(handler=_board_create)

    board_delete = _sub(board_cmds, "delete", "Delete a board (soft delete)")
    board_delete.add_argument("board_id", help="Board ID")
    board_delete.set_defaults(handler=_board_delete)

    return parser


def run(args: argparse.Namespace, db: Database) -> None:
    """Carry out a parsed command against an open database."""
    args.handler(args, db)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point: parse arguments, run the command and return the exit status."""
    args = build_parser().parse_args(argv)
    try:
        with Database() as db:
            run(args, db)
    except AgentBoardError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code()
    return 0