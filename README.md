# agentboard

A small command-line task board for coding agents and the people who work
with them. Boards hold cards, and each card has a status, an optional
assignee, tags, checklists and comments. Everything is kept in a local
SQLite database, so no server is needed. The package uses only the Python
standard library.

## Installation

```
pip install .
```

This installs the `taskboard` command.

## Where the data lives

The database is at `~/.agent-board/data.db` by default. Set
`AGENT_BOARD_DB_PATH` to use another file. Missing parent directories are
created, and the tables are created on first use.

## Agents

Register an agent identity. The current directory is recorded as its
working directory:

```
taskboard agent register --command claude --name reviewer --description "Reviews pull requests"
```

If you leave out `--name`, a random adjective-noun name such as
`swift-otter` is chosen. Agent names must be unique. The output shows the
line to export:

```
export AGENT_BOARD_AGENT_ID=agent_1a2b3c4d5e6f
```

Other agent commands:

```
taskboard agent whoami
taskboard agent list --include-inactive
taskboard agent get agent_1a2b3c4d5e6f
taskboard agent update agent_1a2b3c4d5e6f --name builder --command aider --workdir .
taskboard agent unregister agent_1a2b3c4d5e6f
```

`agent whoami` reads `AGENT_BOARD_AGENT_ID`. It prints a warning on stderr
when the current directory is not the agent's registered working
directory. `agent update --workdir .` records the current directory.
`agent unregister` deactivates the agent but keeps its record, and
`agent list --include-inactive` shows it again, marked `[INACTIVE]`.

## Boards and cards

```
taskboard board create "Release 1.0" --description "Work for the first release"
taskboard board list
taskboard board get board_0123456789ab
taskboard board get board_0123456789ab --format pretty
taskboard card create board_0123456789ab "Write changelog" --status todo
taskboard card list board_0123456789ab --status in-progress --tag docs --tag release
taskboard card update card_0123456789ab --status in-progress --add-tag docs
taskboard card get card_0123456789ab
taskboard mine --board board_0123456789ab --status in-progress
```

On the command line the statuses are written `todo`, `in-progress`,
`pending-review` and `done`. They are stored and shown as `todo`,
`in_progress`, `pending_review` and `done`.

`board get` shows the board with a count of its cards by status. With
`--format pretty` it draws a kanban view with one column per status.
Colours in that view are turned off when `NO_COLOR` is set or `CLICOLOR`
is `0`, and forced on when `CLICOLOR_FORCE` is set to anything other than
`0`.

`card update` takes `--name`, `--description`, `--status`, `--assign`,
`--assign-to-me`, `--add-tag` and `--remove-tag` (the last two can be
repeated). `--assign AGENT_ID` assigns the card, and `--assign null`
clears the assignee. `--assign-to-me` assigns it to the agent in
`AGENT_BOARD_AGENT_ID`. When a card is moved to `in-progress` without
either option, it is also assigned to that agent. `--assign` and
`--assign-to-me` cannot be used together.

`card list` filters by `--status`, `--assigned-to` and `--tag`. With
several `--tag` options, only cards that have all of those tags are shown.
`mine` lists the cards assigned to the agent in `AGENT_BOARD_AGENT_ID`.

Deleting is a soft delete. Deleting a board also deletes its cards.

```
taskboard card delete card_0123456789ab
taskboard board delete board_0123456789ab
taskboard board list --include-deleted
taskboard card list board_0123456789ab --include-deleted
```

Deleted items shown this way are marked `[DELETED]`.

## Checklists and comments

```
taskboard checklist add card_0123456789ab --name Steps --item "Draft" --item "Review"
taskboard checklist check item_0123456789ab
taskboard checklist check item_0123456789ab --uncheck
taskboard comment add card_0123456789ab "Draft is ready"
taskboard comment add card_0123456789ab --file notes.md
```

A checklist is named `Tasks` when `--name` is not given, and at least one
`--item` is required. Comments are signed with `AGENT_BOARD_AGENT_ID` when
it is set. `card get` shows a card's checklists and its comments, oldest
first.

## Output formats and other options

`--format` takes `table` (the default), `json`, `simple` or `pretty`.
`simple` prints only the IDs. `pretty` draws the kanban view for
`board get`; other commands treat it the same as `table`. `--quiet` hides
confirmation messages such as `Created card: ...`.

`--api-key`, `--api-url` and `--verbose` are accepted but have no effect:
the board is always the local database and there is no remote service to
talk to.

## Using it from Python

`agentboard.cards.Database` opens the database (the default path, or one
you pass) and offers the same operations as the command line:

```python
from agentboard.cards import Database
from agentboard.models import CardUpdate, Status

with Database("/tmp/board.db") as db:
    board = db.create_board("Release 1.0")
    card = db.create_card(board.id, "Write changelog")
    db.update_card(card.id, CardUpdate(status=Status.IN_PROGRESS, add_tags=["docs"]))
    print(db.get_board_summary(board.id))
```

Failures raise subclasses of `agentboard.models.AgentBoardError`:
`NotFoundError`, `InvalidArgsError`, `GeneralError` and others. The
functions in `agentboard.output` return the text the command line prints.

## Exit codes

| Code | Meaning                                         |
|------|-------------------------------------------------|
| 0    | success                                         |
| 1    | general or I/O error                            |
| 2    | invalid arguments (including unparsable options) |
| 4    | item not found                                  |
| 5    | permission denied                               |
| 6    | session conflict                                |

Errors are printed on stderr as `Error: ...`.