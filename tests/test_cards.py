import pytest

from agentboard.cards import Database
from agentboard.models import CardUpdate, NotFoundError, Status


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "data.db")
    yield database
    database.close()


@pytest.fixture
def board(db):
    return db.create_board("Work", "things to do")


def test_create_card_defaults(db, board):
    card = db.create_card(board.id, "Write docs")
    assert card.id.startswith("card_")
    assert card.board_id == board.id
    assert card.name == "Write docs"
    assert card.status is Status.TODO
    assert card.assigned_to is None
    assert card.tags == []
    assert card.checklists == []
    assert card.deleted_at is None


def test_create_card_with_status_and_description(db, board):
    card = db.create_card(board.id, "Review", "check it", Status.PENDING_REVIEW)
    fetched = db.get_card(card.id)
    assert fetched.status is Status.PENDING_REVIEW
    assert fetched.description == "check it"


def test_create_card_on_missing_board(db):
    with pytest.raises(NotFoundError):
        db.create_card("board_missing", "x")


def test_get_missing_card_message(db):
    with pytest.raises(NotFoundError) as info:
        db.get_card("card_nope")
    assert str(info.value) == "Not found: Card not found: card_nope"
    assert info.value.exit_code() == 4


def test_update_fields_and_tags(db, board):
    card = db.create_card(board.id, "Old")
    db.update_card(
        card.id,
        CardUpdate(name="New", status=Status.DONE, add_tags=["a", "b", "a"]),
    )
    fetched = db.get_card(card.id)
    assert fetched.name == "New"
    assert fetched.status is Status.DONE
    assert sorted(fetched.tags) == ["a", "b"]
    assert fetched.updated_at >= card.updated_at

    db.update_card(card.id, CardUpdate(remove_tags=["a"]))
    assert db.get_card(card.id).tags == ["b"]


def test_assign_and_unassign(db, board):
    card = db.create_card(board.id, "Task")
    db.update_card(card.id, CardUpdate(assignee="agent_1"))
    assert db.get_card(card.id).assigned_to == "agent_1"
    db.update_card(card.id, CardUpdate(name="Task 2"))
    assert db.get_card(card.id).assigned_to == "agent_1"
    db.update_card(card.id, CardUpdate(assignee=None))
    assert db.get_card(card.id).assigned_to is None


def test_update_missing_card(db):
    with pytest.raises(NotFoundError):
        db.update_card("card_missing", CardUpdate(name="x"))


def test_delete_card(db, board):
    card = db.create_card(board.id, "Gone")
    keep = db.create_card(board.id, "Stay")
    db.delete_card(card.id)
    with pytest.raises(NotFoundError):
        db.get_card(card.id)
    assert [c.id for c in db.list_cards(board.id)] == [keep.id]
    with_deleted = {c.id: c for c in db.list_cards(board.id, include_deleted=True)}
    assert set(with_deleted) == {card.id, keep.id}
    assert with_deleted[card.id].deleted_at is not None
    assert with_deleted[keep.id].deleted_at is None


def test_list_cards_filters(db, board):
    first = db.create_card(board.id, "one")
    second = db.create_card(board.id, "two", status=Status.IN_PROGRESS)
    third = db.create_card(board.id, "three", status=Status.IN_PROGRESS)
    db.update_card(second.id, CardUpdate(assignee="agent_x", add_tags=["x", "y"]))
    db.update_card(third.id, CardUpdate(add_tags=["x"]))

    assert [c.id for c in db.list_cards(board.id)] == [first.id, second.id, third.id]
    assert {c.id for c in db.list_cards(board.id, status=Status.IN_PROGRESS)} == {
        second.id,
        third.id,
    }
    assert [c.id for c in db.list_cards(board.id, assigned_to="agent_x")] == [second.id]
    assert {c.id for c in db.list_cards(board.id, tags=["x"])} == {second.id, third.id}
    assert [c.id for c in db.list_cards(board.id, tags=["x", "y"])] == [second.id]
    assert db.list_cards(board.id, status=Status.DONE) == []


def test_list_cards_deleted_board(db, board):
    card = db.create_card(board.id, "c")
    db.delete_board(board.id)
    with pytest.raises(NotFoundError):
        db.list_cards(board.id)
    cards = db.list_cards(board.id, include_deleted=True)
    assert [c.id for c in cards] == [card.id]
    assert cards[0].deleted_at is not None


def test_list_cards_unknown_board(db):
    with pytest.raises(NotFoundError):
        db.list_cards("board_unknown", include_deleted=True)


def test_cards_by_assignee(db, board):
    other = db.create_board("Other")
    a = db.create_card(board.id, "a")
    b = db.create_card(other.id, "b", status=Status.DONE)
    c = db.create_card(board.id, "c")
    for card in (a, b, c):
        db.update_card(card.id, CardUpdate(assignee="agent_me"))
    db.delete_card(c.id)

    assert {x.id for x in db.get_cards_by_assignee("agent_me")} == {a.id, b.id}
    assert [x.id for x in db.get_cards_by_assignee("agent_me", board.id)] == [a.id]
    assert [x.id for x in db.get_cards_by_assignee("agent_me", status=Status.DONE)] == [b.id]
    assert db.get_cards_by_assignee("agent_me", other.id, Status.TODO) == []
    assert db.get_cards_by_assignee("agent_other") == []


def test_checklist_round_trip(db, board):
    card = db.create_card(board.id, "c")
    checklist = db.add_checklist(card.id, "Tasks", ["first", "second"])
    assert checklist.id.startswith("checklist_")
    assert [item.text for item in checklist.items] == ["first", "second"]
    assert not any(item.checked for item in checklist.items)

    fetched = db.get_card(card.id)
    assert fetched.checklists == [checklist]


def test_check_and_uncheck_item(db, board):
    card = db.create_card(board.id, "c")
    checklist = db.add_checklist(card.id, "Tasks", ["only"])
    item_id = checklist.items[0].id
    db.check_item(item_id, True)
    assert db.get_card(card.id).checklists[0].items[0].checked is True
    db.check_item(item_id, False)
    assert db.get_card(card.id).checklists[0].items[0].checked is False


def test_check_missing_item(db):
    with pytest.raises(NotFoundError) as info:
        db.check_item("item_missing", True)
    assert "item_missing" in str(info.value)


def test_checklist_on_missing_card(db):
    with pytest.raises(NotFoundError):
        db.add_checklist("card_missing", "Tasks", ["x"])


def test_comments_round_trip(db, board):
    card = db.create_card(board.id, "c")
    first = db.add_comment(card.id, "hello", "agent_a")
    second = db.add_comment(card.id, "line1\nline2", "agent_b")
    assert first.author == "agent_a"
    assert first.card_id == card.id

    comments = db.list_comments(card.id)
    assert [c.id for c in comments] == [first.id, second.id]
    assert [c.text for c in comments] == ["hello", "line1\nline2"]
    assert comments[1].author == "agent_b"


def test_comment_on_missing_card(db):
    with pytest.raises(NotFoundError):
        db.add_comment("card_missing", "text")
    with pytest.raises(NotFoundError):
        db.list_comments("card_missing")


def test_comment_counts(db, board):
    a = db.create_card(board.id, "a")
    b = db.create_card(board.id, "b")
    c = db.create_card(board.id, "c")
    db.add_comment(a.id, "1")
    db.add_comment(a.id, "2")
    db.add_comment(b.id, "3")
    counts = db.get_comment_counts([a.id, b.id, c.id])
    assert counts == {a.id: 2, b.id: 1}
    assert db.get_comment_counts([]) == {}


def test_summary_counts_cards(db, board):
    db.create_card(board.id, "a")
    db.create_card(board.id, "b", status=Status.DONE)
    gone = db.create_card(board.id, "c", status=Status.DONE)
    db.delete_card(gone.id)
    summary = db.get_board_summary(board.id)
    assert summary.todo_count == 1
    assert summary.done_count == 1
    assert summary.total_cards == 2