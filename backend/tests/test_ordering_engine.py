# tests/test_ordering_engine.py: Pure ordering engine tests (no database)
import random

import pytest

from board_document import BoardDocument, ColumnDocument, TaskDocument, default_columns, MAX_COLUMNS
from kanban_errors import NotFound, LimitExceeded, Protected, InvalidRange, InvalidLimit
from models import ColumnType
from ordering_engine import (
    check_invariants, find_column, find_task,
    insert_column, remove_column, reorder_column, update_column_limit,
    insert_task, remove_task, move_task, normalize_task_orders,
)


def _board(columns=None) -> BoardDocument:
    board = BoardDocument(name="Board", owner="owner-1")
    board.columns = columns if columns is not None else default_columns()
    return board


def _column(name="Custom", limit=None) -> ColumnDocument:
    return ColumnDocument(name=name, limit=limit)


def _fill(column: ColumnDocument, count: int):
    return [insert_task(column, TaskDocument(title=f"{column.name} #{i}")) for i in range(count)]


def _orders(items):
    return [i.order for i in items]


# ============================================================
# DEFAULTS
# ============================================================

def test_default_columns():
    board = _board()
    assert [c.name for c in board.columns] == ["To Do", "In Progress", "Done"]
    assert _orders(board.columns) == [0, 1, 2]
    assert [c.is_default for c in board.columns] == [False, True, True]
    assert [c.type for c in board.columns] == [ColumnType.TODO, ColumnType.IN_PROGRESS, ColumnType.DONE]
    assert check_invariants(board) == []


# ============================================================
# COLUMNS
# ============================================================

def test_insert_column_appends_with_next_order():
    board = _board()
    column = insert_column(board, _column("Review"))
    assert column.order == 3
    assert board.columns[-1] is column
    assert check_invariants(board) == []


def test_insert_column_rejected_at_ten_columns():
    board = _board([])
    for i in range(MAX_COLUMNS):
        insert_column(board, _column(f"C{i}"))
    snapshot = board.model_dump()

    with pytest.raises(LimitExceeded):
        insert_column(board, _column("Eleventh"))
    assert len(board.columns) == MAX_COLUMNS
    assert board.model_dump() == snapshot


def test_remove_default_column_is_protected():
    board = _board()
    snapshot = board.model_dump()
    with pytest.raises(Protected):
        remove_column(board, board.columns[1].id)
    assert board.model_dump() == snapshot


def test_remove_column_shifts_later_columns():
    board = _board()
    todo = board.columns[0]
    remove_column(board, todo.id)
    assert [c.name for c in board.columns] == ["In Progress", "Done"]
    assert _orders(board.columns) == [0, 1]
    assert check_invariants(board) == []


def test_remove_missing_column():
    with pytest.raises(NotFound):
        remove_column(_board(), "nope")


@pytest.mark.parametrize("old, new, expected", [
    (0, 2, ["B", "C", "A", "D"]),
    (3, 1, ["A", "D", "B", "C"]),
    (1, 1, ["A", "B", "C", "D"]),
    (2, 0, ["C", "A", "B", "D"]),
])
def test_reorder_column(old, new, expected):
    board = _board([])
    for name in "ABCD":
        insert_column(board, _column(name))
    reorder_column(board, board.columns[old].id, new)
    assert [c.name for c in board.columns] == expected
    assert check_invariants(board) == []


@pytest.mark.parametrize("new_order", [-1, 3, 10])
def test_reorder_column_out_of_range(new_order):
    board = _board()
    snapshot = board.model_dump()
    with pytest.raises(InvalidRange):
        reorder_column(board, board.columns[0].id, new_order)
    assert board.model_dump() == snapshot


def test_random_column_operations_keep_dense_order():
    rng = random.Random(7)
    board = _board([])
    for step in range(200):
        op = rng.choice(["insert", "remove", "reorder"])
        if op == "insert" and len(board.columns) < MAX_COLUMNS:
            insert_column(board, _column(f"S{step}"))
        elif op == "remove" and board.columns:
            remove_column(board, rng.choice(board.columns).id)
        elif op == "reorder" and board.columns:
            reorder_column(board, rng.choice(board.columns).id, rng.randrange(len(board.columns)))
        assert check_invariants(board) == []


# ============================================================
# COLUMN LIMITS
# ============================================================

def test_limit_one_allows_a_single_task():
    column = _column(limit=1)
    first = insert_task(column, TaskDocument(title="first"))
    assert first.order == 0
    with pytest.raises(LimitExceeded):
        insert_task(column, TaskDocument(title="second"))
    assert len(column.tasks) == 1


def test_update_limit_below_count_rejected():
    column = _column()
    _fill(column, 3)
    with pytest.raises(InvalidLimit):
        update_column_limit(column, 2)
    assert column.limit is None
    update_column_limit(column, 3)
    assert column.limit == 3


@pytest.mark.parametrize("new_limit", [0, None])
def test_clearing_limit_rejected_while_column_has_tasks(new_limit):
    column = _column(limit=2)
    _fill(column, 2)
    with pytest.raises(InvalidLimit):
        update_column_limit(column, new_limit)
    assert column.limit == 2


@pytest.mark.parametrize("new_limit", [0, None])
def test_clearing_limit_on_empty_column(new_limit):
    column = _column(limit=2)
    update_column_limit(column, new_limit)
    assert column.limit is None
    _fill(column, 3)
    assert len(column.tasks) == 3


# ============================================================
# TASKS
# ============================================================

def test_insert_task_uses_dense_order():
    column = _column()
    tasks = _fill(column, 3)
    assert _orders(tasks) == [0, 1, 2]
    assert all(t.column_id == column.id for t in tasks)


def test_remove_interior_task_closes_gap():
    column = _column()
    tasks = _fill(column, 4)
    remove_task(column, tasks[1].id)
    assert [t.title for t in column.tasks] == ["Custom #0", "Custom #2", "Custom #3"]
    assert _orders(column.tasks) == [0, 1, 2]


def test_remove_missing_task():
    with pytest.raises(NotFound):
        remove_task(_column(), "missing")


def test_move_between_columns():
    a, b = _column("A"), _column("B")
    a_tasks = _fill(a, 2)
    _fill(b, 2)

    moved = move_task(a, b, a_tasks[0].id, 1)

    assert _orders(a.tasks) == [0]
    assert a.tasks[0].id == a_tasks[1].id
    assert _orders(b.tasks) == [0, 1, 2]
    assert b.tasks[1] is moved
    assert moved.column_id == b.id


def test_move_to_full_column_changes_nothing():
    a, b = _column("A"), _column("B", limit=1)
    a_tasks = _fill(a, 2)
    _fill(b, 1)
    before_a, before_b = a.model_dump(), b.model_dump()

    with pytest.raises(LimitExceeded):
        move_task(a, b, a_tasks[0].id, 0)
    assert a.model_dump() == before_a
    assert b.model_dump() == before_b


def test_move_missing_task_changes_nothing():
    a, b = _column("A"), _column("B")
    _fill(a, 1)
    before = a.model_dump()
    with pytest.raises(NotFound):
        move_task(a, b, "ghost", 0)
    assert a.model_dump() == before
    assert b.tasks == []


@pytest.mark.parametrize("requested, expected_index", [(-5, 0), (99, 2)])
def test_move_clamps_position(requested, expected_index):
    a, b = _column("A"), _column("B")
    task = _fill(a, 1)[0]
    _fill(b, 2)
    move_task(a, b, task.id, requested)
    assert b.tasks[expected_index] is task
    assert _orders(b.tasks) == [0, 1, 2]


def test_move_within_full_column_is_allowed():
    column = _column(limit=3)
    tasks = _fill(column, 3)
    move_task(column, column, tasks[0].id, 2)
    assert [t.id for t in column.tasks] == [tasks[1].id, tasks[2].id, tasks[0].id]
    assert _orders(column.tasks) == [0, 1, 2]


def test_random_task_operations_keep_dense_order():
    rng = random.Random(11)
    board = _board([])
    for name in "ABC":
        insert_column(board, _column(name, limit=rng.choice([None, 4, 6])))

    for step in range(300):
        column = rng.choice(board.columns)
        op = rng.choice(["insert", "remove", "move"])
        try:
            if op == "insert":
                insert_task(column, TaskDocument(title=f"t{step}"))
            elif op == "remove" and column.tasks:
                remove_task(column, rng.choice(column.tasks).id)
            elif op == "move" and column.tasks:
                target = rng.choice(board.columns)
                move_task(column, target, rng.choice(column.tasks).id, rng.randrange(-1, 8))
        except LimitExceeded:
            pass
        assert check_invariants(board) == []


def test_find_task_returns_owning_column():
    board = _board()
    task = insert_task(board.columns[2], TaskDocument(title="ship it"))
    found, column = find_task(board, task.id)
    assert found is task
    assert column is board.columns[2]
    with pytest.raises(NotFound):
        find_column(board, "missing")


def test_normalize_task_orders_repairs_gaps():
    column = _column()
    column.tasks = [TaskDocument(title=t, order=o) for t, o in [("c", 7), ("a", 0), ("b", 3)]]
    normalize_task_orders(column)
    assert [t.title for t in column.tasks] == ["a", "b", "c"]
    assert _orders(column.tasks) == [0, 1, 2]
