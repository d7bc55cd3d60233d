# ordering_engine.py: Pure ordering operations on a board aggregate
"""
Column and task insert/remove/reorder/move with limit enforcement.

Every function works on the in-memory BoardDocument tree and performs no I/O.
All validation happens before the first mutation, so a raised KanbanError
always leaves the aggregate exactly as it was.
"""
from typing import List, Optional, Tuple

from board_document import BoardDocument, ColumnDocument, TaskDocument, MAX_COLUMNS
from kanban_errors import NotFound, LimitExceeded, Protected, InvalidRange, InvalidLimit


# ============================================================
# LOOKUP
# ============================================================

def find_column(board: BoardDocument, column_id: str) -> ColumnDocument:
    for column in board.columns:
        if column.id == column_id:
            return column
    raise NotFound("Column not found")


def find_task(board: BoardDocument, task_id: str) -> Tuple[TaskDocument, ColumnDocument]:
    """Locate a task anywhere on the board; returns the task and its owning column"""
    for column in board.columns:
        for task in column.tasks:
            if task.id == task_id:
                return task, column
    raise NotFound("Task not found")


# ============================================================
# NORMALISATION
# ============================================================

def normalize_column_orders(board: BoardDocument) -> None:
    board.columns.sort(key=lambda c: c.order)
    for index, column in enumerate(board.columns):
        column.order = index


def normalize_task_orders(column: ColumnDocument) -> None:
    column.tasks.sort(key=lambda t: t.order)
    for index, task in enumerate(column.tasks):
        task.order = index


def _is_dense(orders: List[int]) -> bool:
    return sorted(orders) == list(range(len(orders)))


def check_invariants(board: BoardDocument) -> List[str]:
    """Return a description of every ordering invariant the board violates"""
    problems = []
    if len(board.columns) > MAX_COLUMNS:
        problems.append(f"board has {len(board.columns)} columns (max {MAX_COLUMNS})")
    if not _is_dense([c.order for c in board.columns]):
        problems.append("column orders are not dense")
    for index, column in enumerate(board.columns):
        if column.order != index:
            problems.append(f"column {column.id} order {column.order} != index {index}")
        if not _is_dense([t.order for t in column.tasks]):
            problems.append(f"task orders in column {column.id} are not dense")
        for t_index, task in enumerate(column.tasks):
            if task.order != t_index:
                problems.append(f"task {task.id} order {task.order} != index {t_index}")
            if task.column_id != column.id:
                problems.append(f"task {task.id} points at column {task.column_id}")
        if column.has_limit and len(column.tasks) > column.limit:
            problems.append(f"column {column.id} holds {len(column.tasks)} tasks over limit {column.limit}")
    return problems


# ============================================================
# COLUMNS
# ============================================================

def insert_column(board: BoardDocument, column: ColumnDocument) -> ColumnDocument:
    if len(board.columns) >= MAX_COLUMNS:
        raise LimitExceeded(f"Board cannot have more than {MAX_COLUMNS} columns")
    column.order = len(board.columns)
    board.columns.append(column)
    return column


def remove_column(board: BoardDocument, column_id: str) -> ColumnDocument:
    column = find_column(board, column_id)
    if column.is_default:
        raise Protected("Default columns cannot be deleted")

    board.columns = [c for c in board.columns if c.id != column_id]
    for other in board.columns:
        if other.order > column.order:
            other.order -= 1
    return column


def reorder_column(board: BoardDocument, column_id: str, new_order: int) -> ColumnDocument:
    column = find_column(board, column_id)
    if new_order < 0 or new_order > len(board.columns) - 1:
        raise InvalidRange(f"Order must be between 0 and {len(board.columns) - 1}")

    old_order = column.order
    if new_order > old_order:
        for other in board.columns:
            if old_order < other.order <= new_order:
                other.order -= 1
    elif new_order < old_order:
        for other in board.columns:
            if new_order <= other.order < old_order:
                other.order += 1

    column.order = new_order
    board.columns.sort(key=lambda c: c.order)
    return column


def update_column_limit(column: ColumnDocument, new_limit: Optional[int]) -> None:
    """None or 0 counts as a limit of zero, so it only clears the limit on an empty column"""
    if (new_limit or 0) < len(column.tasks):
        raise InvalidLimit(
            f"Limit {new_limit} is below the current task count ({len(column.tasks)})"
        )
    column.limit = new_limit or None


# ============================================================
# TASKS
# ============================================================

def insert_task(column: ColumnDocument, task: TaskDocument) -> TaskDocument:
    if column.is_full:
        raise LimitExceeded(f"Column '{column.name}' has reached its limit of {column.limit} tasks")
    task.order = len(column.tasks)
    task.column_id = column.id
    column.tasks.append(task)
    return task


def remove_task(column: ColumnDocument, task_id: str) -> TaskDocument:
    task = next((t for t in column.tasks if t.id == task_id), None)
    if task is None:
        raise NotFound("Task not found")
    column.tasks = [t for t in column.tasks if t.id != task_id]
    normalize_task_orders(column)
    return task


def move_task(
    source: ColumnDocument,
    target: ColumnDocument,
    task_id: str,
    new_order: int,
) -> TaskDocument:
    task = next((t for t in source.tasks if t.id == task_id), None)
    if task is None:
        raise NotFound("Task not found")

    same_column = source.id == target.id
    if not same_column and target.is_full:
        raise LimitExceeded(f"Column '{target.name}' has reached its limit of {target.limit} tasks")

    source.tasks = [t for t in source.tasks if t.id != task_id]
    normalize_task_orders(source)

    position = max(0, min(new_order, len(target.tasks)))
    target.tasks.insert(position, task)
    task.column_id = target.id
    for index, t in enumerate(target.tasks):
        t.order = index
    return task
