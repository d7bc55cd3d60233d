# routers/tasks.py: Tasks, comments, assignees and task activity
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from kanban_schemas import (
    TaskCreate, TaskUpdate, TaskMove, CommentCreate, TaskOut, ActivityOut,
    task_out, tasks_out, activities_out,
)
from task_service import TaskService, get_task_service

router = APIRouter(prefix="/api/boards/{board_id}", tags=["Tasks"])


# ============================================================
# TASKS
# ============================================================

@router.post("/columns/{column_id}/tasks", response_model=TaskOut, status_code=201)
async def create_task(
    board_id: str,
    column_id: str,
    data: TaskCreate,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Append a task to the column, respecting the column limit"""
    task = await service.create_task(board_id, column_id, user.id, data.model_dump())
    return await task_out(db, task)


@router.get("/columns/{column_id}/tasks", response_model=List[TaskOut])
async def list_tasks(
    board_id: str,
    column_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    return await tasks_out(db, await service.list_tasks(board_id, column_id, user.id))


@router.get("/tasks/{task_id}", response_model=TaskOut)
async def get_task(
    board_id: str,
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    return await task_out(db, await service.get_task(board_id, task_id, user.id))


@router.put("/tasks/{task_id}", response_model=TaskOut)
async def update_task(
    board_id: str,
    task_id: str,
    data: TaskUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    task = await service.update_task(board_id, task_id, user.id, data.model_dump(exclude_unset=True))
    return await task_out(db, task)


@router.delete("/tasks/{task_id}")
async def delete_task(
    board_id: str,
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(board_id, task_id, user.id)
    return {"message": "Task deleted"}


@router.put("/tasks/{task_id}/move", response_model=TaskOut)
async def move_task(
    board_id: str,
    task_id: str,
    data: TaskMove,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Move to another column (or position); the target's limit is checked first"""
    task = await service.move_task(board_id, task_id, user.id, data.target_column_id, data.order)
    return await task_out(db, task)


@router.get("/tasks/{task_id}/activity", response_model=List[ActivityOut])
async def task_activity(
    board_id: str,
    task_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    return await activities_out(db, await service.list_task_activity(board_id, task_id, user.id))


# ============================================================
# COMMENTS
# ============================================================

@router.post("/tasks/{task_id}/comments", response_model=TaskOut, status_code=201)
async def add_comment(
    board_id: str,
    task_id: str,
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Mentions written as @[Name](userId) notify the mentioned board users"""
    task = await service.add_comment(board_id, task_id, user.id, data.content)
    return await task_out(db, task)


@router.put("/tasks/{task_id}/comments/{comment_id}", response_model=TaskOut)
async def update_comment(
    board_id: str,
    task_id: str,
    comment_id: str,
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    task = await service.update_comment(board_id, task_id, comment_id, user.id, data.content)
    return await task_out(db, task)


@router.delete("/tasks/{task_id}/comments/{comment_id}", response_model=TaskOut)
async def delete_comment(
    board_id: str,
    task_id: str,
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    task = await service.delete_comment(board_id, task_id, comment_id, user.id)
    return await task_out(db, task)


# ============================================================
# ASSIGNEES
# ============================================================

@router.post("/tasks/{task_id}/assign/{assignee_id}", response_model=TaskOut)
async def assign_user(
    board_id: str,
    task_id: str,
    assignee_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    task = await service.assign_user(board_id, task_id, user.id, assignee_id)
    return await task_out(db, task)


@router.delete("/tasks/{task_id}/assign/{assignee_id}", response_model=TaskOut)
async def unassign_user(
    board_id: str,
    task_id: str,
    assignee_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
    db: AsyncSession = Depends(get_db_session),
):
    task = await service.unassign_user(board_id, task_id, user.id, assignee_id)
    return await task_out(db, task)
