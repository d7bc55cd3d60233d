# task_service.py: Task, comment and assignee mutations inside a board aggregate
import re
import logging
from typing import Optional, List, Dict, Any, Tuple

from fastapi import Depends
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import ensure_users_exist
from board_document import BoardDocument, ColumnDocument, TaskDocument, CommentDocument
from board_service import ensure_access
from board_store import BoardStore
from database import get_db_session
from kanban_errors import NotFound, NotAuthorized
from models import TaskActivity, TaskActivityType, TaskStatus, ColumnType
from notification_events import (
    NotificationSink, NotificationEvent, AssignedEvent, TaskCompletedEvent, MentionedEvent,
    AssignedMeta, TaskMeta, MentionMeta,
)
from ordering_engine import find_column, find_task, insert_task, remove_task, move_task
from telemetry import traced_operation

logger = logging.getLogger("kanban.tasks")

# @[Display Name](user-id)
MENTION_PATTERN = re.compile(r"@\[([^\]]+)\]\(([\w-]+)\)")

# Fields an explicit null resets, mapped to the value they reset to
CLEARABLE_FIELDS = {"due_date": None, "description": ""}


def extract_mentions(content: str) -> List[str]:
    """User ids mentioned in a comment, first occurrence order, no duplicates"""
    return list(dict.fromkeys(user_id for _, user_id in MENTION_PATTERN.findall(content)))


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class TaskService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = BoardStore(db)
        self.sink = NotificationSink(db)

    # ============================================================
    # INTERNAL HELPERS
    # ============================================================

    async def _load(self, board_id: str, user_id: str) -> BoardDocument:
        board = await self.store.load(board_id)
        ensure_access(board, user_id)
        return board

    async def _load_task(self, board_id: str, task_id: str, user_id: str) -> Tuple[BoardDocument, TaskDocument, ColumnDocument]:
        board = await self._load(board_id, user_id)
        task, column = find_task(board, task_id)
        return board, task, column

    def _record(
        self,
        board: BoardDocument,
        task: TaskDocument,
        user_id: str,
        activity_type: TaskActivityType,
        changes: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(TaskActivity(
            board_id=board.id,
            task_id=task.id,
            user_id=user_id,
            type=activity_type,
            changes=changes or [],
            extra_data=metadata or {},
        ))

    async def _commit(self, board: BoardDocument) -> None:
        await self.store.save(board)
        await self.db.commit()

    @staticmethod
    def _assigned_events(board: BoardDocument, task: TaskDocument, actor_id: str, user_ids: List[str]) -> List[NotificationEvent]:
        return [
            AssignedEvent(
                recipient_id=uid,
                sender_id=actor_id,
                board_id=board.id,
                message=f'You have been assigned to task "{task.title}"',
                metadata=AssignedMeta(task_id=task.id, column_id=task.column_id),
            )
            for uid in user_ids
            if uid != actor_id
        ]

    @staticmethod
    def _completed_events(board: BoardDocument, task: TaskDocument, actor_id: str) -> List[NotificationEvent]:
        return [
            TaskCompletedEvent(
                recipient_id=uid,
                sender_id=actor_id,
                board_id=board.id,
                message=f'Task "{task.title}" has been marked as completed',
                metadata=TaskMeta(task_id=task.id),
            )
            for uid in task.assignees
            if uid != actor_id
        ]

    # ============================================================
    # TASKS
    # ============================================================

    async def list_tasks(self, board_id: str, column_id: str, user_id: str) -> List[TaskDocument]:
        board = await self._load(board_id, user_id)
        column = find_column(board, column_id)
        return sorted(column.tasks, key=lambda t: t.order)

    async def get_task(self, board_id: str, task_id: str, user_id: str) -> TaskDocument:
        _, task, _ = await self._load_task(board_id, task_id, user_id)
        return task

    async def create_task(
        self,
        board_id: str,
        column_id: str,
        user_id: str,
        fields: Dict[str, Any],
    ) -> TaskDocument:
        with traced_operation("task.create", board_id=board_id, column_id=column_id):
            board = await self._load(board_id, user_id)
            column = find_column(board, column_id)

            assignees = _unique(fields.pop("assignees", None) or [])
            await ensure_users_exist(self.db, assignees)
            if "labels" in fields:
                fields["labels"] = _unique(fields["labels"] or [])

            task = TaskDocument(**fields, assignees=assignees, created_by=user_id)
            insert_task(column, task)

            self._record(board, task, user_id, TaskActivityType.CREATED, metadata={"columnId": column.id})
            await self._commit(board)
            logger.info(f"Task created: {task.id} in column {column.id} of board {board.id}")

            await self.sink.emit(self._assigned_events(board, task, user_id, task.assignees))
            return task

    async def update_task(
        self,
        board_id: str,
        task_id: str,
        user_id: str,
        updates: Dict[str, Any],
    ) -> TaskDocument:
        """Apply the provided fields; records one activity entry listing every changed field"""
        with traced_operation("task.update", board_id=board_id, task_id=task_id):
            board, task, _ = await self._load_task(board_id, task_id, user_id)

            if updates.get("assignees") is not None:
                updates["assignees"] = _unique(updates["assignees"])
                await ensure_users_exist(self.db, updates["assignees"])
            if updates.get("labels") is not None:
                updates["labels"] = _unique(updates["labels"])

            before = task.to_document()
            old_assignees = set(task.assignees)
            was_completed = task.status == TaskStatus.COMPLETED

            for field, value in updates.items():
                if value is None and field not in CLEARABLE_FIELDS:
                    continue
                setattr(task, field, CLEARABLE_FIELDS[field] if value is None else value)
            task.touch()

            after = task.to_document()
            changes = [
                {"field": key, "oldValue": before[key], "newValue": after[key]}
                for key in (to_camel(f) for f in updates)
                if before.get(key) != after.get(key)
            ]

            events: List[NotificationEvent] = []
            if changes:
                self._record(board, task, user_id, TaskActivityType.UPDATED, changes=changes)
            if not was_completed and task.status == TaskStatus.COMPLETED:
                self._record(board, task, user_id, TaskActivityType.COMPLETED)
                events.extend(self._completed_events(board, task, user_id))

            added = [uid for uid in task.assignees if uid not in old_assignees]
            events.extend(self._assigned_events(board, task, user_id, added))

            await self._commit(board)
            await self.sink.emit(events)
            return task

    async def delete_task(self, board_id: str, task_id: str, user_id: str) -> None:
        with traced_operation("task.delete", board_id=board_id, task_id=task_id):
            board, task, column = await self._load_task(board_id, task_id, user_id)
            remove_task(column, task.id)
            self._record(board, task, user_id, TaskActivityType.DELETED, metadata={
                "title": task.title, "columnId": column.id,
            })
            await self._commit(board)
            logger.info(f"Task deleted: {task.id} from board {board.id}")

    async def move_task(
        self,
        board_id: str,
        task_id: str,
        user_id: str,
        target_column_id: str,
        new_order: int,
    ) -> TaskDocument:
        """Move within or across columns; landing in a done column completes the task"""
        with traced_operation("task.move", board_id=board_id, task_id=task_id, target_column_id=target_column_id):
            board, task, source = await self._load_task(board_id, task_id, user_id)
            target = find_column(board, target_column_id)
            from_order = task.order

            move_task(source, target, task.id, new_order)
            task.touch()
            self._record(board, task, user_id, TaskActivityType.MOVED, metadata={
                "fromColumnId": source.id,
                "toColumnId": target.id,
                "fromOrder": from_order,
                "toOrder": task.order,
            })

            events: List[NotificationEvent] = []
            if target.type == ColumnType.DONE and task.status != TaskStatus.COMPLETED:
                self._record(board, task, user_id, TaskActivityType.COMPLETED, changes=[
                    {"field": "status", "oldValue": task.status.value, "newValue": TaskStatus.COMPLETED.value},
                ])
                task.status = TaskStatus.COMPLETED
                events.extend(self._completed_events(board, task, user_id))

            await self._commit(board)
            await self.sink.emit(events)
            return task

    # ============================================================
    # COMMENTS
    # ============================================================

    async def add_comment(self, board_id: str, task_id: str, user_id: str, content: str) -> TaskDocument:
        with traced_operation("comment.create", board_id=board_id, task_id=task_id):
            board, task, _ = await self._load_task(board_id, task_id, user_id)
            comment = CommentDocument(content=content, created_by=user_id)
            task.comments.append(comment)
            task.touch()
            self._record(board, task, user_id, TaskActivityType.COMMENT_ADDED, metadata={"commentId": comment.id})
            await self._commit(board)

            mentioned = [
                uid for uid in extract_mentions(content)
                if uid != user_id and board.has_access(uid)
            ]
            await self.sink.emit([
                MentionedEvent(
                    recipient_id=uid,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'You were mentioned in task "{task.title}"',
                    metadata=MentionMeta(task_id=task.id, comment_id=comment.id),
                )
                for uid in mentioned
            ])
            return task

    def _own_comment(self, task: TaskDocument, comment_id: str, user_id: str) -> CommentDocument:
        comment = task.find_comment(comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        if comment.created_by != user_id:
            raise NotAuthorized("Only the comment author can change this comment")
        return comment

    async def update_comment(
        self, board_id: str, task_id: str, comment_id: str, user_id: str, content: str,
    ) -> TaskDocument:
        board, task, _ = await self._load_task(board_id, task_id, user_id)
        comment = self._own_comment(task, comment_id, user_id)
        previous = comment.content
        comment.edit(content)
        task.touch()
        self._record(board, task, user_id, TaskActivityType.COMMENT_UPDATED,
                     changes=[{"field": "content", "oldValue": previous, "newValue": content}],
                     metadata={"commentId": comment.id})
        await self._commit(board)
        return task

    async def delete_comment(self, board_id: str, task_id: str, comment_id: str, user_id: str) -> TaskDocument:
        board, task, _ = await self._load_task(board_id, task_id, user_id)
        comment = self._own_comment(task, comment_id, user_id)
        task.comments = [c for c in task.comments if c.id != comment.id]
        task.touch()
        self._record(board, task, user_id, TaskActivityType.COMMENT_DELETED, metadata={"commentId": comment.id})
        await self._commit(board)
        return task

    # ============================================================
    # ASSIGNEES
    # ============================================================

    async def assign_user(self, board_id: str, task_id: str, user_id: str, assignee_id: str) -> TaskDocument:
        """Idempotent: assigning an existing assignee changes nothing and notifies no one"""
        with traced_operation("task.assign", board_id=board_id, task_id=task_id):
            board, task, _ = await self._load_task(board_id, task_id, user_id)
            await ensure_users_exist(self.db, [assignee_id])
            if assignee_id in task.assignees:
                return task

            task.assignees.append(assignee_id)
            task.touch()
            self._record(board, task, user_id, TaskActivityType.ASSIGNED, metadata={"assigneeId": assignee_id})
            await self._commit(board)
            await self.sink.emit(self._assigned_events(board, task, user_id, [assignee_id]))
            return task

    async def unassign_user(self, board_id: str, task_id: str, user_id: str, assignee_id: str) -> TaskDocument:
        board, task, _ = await self._load_task(board_id, task_id, user_id)
        if assignee_id not in task.assignees:
            raise NotFound("User is not assigned to this task")
        task.assignees = [uid for uid in task.assignees if uid != assignee_id]
        task.touch()
        self._record(board, task, user_id, TaskActivityType.UNASSIGNED, metadata={"assigneeId": assignee_id})
        await self._commit(board)
        return task

    # ============================================================
    # ACTIVITY
    # ============================================================

    async def list_task_activity(self, board_id: str, task_id: str, user_id: str) -> List[TaskActivity]:
        await self._load(board_id, user_id)
        stmt = (
            select(TaskActivity)
            .where(TaskActivity.board_id == board_id, TaskActivity.task_id == task_id)
            .order_by(TaskActivity.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


def get_task_service(db: AsyncSession = Depends(get_db_session)) -> TaskService:
    return TaskService(db)
