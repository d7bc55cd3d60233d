# kanban_schemas.py: Request bodies and response shapes for the Kanban API
# Wire format is camelCase (alias generator on DocumentModel); snake_case is accepted on input.
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable, Set

from pydantic import ConfigDict, Field, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from auth import resolve_users, UNKNOWN_USER
from board_document import (
    DocumentModel, BoardDocument, ColumnDocument, TaskDocument, CommentDocument, CommentEdit,
    DEFAULT_COLUMN_COLOR, MAX_COLUMNS,
)
from models import (
    ColumnType, TaskPriority, TaskStatus, BoardInvitation, Notification, TaskActivity,
)
from notification_events import descriptor_from_row


# ============================================================
# REQUEST SCHEMAS
# ============================================================

class RequestModel(DocumentModel):
    model_config = ConfigDict(str_strip_whitespace=True)


# --- Board ---
class ColumnCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    type: ColumnType = ColumnType.CUSTOM
    color: str = DEFAULT_COLUMN_COLOR
    limit: Optional[int] = Field(default=None, ge=0, le=100)

    def to_column(self) -> ColumnDocument:
        return ColumnDocument(name=self.name, type=self.type, color=self.color, limit=self.limit or None)


class BoardCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    columns: Optional[List[ColumnCreate]] = Field(default=None, max_length=MAX_COLUMNS)


class BoardUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class InviteRequest(RequestModel):
    email: EmailStr


class InvitationResponse(RequestModel):
    accept: bool


# --- Column ---
class ColumnUpdate(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type: Optional[ColumnType] = None
    color: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=0, le=100)


class ColumnReorder(RequestModel):
    column_id: str
    new_order: int


# --- Task ---
class TaskCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=50000)
    priority: TaskPriority = TaskPriority.LOW
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    assignees: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)


class TaskUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=50000)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    assignees: Optional[List[str]] = None
    labels: Optional[List[str]] = None


class TaskMove(RequestModel):
    target_column_id: str
    order: int = 0


class CommentCreate(RequestModel):
    content: str = Field(..., min_length=1, max_length=5000)


# ============================================================
# RESPONSE SCHEMAS
# ============================================================

class UserRef(DocumentModel):
    id: str
    name: str
    email: str


class BoardRef(DocumentModel):
    id: str
    name: str


class CommentOut(DocumentModel):
    id: str
    content: str
    created_by: UserRef
    created_at: datetime
    updated_at: datetime
    is_edited: bool = False
    edit_history: List[CommentEdit] = []


class TaskOut(DocumentModel):
    id: str
    title: str
    description: str = ""
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    assignees: List[UserRef] = []
    labels: List[str] = []
    comments: List[CommentOut] = []
    order: int
    column_id: Optional[str] = None
    created_by: Optional[UserRef] = None
    created_at: datetime
    updated_at: datetime


class ColumnOut(DocumentModel):
    id: str
    name: str
    order: int
    is_default: bool
    type: ColumnType
    color: str
    limit: Optional[int] = None
    task_count: int = 0
    tasks: List[TaskOut] = []


class BoardOut(DocumentModel):
    id: str
    name: str
    description: Optional[str] = None
    owner: UserRef
    members: List[UserRef] = []
    columns: List[ColumnOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InvitationOut(DocumentModel):
    id: str
    board: BoardRef
    invited_by: UserRef
    invited_user: str
    is_accepted: bool
    expires_at: datetime
    created_at: Optional[datetime] = None


class ActivityOut(DocumentModel):
    id: str
    task_id: str
    board_id: str
    user: UserRef
    type: str
    changes: List[Dict[str, Any]] = []
    metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None


class NotificationOut(DocumentModel):
    id: str
    recipient: str
    sender: Optional[UserRef] = None
    board: Optional[str] = None
    type: str
    priority: str
    message: str
    metadata: Dict[str, Any] = {}
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class InviteResult(DocumentModel):
    invitation: InvitationOut
    notification: Optional[NotificationOut] = None


class RespondResult(DocumentModel):
    board: Optional[BoardOut] = None
    success: bool = True


class PaginationOut(DocumentModel):
    total: int
    page: int
    pages: int


class NotificationPage(DocumentModel):
    notifications: List[NotificationOut]
    pagination: PaginationOut


# ============================================================
# BUILDERS (resolve weak user references)
# ============================================================

def _ref(users: Dict[str, Dict[str, str]], user_id: str) -> UserRef:
    return UserRef(**users.get(user_id, {"id": user_id, **UNKNOWN_USER}))


def _task_user_ids(task: TaskDocument) -> Set[str]:
    ids = set(task.assignees) | {c.created_by for c in task.comments}
    if task.created_by:
        ids.add(task.created_by)
    return ids


def _comment_out(comment: CommentDocument, users) -> CommentOut:
    return CommentOut(
        id=comment.id,
        content=comment.content,
        created_by=_ref(users, comment.created_by),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        is_edited=comment.is_edited,
        edit_history=comment.edit_history,
    )


def _task_out(task: TaskDocument, users) -> TaskOut:
    return TaskOut(
        id=task.id,
        title=task.title,
        description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        assignees=[_ref(users, uid) for uid in task.assignees],
        labels=task.labels,
        comments=[_comment_out(c, users) for c in task.comments],
        order=task.order,
        column_id=task.column_id,
        created_by=_ref(users, task.created_by) if task.created_by else None,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _column_out(column: ColumnDocument, users) -> ColumnOut:
    tasks = sorted(column.tasks, key=lambda t: t.order)
    return ColumnOut(
        id=column.id,
        name=column.name,
        order=column.order,
        is_default=column.is_default,
        type=column.type,
        color=column.color,
        limit=column.limit,
        task_count=len(tasks),
        tasks=[_task_out(t, users) for t in tasks],
    )


def _board_user_ids(board: BoardDocument) -> Set[str]:
    ids = {board.owner, *board.members}
    for column in board.columns:
        for task in column.tasks:
            ids |= _task_user_ids(task)
    return ids


async def task_out(db: AsyncSession, task: TaskDocument) -> TaskOut:
    users = await resolve_users(db, _task_user_ids(task))
    return _task_out(task, users)


async def tasks_out(db: AsyncSession, tasks: List[TaskDocument]) -> List[TaskOut]:
    ids: Set[str] = set()
    for task in tasks:
        ids |= _task_user_ids(task)
    users = await resolve_users(db, ids)
    return [_task_out(t, users) for t in tasks]


async def column_out(db: AsyncSession, column: ColumnDocument) -> ColumnOut:
    ids: Set[str] = set()
    for task in column.tasks:
        ids |= _task_user_ids(task)
    users = await resolve_users(db, ids)
    return _column_out(column, users)


async def boards_out(db: AsyncSession, boards: Iterable[BoardDocument]) -> List[BoardOut]:
    boards = list(boards)
    ids: Set[str] = set()
    for board in boards:
        ids |= _board_user_ids(board)
    users = await resolve_users(db, ids)
    return [
        BoardOut(
            id=b.id,
            name=b.name,
            description=b.description,
            owner=_ref(users, b.owner),
            members=[_ref(users, uid) for uid in b.members],
            columns=[_column_out(c, users) for c in sorted(b.columns, key=lambda c: c.order)],
            created_at=b.created_at,
            updated_at=b.updated_at,
        )
        for b in boards
    ]


async def board_out(db: AsyncSession, board: BoardDocument) -> BoardOut:
    return (await boards_out(db, [board]))[0]


async def invitations_out(db: AsyncSession, rows: List[tuple]) -> List[InvitationOut]:
    users = await resolve_users(db, {inv.invited_by for inv, _ in rows})
    return [
        InvitationOut(
            id=inv.id,
            board=BoardRef(id=inv.board_id, name=board_name),
            invited_by=_ref(users, inv.invited_by),
            invited_user=inv.invited_user_id,
            is_accepted=inv.is_accepted,
            expires_at=inv.expires_at,
            created_at=inv.created_at,
        )
        for inv, board_name in rows
    ]


async def activities_out(db: AsyncSession, rows: List[TaskActivity]) -> List[ActivityOut]:
    users = await resolve_users(db, {a.user_id for a in rows})
    return [
        ActivityOut(
            id=a.id,
            task_id=a.task_id,
            board_id=a.board_id,
            user=_ref(users, a.user_id),
            type=a.type.value if hasattr(a.type, "value") else str(a.type),
            changes=a.changes or [],
            metadata=a.extra_data or {},
            created_at=a.created_at,
        )
        for a in rows
    ]


async def notifications_out(db: AsyncSession, rows: List[Notification]) -> List[NotificationOut]:
    users = await resolve_users(db, {n.sender_id for n in rows if n.sender_id})
    return [
        NotificationOut(
            id=n.id,
            recipient=n.recipient_id,
            sender=_ref(users, n.sender_id) if n.sender_id else None,
            board=n.board_id,
            type=n.type.value if hasattr(n.type, "value") else str(n.type),
            priority=n.priority.value if hasattr(n.priority, "value") else str(n.priority),
            message=n.message,
            metadata=descriptor_from_row(n).metadata.to_document(),
            is_read=n.is_read,
            read_at=n.read_at,
            created_at=n.created_at,
        )
        for n in rows
    ]


def invitation_ref(invitation: BoardInvitation, board_name: str, inviter: Dict[str, str]) -> InvitationOut:
    return InvitationOut(
        id=invitation.id,
        board=BoardRef(id=invitation.board_id, name=board_name),
        invited_by=UserRef(**inviter),
        invited_user=invitation.invited_user_id,
        is_accepted=invitation.is_accepted,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
    )
