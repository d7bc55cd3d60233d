# board_document.py: In-memory board aggregate (columns → tasks → comments)
"""
A board is loaded as one pydantic model tree, mutated in memory by the
ordering engine and written back as a whole. Field names are snake_case in
Python and camelCase on the wire and in the stored JSON document.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models import ColumnType, TaskPriority, TaskStatus, new_uuid, utcnow

MAX_COLUMNS = 10
DEFAULT_COLUMN_COLOR = "#E2E8F0"


class DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================
# COMMENTS
# ============================================================

class CommentEdit(DocumentModel):
    content: str
    edited_at: datetime = Field(default_factory=utcnow)


class CommentDocument(DocumentModel):
    id: str = Field(default_factory=new_uuid)
    content: str
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    is_edited: bool = False
    edit_history: List[CommentEdit] = Field(default_factory=list)

    def edit(self, content: str) -> None:
        self.edit_history.append(CommentEdit(content=self.content))
        self.content = content
        self.is_edited = True
        self.updated_at = utcnow()


# ============================================================
# TASKS
# ============================================================

class TaskDocument(DocumentModel):
    id: str = Field(default_factory=new_uuid)
    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.LOW
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    assignees: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    comments: List[CommentDocument] = Field(default_factory=list)
    order: int = 0
    column_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_comment(self, comment_id: str) -> Optional[CommentDocument]:
        return next((c for c in self.comments if c.id == comment_id), None)

    def touch(self) -> None:
        self.updated_at = utcnow()


# ============================================================
# COLUMNS
# ============================================================

class ColumnDocument(DocumentModel):
    id: str = Field(default_factory=new_uuid)
    name: str
    order: int = 0
    is_default: bool = False
    type: ColumnType = ColumnType.CUSTOM
    color: str = DEFAULT_COLUMN_COLOR
    limit: Optional[int] = None
    tasks: List[TaskDocument] = Field(default_factory=list)

    @property
    def has_limit(self) -> bool:
        return self.limit is not None and self.limit > 0

    @property
    def is_full(self) -> bool:
        return self.has_limit and len(self.tasks) >= self.limit


def default_columns() -> List[ColumnDocument]:
    """Columns every board starts with when the creator supplies none"""
    return [
        ColumnDocument(name="To Do", order=0, is_default=False, type=ColumnType.TODO, color="#3b82f6"),
        ColumnDocument(name="In Progress", order=1, is_default=True, type=ColumnType.IN_PROGRESS, color="#f59e0b"),
        ColumnDocument(name="Done", order=2, is_default=True, type=ColumnType.DONE, color="#22c55e"),
    ]


# ============================================================
# BOARD (aggregate root)
# ============================================================

class BoardDocument(DocumentModel):
    id: str = Field(default_factory=new_uuid)
    name: str
    description: Optional[str] = None
    owner: str
    members: List[str] = Field(default_factory=list)
    columns: List[ColumnDocument] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_owner(self, user_id: str) -> bool:
        return self.owner == user_id

    def is_member(self, user_id: str) -> bool:
        return user_id in self.members

    def has_access(self, user_id: str) -> bool:
        return self.is_owner(user_id) or self.is_member(user_id)

    def add_member(self, user_id: str) -> bool:
        """Set semantics: returns False when the user is already on the board"""
        if self.has_access(user_id):
            return False
        self.members.append(user_id)
        return True

    def remove_member(self, user_id: str) -> bool:
        if user_id not in self.members:
            return False
        self.members = [m for m in self.members if m != user_id]
        return True

    def members_except(self, user_id: str) -> List[str]:
        return [m for m in self.members if m != user_id]

    def task_count(self) -> int:
        return sum(len(c.tasks) for c in self.columns)
