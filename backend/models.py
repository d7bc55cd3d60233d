# models.py: Database models for the Kanban board service
# - UUID string primary keys everywhere
# - A board is one row: scalar columns + JSON member list + JSON column/task/comment tree,
#   so every ordering mutation is persisted as a single UPDATE
# - Invitations, notifications and the task activity log live in their own tables

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, JSON, Boolean,
    Enum as SQLEnum, ForeignKey, Text, Index,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class ColumnType(str, PyEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    CUSTOM = "custom"


class TaskPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, PyEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class NotificationType(str, PyEnum):
    # Invitation lifecycle
    BOARD_INVITATION = "BOARD_INVITATION"
    INVITATION_DECLINED = "INVITATION_DECLINED"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"
    # Membership
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_LEFT = "MEMBER_LEFT"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    # Board
    BOARD_UPDATED = "BOARD_UPDATED"
    BOARD_DELETED = "BOARD_DELETED"
    # Task
    ASSIGNED = "ASSIGNED"
    TASK_COMPLETED = "TASK_COMPLETED"
    MENTIONED = "MENTIONED"


class NotificationPriority(str, PyEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskActivityType(str, PyEnum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    MOVED = "moved"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    COMPLETED = "completed"
    COMMENT_ADDED = "comment_added"
    COMMENT_UPDATED = "comment_updated"
    COMMENT_DELETED = "comment_deleted"


# ============================================================
# USERS (directory mirrored from the identity provider)
# ============================================================

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ============================================================
# BOARDS (aggregate root, columns and tasks embedded)
# ============================================================

class Board(Base):
    """Kanban board document: columns → tasks → comments are stored inline"""
    __tablename__ = "boards"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False)
    members = Column(JSON, nullable=False, default=list)  # List of user IDs, owner excluded
    columns = Column(JSON, nullable=False, default=list)  # Ordered column documents
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_board_owner", "owner_id"),
    )


# ============================================================
# BOARD INVITATIONS
# ============================================================

class BoardInvitation(Base):
    __tablename__ = "board_invitations"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(String, ForeignKey("users.id"), nullable=False)
    invited_user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    is_accepted = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_invitation_board_user", "board_id", "invited_user_id"),
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=new_uuid)
    recipient_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    sender_id = Column(String, nullable=True)
    board_id = Column(String, nullable=True, index=True)  # Weak reference: survives board deletion
    type = Column(SQLEnum(NotificationType), nullable=False, index=True)
    priority = Column(SQLEnum(NotificationPriority), nullable=False, default=NotificationPriority.MEDIUM)
    message = Column(Text, nullable=False)
    payload = Column("metadata", JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("idx_notification_recipient_read", "recipient_id", "is_read"),
    )


# ============================================================
# TASK ACTIVITY (append-only)
# ============================================================

class TaskActivity(Base):
    """Audit trail for a task; written in the same transaction as the board save"""
    __tablename__ = "task_activities"

    id = Column(String, primary_key=True, default=new_uuid)
    board_id = Column(String, nullable=False, index=True)
    task_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    type = Column(SQLEnum(TaskActivityType), nullable=False)
    changes = Column(JSON, nullable=False, default=list)  # [{field, oldValue, newValue}]
    extra_data = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("idx_activity_task_time", "task_id", "created_at"),
    )
