# notification_events.py: Typed notification descriptors and the best-effort sink
"""
Services describe side effects as descriptors; each notification type carries
its own metadata schema and default priority. The sink persists descriptors
after the primary mutation has committed, one commit per recipient, and never
lets a failure escape to the caller.
"""
import logging
from typing import Annotated, Optional, List, Union, Literal, Iterable

from pydantic import Field, TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from board_document import DocumentModel
from models import Notification, NotificationType, NotificationPriority

logger = logging.getLogger("kanban.notifications")


# ============================================================
# METADATA SCHEMAS
# ============================================================

class InvitationMeta(DocumentModel):
    invitation_id: str
    board_name: str


class InvitationExpiredMeta(DocumentModel):
    invitation_id: str
    board_name: Optional[str] = None


class MemberAddedMeta(DocumentModel):
    board_name: str
    new_member_id: str


class MemberLeftMeta(DocumentModel):
    board_name: str
    member_id: str


class BoardNameMeta(DocumentModel):
    board_name: str


class BoardChanges(DocumentModel):
    name: bool = False
    description: bool = False


class BoardUpdatedMeta(DocumentModel):
    old_name: str
    new_name: str
    changes: BoardChanges


class AssignedMeta(DocumentModel):
    task_id: str
    column_id: Optional[str] = None


class TaskMeta(DocumentModel):
    task_id: str


class MentionMeta(DocumentModel):
    task_id: str
    comment_id: str


# ============================================================
# DESCRIPTORS
# ============================================================

class NotificationEvent(DocumentModel):
    recipient_id: str
    sender_id: Optional[str] = None
    board_id: Optional[str] = None
    message: str

    def to_row(self) -> Notification:
        return Notification(
            recipient_id=self.recipient_id,
            sender_id=self.sender_id,
            board_id=self.board_id,
            type=self.type,
            priority=self.priority,
            message=self.message,
            payload=self.metadata.to_document(),
        )


class BoardInvitationEvent(NotificationEvent):
    type: Literal[NotificationType.BOARD_INVITATION] = NotificationType.BOARD_INVITATION
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: InvitationMeta


class InvitationDeclinedEvent(NotificationEvent):
    type: Literal[NotificationType.INVITATION_DECLINED] = NotificationType.INVITATION_DECLINED
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: InvitationMeta


class InvitationExpiredEvent(NotificationEvent):
    type: Literal[NotificationType.INVITATION_EXPIRED] = NotificationType.INVITATION_EXPIRED
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: InvitationExpiredMeta


class MemberAddedEvent(NotificationEvent):
    type: Literal[NotificationType.MEMBER_ADDED] = NotificationType.MEMBER_ADDED
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: MemberAddedMeta


class MemberLeftEvent(NotificationEvent):
    type: Literal[NotificationType.MEMBER_LEFT] = NotificationType.MEMBER_LEFT
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: MemberLeftMeta


class MemberRemovedEvent(NotificationEvent):
    type: Literal[NotificationType.MEMBER_REMOVED] = NotificationType.MEMBER_REMOVED
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: BoardNameMeta


class BoardUpdatedEvent(NotificationEvent):
    type: Literal[NotificationType.BOARD_UPDATED] = NotificationType.BOARD_UPDATED
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: BoardUpdatedMeta


class BoardDeletedEvent(NotificationEvent):
    type: Literal[NotificationType.BOARD_DELETED] = NotificationType.BOARD_DELETED
    priority: NotificationPriority = NotificationPriority.HIGH
    metadata: BoardNameMeta


class AssignedEvent(NotificationEvent):
    type: Literal[NotificationType.ASSIGNED] = NotificationType.ASSIGNED
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: AssignedMeta


class TaskCompletedEvent(NotificationEvent):
    type: Literal[NotificationType.TASK_COMPLETED] = NotificationType.TASK_COMPLETED
    priority: NotificationPriority = NotificationPriority.LOW
    metadata: TaskMeta


class MentionedEvent(NotificationEvent):
    type: Literal[NotificationType.MENTIONED] = NotificationType.MENTIONED
    priority: NotificationPriority = NotificationPriority.MEDIUM
    metadata: MentionMeta


NotificationDescriptor = Annotated[
    Union[
        BoardInvitationEvent,
        InvitationDeclinedEvent,
        InvitationExpiredEvent,
        MemberAddedEvent,
        MemberLeftEvent,
        MemberRemovedEvent,
        BoardUpdatedEvent,
        BoardDeletedEvent,
        AssignedEvent,
        TaskCompletedEvent,
        MentionedEvent,
    ],
    Field(discriminator="type"),
]

_descriptor_adapter = TypeAdapter(NotificationDescriptor)


def descriptor_from_row(row: Notification) -> NotificationEvent:
    """Rebuild the typed descriptor for a stored notification (validates its metadata)"""
    return _descriptor_adapter.validate_python({
        "recipientId": row.recipient_id,
        "senderId": row.sender_id,
        "boardId": row.board_id,
        "message": row.message,
        "type": NotificationType(row.type),
        "priority": NotificationPriority(row.priority),
        "metadata": row.payload or {},
    })


# ============================================================
# SINK
# ============================================================

class NotificationSink:
    """Append-only notification writer used after a mutation has committed"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def emit(self, events: Iterable[NotificationEvent]) -> List[Notification]:
        created = []
        for event in events:
            try:
                row = event.to_row()
                self.db.add(row)
                await self.db.commit()
                created.append(row)
            except Exception:
                await self.db.rollback()
                logger.exception(
                    f"Failed to create {event.type.value} notification for user {event.recipient_id}"
                )
        if created:
            logger.debug(f"Created {len(created)} notification(s)")
        return created
