# tests/test_notifications.py: Notification listing, read state and the best-effort sink
import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from models import Notification, NotificationType, NotificationPriority
from notification_events import (
    NotificationSink, BoardDeletedEvent, MentionedEvent, BoardNameMeta, MentionMeta, descriptor_from_row,
)
from tests.conftest import get_auth_headers


def _deleted(recipient_id: str, board_name: str = "Old board") -> BoardDeletedEvent:
    return BoardDeletedEvent(
        recipient_id=recipient_id,
        sender_id=None,
        board_id="board-1",
        message=f'Board "{board_name}" has been deleted',
        metadata=BoardNameMeta(board_name=board_name),
    )


def _mentioned(recipient_id: str, sender_id: str) -> MentionedEvent:
    return MentionedEvent(
        recipient_id=recipient_id,
        sender_id=sender_id,
        board_id="board-1",
        message="You were mentioned",
        metadata=MentionMeta(task_id="task-1", comment_id="comment-1"),
    )


# ============================================================
# DESCRIPTORS
# ============================================================

def test_descriptor_defaults_and_row():
    event = _deleted("user-1")
    assert event.type == NotificationType.BOARD_DELETED
    assert event.priority == NotificationPriority.HIGH

    row = event.to_row()
    assert row.payload == {"boardName": "Old board"}
    assert isinstance(descriptor_from_row(row), BoardDeletedEvent)


def test_descriptor_rejects_mismatched_metadata():
    row = _deleted("user-1").to_row()
    row.type = NotificationType.MENTIONED
    with pytest.raises(ValueError):
        descriptor_from_row(row)


# ============================================================
# SINK
# ============================================================

class FlakySession:
    """Stands in for AsyncSession; the first commit fails"""

    def __init__(self):
        self.added = []
        self.commits = 0
        self.rollbacks = 0

    def add(self, row):
        self.added.append(row)

    async def commit(self):
        self.commits += 1
        if self.commits == 1:
            raise OperationalError("INSERT", {}, Exception("database is locked"))

    async def rollback(self):
        self.rollbacks += 1


@pytest.mark.asyncio
async def test_sink_failure_is_isolated_per_recipient():
    session = FlakySession()
    created = await NotificationSink(session).emit([_deleted("user-1"), _deleted("user-2")])

    assert [row.recipient_id for row in created] == ["user-2"]
    assert session.rollbacks == 1
    assert session.commits == 2


@pytest.mark.asyncio
async def test_sink_persists_rows(db_session, owner, member):
    created = await NotificationSink(db_session).emit([_mentioned(member.id, owner.id)])
    assert len(created) == 1
    assert created[0].id
    assert created[0].is_read is False


# ============================================================
# API
# ============================================================

@pytest.mark.asyncio
async def test_list_notifications_paginated(client, db_session, owner, member):
    await NotificationSink(db_session).emit(
        [_deleted(member.id, f"Board {i}") for i in range(3)] + [_mentioned(member.id, owner.id)]
    )

    resp = await client.get("/api/notifications", params={"limit": 3}, headers=get_auth_headers(member))
    assert resp.status_code == 200
    data = resp.json()
    assert data["pagination"] == {"total": 4, "page": 1, "pages": 2}
    assert len(data["notifications"]) == 3

    resp = await client.get("/api/notifications", params={"limit": 3, "page": 2}, headers=get_auth_headers(member))
    assert len(resp.json()["notifications"]) == 1

    resp = await client.get(
        "/api/notifications", params={"type": "MENTIONED"}, headers=get_auth_headers(member)
    )
    mentions = resp.json()["notifications"]
    assert len(mentions) == 1
    assert mentions[0]["sender"]["id"] == owner.id
    assert mentions[0]["metadata"] == {"taskId": "task-1", "commentId": "comment-1"}
    assert mentions[0]["priority"] == "medium"

    resp = await client.get("/api/notifications", headers=get_auth_headers(owner))
    assert resp.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_read_state(client, db_session, owner, member):
    created = await NotificationSink(db_session).emit([_deleted(member.id), _deleted(member.id, "Other")])
    first_id = created[0].id
    headers = get_auth_headers(member)

    resp = await client.get("/api/notifications/unread-count", headers=headers)
    assert resp.json() == {"count": 2}

    resp = await client.patch(f"/api/notifications/{first_id}/read", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["isRead"] is True
    assert resp.json()["readAt"] is not None

    resp = await client.get("/api/notifications", params={"isRead": "false"}, headers=headers)
    assert [n["id"] for n in resp.json()["notifications"]] == [created[1].id]

    resp = await client.patch("/api/notifications/mark-all-read", headers=headers)
    assert resp.json()["marked"] == 1

    resp = await client.get("/api/notifications/unread-count", headers=headers)
    assert resp.json() == {"count": 0}


@pytest.mark.asyncio
async def test_notifications_are_private(client, db_session, owner, member):
    created = await NotificationSink(db_session).emit([_deleted(member.id)])
    notification_id = created[0].id

    resp = await client.patch(f"/api/notifications/{notification_id}/read", headers=get_auth_headers(owner))
    assert resp.status_code == 404
    resp = await client.delete(f"/api/notifications/{notification_id}", headers=get_auth_headers(owner))
    assert resp.status_code == 404

    resp = await client.delete(f"/api/notifications/{notification_id}", headers=get_auth_headers(member))
    assert resp.status_code == 200
    assert resp.json() == {"message": "Notification deleted"}

    remaining = await db_session.execute(select(func.count(Notification.id)).where(Notification.id == notification_id))
    assert remaining.scalar() == 0


@pytest.mark.asyncio
async def test_invalid_page_rejected(client, member):
    resp = await client.get("/api/notifications", params={"page": 0}, headers=get_auth_headers(member))
    assert resp.status_code == 400
