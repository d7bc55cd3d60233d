# invitation_service.py: Board invitation lifecycle and membership changes
"""
Invitation states:
  Pending   is_accepted=False, expires_at in the future
  Accepted  is_accepted=True, record kept (terminal)
  Declined  record deleted (terminal)
  Expired   record deleted by the sweep (terminal)
"""
import os
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_user_by_email
from board_document import BoardDocument
from board_service import ensure_owner
from board_store import BoardStore
from database import get_db_session
from kanban_errors import (
    NotFound, SelfInvite, AlreadyMember, DuplicateInvitation, OwnerCannotLeave, NotAMember,
)
from models import Board, BoardInvitation, Notification, utcnow
from notification_events import (
    NotificationSink, NotificationEvent,
    BoardInvitationEvent, InvitationDeclinedEvent, InvitationExpiredEvent,
    MemberAddedEvent, MemberLeftEvent, MemberRemovedEvent,
    InvitationMeta, InvitationExpiredMeta, MemberAddedMeta, MemberLeftMeta, BoardNameMeta,
)
from telemetry import traced_operation

logger = logging.getLogger("kanban.invitations")

INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "7"))


class BoardInvitationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = BoardStore(db)
        self.sink = NotificationSink(db)

    async def _find_pending(self, now: datetime, **criteria) -> Optional[BoardInvitation]:
        stmt = select(BoardInvitation).where(
            BoardInvitation.is_accepted.is_(False),
            BoardInvitation.expires_at > now,
            *[getattr(BoardInvitation, column) == value for column, value in criteria.items()],
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    # ============================================================
    # INVITE / RESPOND
    # ============================================================

    async def invite(
        self, board_id: str, inviter_id: str, email: str,
    ) -> Tuple[BoardInvitation, BoardDocument, Optional[Notification]]:
        with traced_operation("invitation.create", board_id=board_id, user_id=inviter_id):
            board = await self.store.load(board_id)
            ensure_owner(board, inviter_id)

            invited = await get_user_by_email(self.db, email)
            if invited is None:
                raise NotFound("User not found")
            if invited.id == inviter_id:
                raise SelfInvite()
            if board.has_access(invited.id):
                raise AlreadyMember()

            now = utcnow()
            if await self._find_pending(now, board_id=board.id, invited_user_id=invited.id):
                raise DuplicateInvitation()

            invitation = BoardInvitation(
                board_id=board.id,
                invited_by=inviter_id,
                invited_user_id=invited.id,
                is_accepted=False,
                expires_at=now + timedelta(days=INVITATION_TTL_DAYS),
                created_at=now,
                updated_at=now,
            )
            self.db.add(invitation)
            await self.db.commit()
            logger.info(f"Invitation {invitation.id}: board {board.id} → user {invited.id}")
            # Detach so a sink rollback cannot expire the returned row
            self.db.expunge(invitation)

            created = await self.sink.emit([
                BoardInvitationEvent(
                    recipient_id=invited.id,
                    sender_id=inviter_id,
                    board_id=board.id,
                    message=f'You have been invited to join the board "{board.name}"',
                    metadata=InvitationMeta(invitation_id=invitation.id, board_name=board.name),
                )
            ])
            return invitation, board, (created[0] if created else None)

    async def respond(self, invitation_id: str, user_id: str, accept: bool) -> Optional[BoardDocument]:
        """Accept or decline; returns the joined board on accept, None on decline"""
        with traced_operation("invitation.respond", invitation_id=invitation_id, user_id=user_id):
            invitation = await self._find_pending(utcnow(), id=invitation_id, invited_user_id=user_id)
            if invitation is None:
                raise NotFound("Invitation not found or expired")

            board = await self.store.load(invitation.board_id)
            inviter_id = invitation.invited_by
            events: List[NotificationEvent] = []

            if accept:
                board.add_member(user_id)
                await self.store.save(board)
                invitation.is_accepted = True
                invitation.updated_at = utcnow()
                events.append(MemberAddedEvent(
                    recipient_id=inviter_id,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'A new member has joined your board "{board.name}"',
                    metadata=MemberAddedMeta(board_name=board.name, new_member_id=user_id),
                ))
            else:
                await self.db.delete(invitation)
                events.append(InvitationDeclinedEvent(
                    recipient_id=inviter_id,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'Your invitation to board "{board.name}" was declined',
                    metadata=InvitationMeta(invitation_id=invitation_id, board_name=board.name),
                ))

            await self.db.commit()
            logger.info(f"Invitation {invitation_id} {'accepted' if accept else 'declined'} by {user_id}")
            await self.sink.emit(events)
            return board if accept else None

    async def list_received(self, user_id: str) -> List[Tuple[BoardInvitation, str]]:
        """Pending invitations addressed to the user, newest first, with the board name"""
        stmt = (
            select(BoardInvitation, Board.name)
            .join(Board, Board.id == BoardInvitation.board_id)
            .where(
                BoardInvitation.invited_user_id == user_id,
                BoardInvitation.is_accepted.is_(False),
                BoardInvitation.expires_at > utcnow(),
            )
            .order_by(BoardInvitation.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return [(invitation, board_name) for invitation, board_name in result.all()]

    # ============================================================
    # MEMBERSHIP
    # ============================================================

    async def leave(self, board_id: str, user_id: str) -> None:
        with traced_operation("member.leave", board_id=board_id, user_id=user_id):
            board = await self.store.load(board_id)
            if board.is_owner(user_id):
                raise OwnerCannotLeave()
            if not board.remove_member(user_id):
                raise NotAMember()

            await self.store.save(board)
            await self.db.commit()
            await self.sink.emit([
                MemberLeftEvent(
                    recipient_id=board.owner,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'A member has left your board "{board.name}"',
                    metadata=MemberLeftMeta(board_name=board.name, member_id=user_id),
                )
            ])

    async def remove_member(self, board_id: str, owner_id: str, member_id: str) -> None:
        with traced_operation("member.remove", board_id=board_id, member_id=member_id):
            board = await self.store.load(board_id)
            ensure_owner(board, owner_id)
            if not board.remove_member(member_id):
                raise NotFound("Member not found in board")

            await self.store.save(board)
            await self.db.commit()
            logger.info(f"Member {member_id} removed from board {board.id}")
            await self.sink.emit([
                MemberRemovedEvent(
                    recipient_id=member_id,
                    sender_id=owner_id,
                    board_id=board.id,
                    message=f'You have been removed from the board "{board.name}"',
                    metadata=BoardNameMeta(board_name=board.name),
                )
            ])

    # ============================================================
    # EXPIRY SWEEP
    # ============================================================

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete expired pending invitations, telling each inviter. Returns the count removed."""
        now = now or utcnow()
        stmt = (
            select(BoardInvitation, Board.name)
            .outerjoin(Board, Board.id == BoardInvitation.board_id)
            .where(BoardInvitation.is_accepted.is_(False), BoardInvitation.expires_at < now)
        )
        result = await self.db.execute(stmt)
        expired = result.all()
        if not expired:
            return 0

        events: List[NotificationEvent] = []
        for invitation, board_name in expired:
            events.append(InvitationExpiredEvent(
                recipient_id=invitation.invited_by,
                board_id=invitation.board_id,
                message="Your invitation has expired",
                metadata=InvitationExpiredMeta(invitation_id=invitation.id, board_name=board_name),
            ))
            await self.db.delete(invitation)

        await self.db.commit()
        logger.info(f"Expired invitation sweep removed {len(expired)} invitation(s)")
        await self.sink.emit(events)
        return len(expired)


def get_invitation_service(db: AsyncSession = Depends(get_db_session)) -> BoardInvitationService:
    return BoardInvitationService(db)
