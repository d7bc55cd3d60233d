# routers/boards.py: Boards, invitations and membership
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, resolve_users, CurrentUser
from board_service import BoardService, get_board_service
from database import get_db_session
from invitation_service import BoardInvitationService, get_invitation_service
from kanban_schemas import (
    BoardCreate, BoardUpdate, BoardOut, InviteRequest, InvitationResponse, InvitationOut,
    InviteResult, RespondResult,
    board_out, boards_out, invitations_out, invitation_ref, notifications_out,
)

router = APIRouter(prefix="/api/boards", tags=["Boards"])


# ============================================================
# BOARDS
# ============================================================

@router.post("", response_model=BoardOut, status_code=201)
async def create_board(
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a board; the three default columns are added when none are supplied"""
    columns = [c.to_column() for c in data.columns] if data.columns else None
    board = await service.create_board(user.id, data.name, data.description, columns)
    return await board_out(db, board)


@router.get("", response_model=List[BoardOut])
async def list_boards(
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Boards the caller owns or is a member of, newest first"""
    return await boards_out(db, await service.list_boards(user.id))


# ============================================================
# INVITATIONS (declared before /{board_id} so the paths don't collide)
# ============================================================

@router.get("/invitations/received", response_model=List[InvitationOut])
async def received_invitations(
    user: CurrentUser = Depends(get_current_user),
    service: BoardInvitationService = Depends(get_invitation_service),
    db: AsyncSession = Depends(get_db_session),
):
    return await invitations_out(db, await service.list_received(user.id))


@router.post("/invitations/{invitation_id}/respond", response_model=RespondResult)
async def respond_to_invitation(
    invitation_id: str,
    data: InvitationResponse,
    user: CurrentUser = Depends(get_current_user),
    service: BoardInvitationService = Depends(get_invitation_service),
    db: AsyncSession = Depends(get_db_session),
):
    board = await service.respond(invitation_id, user.id, data.accept)
    return RespondResult(board=await board_out(db, board) if board else None, success=True)


# ============================================================
# SINGLE BOARD
# ============================================================

@router.get("/{board_id}", response_model=BoardOut)
async def get_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    return await board_out(db, await service.get_board(board_id, user.id))


@router.put("/{board_id}", response_model=BoardOut)
async def update_board(
    board_id: str,
    data: BoardUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner only; members are notified of the change"""
    board = await service.update_board(board_id, user.id, data.name, data.description)
    return await board_out(db, board)


@router.delete("/{board_id}")
async def delete_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    await service.delete_board(board_id, user.id)
    return {"message": "Board removed"}


# ============================================================
# MEMBERSHIP
# ============================================================

@router.post("/{board_id}/invite", response_model=InviteResult)
async def invite_member(
    board_id: str,
    data: InviteRequest,
    user: CurrentUser = Depends(get_current_user),
    service: BoardInvitationService = Depends(get_invitation_service),
    db: AsyncSession = Depends(get_db_session),
):
    invitation, board, notification = await service.invite(board_id, user.id, data.email)
    inviter = (await resolve_users(db, [user.id]))[user.id]
    notification_out = (await notifications_out(db, [notification]))[0] if notification else None
    return InviteResult(
        invitation=invitation_ref(invitation, board.name, inviter),
        notification=notification_out,
    )


@router.post("/{board_id}/leave")
async def leave_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BoardInvitationService = Depends(get_invitation_service),
):
    await service.leave(board_id, user.id)
    return {"message": "Left the board successfully"}


@router.delete("/{board_id}/members/{member_id}")
async def remove_member(
    board_id: str,
    member_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BoardInvitationService = Depends(get_invitation_service),
):
    await service.remove_member(board_id, user.id, member_id)
    return {"message": "Member removed successfully"}
