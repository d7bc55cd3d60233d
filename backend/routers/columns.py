# routers/columns.py: Column create/update/delete/reorder within a board
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from board_service import BoardService, get_board_service
from database import get_db_session
from kanban_schemas import ColumnCreate, ColumnUpdate, ColumnReorder, ColumnOut, column_out

router = APIRouter(prefix="/api/boards/{board_id}/columns", tags=["Columns"])


@router.post("", response_model=ColumnOut, status_code=201)
async def create_column(
    board_id: str,
    data: ColumnCreate,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Append a column; a board holds at most 10"""
    column = await service.create_column(board_id, user.id, data.to_column())
    return await column_out(db, column)


# Declared before /{column_id} so "reorder" is not captured as a column id
@router.put("/reorder")
async def reorder_column(
    board_id: str,
    data: ColumnReorder,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    await service.reorder_column(board_id, user.id, data.column_id, data.new_order)
    return {"message": "Column order updated"}


@router.put("/{column_id}", response_model=ColumnOut)
async def update_column(
    board_id: str,
    column_id: str,
    data: ColumnUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
    db: AsyncSession = Depends(get_db_session),
):
    """Update name/type/color/limit; default columns keep their type"""
    column = await service.update_column(board_id, user.id, column_id, data.model_dump(exclude_unset=True))
    return await column_out(db, column)


@router.delete("/{column_id}")
async def delete_column(
    board_id: str,
    column_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: BoardService = Depends(get_board_service),
):
    """Owner only; the column's tasks are deleted with it"""
    await service.delete_column(board_id, user.id, column_id)
    return {"message": "Column deleted"}
