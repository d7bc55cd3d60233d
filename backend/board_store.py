# board_store.py: Load and persist whole board aggregates
from typing import List, Optional

from sqlalchemy import select, delete, or_, cast, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import flag_modified

from board_document import BoardDocument
from kanban_errors import NotFound
from models import Board, BoardInvitation, TaskActivity, utcnow


class BoardStore:
    """Maps the `boards` row to a BoardDocument and back.

    Nothing here commits: the calling service owns the transaction so a board
    save and its activity-log rows land in the same commit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_row(self, board_id: str) -> Optional[Board]:
        result = await self.db.execute(select(Board).where(Board.id == board_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _to_document(row: Board) -> BoardDocument:
        return BoardDocument.model_validate({
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "owner": row.owner_id,
            "members": list(row.members or []),
            "columns": list(row.columns or []),
            "createdAt": row.created_at,
            "updatedAt": row.updated_at,
        })

    async def load(self, board_id: str) -> BoardDocument:
        row = await self._get_row(board_id)
        if row is None:
            raise NotFound("Board not found")
        return self._to_document(row)

    async def list_for_user(self, user_id: str) -> List[BoardDocument]:
        """Boards the user owns or is a member of, newest first"""
        stmt = (
            select(Board)
            .where(or_(
                Board.owner_id == user_id,
                cast(Board.members, String).contains(f'"{user_id}"'),
            ))
            .order_by(Board.created_at.desc())
        )
        result = await self.db.execute(stmt)
        documents = [self._to_document(row) for row in result.scalars().all()]
        return [d for d in documents if d.has_access(user_id)]

    def add(self, document: BoardDocument) -> None:
        now = utcnow()
        document.created_at = document.created_at or now
        document.updated_at = now
        self.db.add(Board(
            id=document.id,
            name=document.name,
            description=document.description,
            owner_id=document.owner,
            members=list(document.members),
            columns=[c.to_document() for c in document.columns],
            created_at=document.created_at,
            updated_at=document.updated_at,
        ))

    async def save(self, document: BoardDocument) -> None:
        """Rewrite the whole aggregate row; owner and id are immutable"""
        row = await self._get_row(document.id)
        if row is None:
            raise NotFound("Board not found")
        document.updated_at = utcnow()
        row.name = document.name
        row.description = document.description
        row.members = list(document.members)
        row.columns = [c.to_document() for c in document.columns]
        row.updated_at = document.updated_at
        flag_modified(row, "members")
        flag_modified(row, "columns")

    async def delete(self, board_id: str) -> None:
        """Remove the board together with its invitations and task activity"""
        await self.db.execute(delete(BoardInvitation).where(BoardInvitation.board_id == board_id))
        await self.db.execute(delete(TaskActivity).where(TaskActivity.board_id == board_id))
        await self.db.execute(delete(Board).where(Board.id == board_id))
