# board_service.py: Board and column mutations with role checks and fan-out
"""
Each mutation follows the same cycle: load the aggregate, authorise the caller
against owner/member roles, apply an ordering-engine operation, persist the
whole board in one commit, then hand notification descriptors to the sink.
"""
import logging
from typing import Optional, List, Dict, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from board_document import BoardDocument, ColumnDocument, default_columns
from board_store import BoardStore
from database import get_db_session
from kanban_errors import Forbidden, Protected
from notification_events import (
    NotificationSink, BoardUpdatedEvent, BoardDeletedEvent,
    BoardUpdatedMeta, BoardChanges, BoardNameMeta,
)
from ordering_engine import (
    find_column, insert_column, remove_column, reorder_column, update_column_limit,
)
from telemetry import traced_operation

logger = logging.getLogger("kanban.boards")


# ============================================================
# ROLE POLICY
# ============================================================

def ensure_access(board: BoardDocument, user_id: str) -> None:
    """Owner or member"""
    if not board.has_access(user_id):
        raise Forbidden("Access denied")


def ensure_owner(board: BoardDocument, user_id: str) -> None:
    if not board.is_owner(user_id):
        raise Forbidden("Only the board owner can perform this action")


# ============================================================
# SERVICE
# ============================================================

class BoardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = BoardStore(db)
        self.sink = NotificationSink(db)

    # --- Boards ---

    async def create_board(
        self,
        owner_id: str,
        name: str,
        description: Optional[str] = None,
        columns: Optional[List[ColumnDocument]] = None,
    ) -> BoardDocument:
        with traced_operation("board.create", user_id=owner_id):
            board = BoardDocument(name=name, description=description, owner=owner_id)
            if columns:
                for column in columns:
                    insert_column(board, column)
            else:
                board.columns = default_columns()

            self.store.add(board)
            await self.db.commit()
            logger.info(f"Board created: {board.id} '{board.name}' by {owner_id}")
            return board

    async def list_boards(self, user_id: str) -> List[BoardDocument]:
        return await self.store.list_for_user(user_id)

    async def get_board(self, board_id: str, user_id: str) -> BoardDocument:
        board = await self.store.load(board_id)
        ensure_access(board, user_id)
        return board

    async def update_board(
        self,
        board_id: str,
        user_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BoardDocument:
        with traced_operation("board.update", board_id=board_id, user_id=user_id):
            board = await self.store.load(board_id)
            ensure_owner(board, user_id)

            old_name = board.name
            changes = BoardChanges(
                name=name is not None and name != board.name,
                description=description is not None and description != board.description,
            )
            if name is not None:
                board.name = name
            if description is not None:
                board.description = description

            await self.store.save(board)
            await self.db.commit()

            events = [
                BoardUpdatedEvent(
                    recipient_id=member_id,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'Board "{old_name}" has been updated',
                    metadata=BoardUpdatedMeta(old_name=old_name, new_name=board.name, changes=changes),
                )
                for member_id in board.members_except(user_id)
            ]
            await self.sink.emit(events)
            return board

    async def delete_board(self, board_id: str, user_id: str) -> None:
        with traced_operation("board.delete", board_id=board_id, user_id=user_id):
            board = await self.store.load(board_id)
            ensure_owner(board, user_id)

            events = [
                BoardDeletedEvent(
                    recipient_id=member_id,
                    sender_id=user_id,
                    board_id=board.id,
                    message=f'Board "{board.name}" has been deleted',
                    metadata=BoardNameMeta(board_name=board.name),
                )
                for member_id in board.members_except(user_id)
            ]

            await self.store.delete(board.id)
            await self.db.commit()
            logger.info(f"Board deleted: {board.id} by {user_id}, notifying {len(events)} member(s)")
            await self.sink.emit(events)

    # --- Columns ---

    async def create_column(self, board_id: str, user_id: str, column: ColumnDocument) -> ColumnDocument:
        with traced_operation("column.create", board_id=board_id, user_id=user_id):
            board = await self.store.load(board_id)
            ensure_access(board, user_id)
            insert_column(board, column)
            await self.store.save(board)
            await self.db.commit()
            return column

    async def update_column(
        self,
        board_id: str,
        user_id: str,
        column_id: str,
        updates: Dict[str, Any],
    ) -> ColumnDocument:
        """Apply name/type/color/limit; only keys present in ``updates`` are touched"""
        with traced_operation("column.update", board_id=board_id, column_id=column_id):
            board = await self.store.load(board_id)
            ensure_access(board, user_id)
            column = find_column(board, column_id)

            new_type = updates.get("type")
            if column.is_default and new_type is not None and new_type != column.type:
                raise Protected("Default column type cannot be changed")
            if "limit" in updates:
                update_column_limit(column, updates["limit"])

            if updates.get("name") is not None:
                column.name = updates["name"]
            if new_type is not None:
                column.type = new_type
            if updates.get("color") is not None:
                column.color = updates["color"]

            await self.store.save(board)
            await self.db.commit()
            return column

    async def delete_column(self, board_id: str, user_id: str, column_id: str) -> None:
        with traced_operation("column.delete", board_id=board_id, column_id=column_id):
            board = await self.store.load(board_id)
            ensure_owner(board, user_id)
            removed = remove_column(board, column_id)
            await self.store.save(board)
            await self.db.commit()
            logger.info(f"Column deleted: {removed.id} from board {board_id} ({len(removed.tasks)} task(s) dropped)")

    async def reorder_column(self, board_id: str, user_id: str, column_id: str, new_order: int) -> BoardDocument:
        with traced_operation("column.reorder", board_id=board_id, column_id=column_id):
            board = await self.store.load(board_id)
            ensure_access(board, user_id)
            reorder_column(board, column_id, new_order)
            await self.store.save(board)
            await self.db.commit()
            return board


def get_board_service(db: AsyncSession = Depends(get_db_session)) -> BoardService:
    return BoardService(db)
