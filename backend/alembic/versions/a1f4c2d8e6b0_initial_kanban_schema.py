"""Initial Kanban schema (users, boards, invitations, notifications, task activity)

Revision ID: a1f4c2d8e6b0
Revises:
Create Date: 2026-10-19T09:12:44.318205
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = 'a1f4c2d8e6b0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOTIFICATION_TYPES = (
    'BOARD_INVITATION', 'INVITATION_DECLINED', 'INVITATION_EXPIRED',
    'MEMBER_ADDED', 'MEMBER_LEFT', 'MEMBER_REMOVED',
    'BOARD_UPDATED', 'BOARD_DELETED',
    'ASSIGNED', 'TASK_COMPLETED', 'MENTIONED',
)

ACTIVITY_TYPES = (
    'CREATED', 'UPDATED', 'DELETED', 'MOVED', 'ASSIGNED', 'UNASSIGNED',
    'COMPLETED', 'COMMENT_ADDED', 'COMMENT_UPDATED', 'COMMENT_DELETED',
)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # --- boards (columns/tasks/comments embedded as JSON) ---
    op.create_table(
        'boards',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('members', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('columns', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_board_owner', 'boards', ['owner_id'])
    op.create_index('ix_boards_created_at', 'boards', ['created_at'])

    # --- board_invitations ---
    op.create_table(
        'board_invitations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('board_id', sa.String(), sa.ForeignKey('boards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invited_by', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('invited_user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_accepted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_board_invitations_board_id', 'board_invitations', ['board_id'])
    op.create_index('ix_board_invitations_invited_user_id', 'board_invitations', ['invited_user_id'])
    op.create_index('ix_board_invitations_expires_at', 'board_invitations', ['expires_at'])
    op.create_index('idx_invitation_board_user', 'board_invitations', ['board_id', 'invited_user_id'])

    # --- notifications ---
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('recipient_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sender_id', sa.String(), nullable=True),
        sa.Column('board_id', sa.String(), nullable=True),
        sa.Column('type', sa.Enum(*NOTIFICATION_TYPES, name='notificationtype'), nullable=False),
        sa.Column('priority', sa.Enum('HIGH', 'MEDIUM', 'LOW', name='notificationpriority'), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_board_id', 'notifications', ['board_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('idx_notification_recipient_read', 'notifications', ['recipient_id', 'is_read'])

    # --- task_activities ---
    op.create_table(
        'task_activities',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('board_id', sa.String(), nullable=False),
        sa.Column('task_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('type', sa.Enum(*ACTIVITY_TYPES, name='taskactivitytype'), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('metadata', sa.JSON(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_task_activities_board_id', 'task_activities', ['board_id'])
    op.create_index('ix_task_activities_task_id', 'task_activities', ['task_id'])
    op.create_index('idx_activity_task_time', 'task_activities', ['task_id', 'created_at'])


def downgrade() -> None:
    op.drop_table('task_activities')
    op.drop_table('notifications')
    op.drop_table('board_invitations')
    op.drop_table('boards')
    op.drop_table('users')
    sa.Enum(name='taskactivitytype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='notificationpriority').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='notificationtype').drop(op.get_bind(), checkfirst=True)
