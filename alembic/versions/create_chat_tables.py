"""create chat tables

Revision ID: chat_001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = 'chat_001'
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def _create_base_indexes(table):
    for column in ('id', 'created_at', 'is_deleted'):
        op.create_index(f'ix_{table}_{column}', table, [column])


def upgrade() -> None:
    # Collaborator records; owned by the user and course services
    op.create_table('users',
        *_base_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('avatar', sa.String(length=500), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.CheckConstraint("role IN ('student', 'instructor')", name='ck_users_role'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    _create_base_indexes('users')

    op.create_table('courses',
        *_base_columns(),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('creator_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_courses_creator_id', 'courses', ['creator_id'])
    _create_base_indexes('courses')

    op.create_table('chats',
        *_base_columns(),
        sa.Column('course_id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('instructor_id', sa.Uuid(), nullable=False),
        sa.Column('message_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['instructor_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('course_id', 'student_id', 'instructor_id', name='uq_chat_participants')
    )
    op.create_index('ix_chats_course_id', 'chats', ['course_id'])
    op.create_index('ix_chats_student_id', 'chats', ['student_id'])
    op.create_index('ix_chats_instructor_id', 'chats', ['instructor_id'])
    op.create_index('ix_chats_last_message_at', 'chats', ['last_message_at'])
    _create_base_indexes('chats')

    op.create_table('messages',
        *_base_columns(),
        sa.Column('chat_id', sa.Uuid(), nullable=False),
        sa.Column('sender_id', sa.Uuid(), nullable=False),
        sa.Column('receiver_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_chat_id', 'messages', ['chat_id'])
    op.create_index('idx_message_chat_order', 'messages', ['chat_id', 'timestamp', 'sequence'])
    op.create_index('idx_message_unread', 'messages', ['receiver_id', 'read'])
    _create_base_indexes('messages')


def downgrade() -> None:
    op.drop_table('messages')
    op.drop_table('chats')
    op.drop_table('courses')
    op.drop_table('users')
