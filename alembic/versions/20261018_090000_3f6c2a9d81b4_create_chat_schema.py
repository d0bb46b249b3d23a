"""Create chat schema: users, profiles, friendships, conversations, messages, notifications

Revision ID: 3f6c2a9d81b4
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f6c2a9d81b4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


GENDER = sa.Enum('male', 'female', 'other', 'prefer_not_to_say', name='gender_type')
FRIENDSHIP_STATUS = sa.Enum('pending', 'accepted', 'blocked', name='friendship_status')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('firebase_uid', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_firebase_uid', 'users', ['firebase_uid'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('gender', GENDER, nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('char_length(bio) <= 160', name='ck_profile_bio_length'),
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)
    op.create_index('ix_profiles_username', 'profiles', ['username'], unique=True)

    op.create_table(
        'friendships',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('requester_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('addressee_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pair_low', sa.Uuid(), nullable=False),
        sa.Column('pair_high', sa.Uuid(), nullable=False),
        sa.Column('status', FRIENDSHIP_STATUS, nullable=False, server_default='pending'),
        *_timestamps(),
        sa.UniqueConstraint('requester_id', 'addressee_id', name='unique_friendship'),
        sa.UniqueConstraint('pair_low', 'pair_high', name='unique_friendship_pair'),
        sa.CheckConstraint('requester_id <> addressee_id', name='ck_friendship_not_self'),
    )
    op.create_index('ix_friendships_requester_id', 'friendships', ['requester_id'])
    op.create_index('ix_friendships_addressee_id', 'friendships', ['addressee_id'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('participant1_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('participant2_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pair_low', sa.Uuid(), nullable=False),
        sa.Column('pair_high', sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('participant1_id', 'participant2_id', name='unique_conversation'),
        sa.UniqueConstraint('pair_low', 'pair_high', name='unique_conversation_pair'),
    )
    op.create_index('ix_conversations_participant1_id', 'conversations', ['participant1_id'])
    op.create_index('ix_conversations_participant2_id', 'conversations', ['participant2_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'conversation_id', sa.Uuid(),
            sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('sender_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('media_url', sa.Text(), nullable=True),
        sa.Column('media_type', sa.String(16), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("media_type IN ('image', 'video')", name='ck_message_media_type'),
    )
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('from_user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column(
            'friendship_id', sa.Uuid(),
            sa.ForeignKey('friendships.id', ondelete='CASCADE'), nullable=True
        ),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("type IN ('friend_request')", name='ck_notification_type'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_friendship_id', 'notifications', ['friendship_id'])

    # "Touch" trigger: advance updated_at on every update of the row
    op.execute("""
        CREATE OR REPLACE FUNCTION touch_updated_at() RETURNS trigger AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in ('users', 'profiles', 'friendships', 'conversations'):
        op.execute(
            f"CREATE TRIGGER {table}_touch_updated_at BEFORE UPDATE ON {table} "
            f"FOR EACH ROW EXECUTE FUNCTION touch_updated_at()"
        )


def downgrade() -> None:
    for table in ('conversations', 'friendships', 'profiles', 'users'):
        op.execute(f"DROP TRIGGER IF EXISTS {table}_touch_updated_at ON {table}")
    op.execute("DROP FUNCTION IF EXISTS touch_updated_at()")

    op.drop_table('notifications')
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('friendships')
    op.drop_table('profiles')
    op.drop_table('users')

    FRIENDSHIP_STATUS.drop(op.get_bind(), checkfirst=True)
    GENDER.drop(op.get_bind(), checkfirst=True)
