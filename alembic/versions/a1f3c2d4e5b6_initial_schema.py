"""initial_schema

Revision ID: a1f3c2d4e5b6
Revises:
Create Date: 2026-10-17 10:12:41.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f3c2d4e5b6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'user_groups',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('group_name', sa.String(length=255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('uq_user_groups_group_name', 'user_groups', ['group_name'], unique=True)

    op.create_table(
        'permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('uq_permissions_name', 'permissions', ['name'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        _created_at(),
        sa.Column('user_group_id', sa.Uuid(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        # Deleting a group keeps its members, without a group
        sa.ForeignKeyConstraint(['user_group_id'], ['user_groups.id'], name='fk_users_user_group_id', ondelete='SET NULL'),
    )
    op.create_index('uq_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_user_group_id', 'users', ['user_group_id'])

    op.create_table(
        'group_permissions',
        sa.Column('group_id', sa.Uuid(), nullable=False),
        sa.Column('permission_id', sa.Uuid(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('group_id', 'permission_id'),
        sa.ForeignKeyConstraint(['group_id'], ['user_groups.id'], name='fk_group_permissions_group_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name='fk_group_permissions_permission_id', ondelete='CASCADE'),
    )
    op.create_index('ix_group_permissions_permission_id', 'group_permissions', ['permission_id'])

    op.create_table(
        'user_permissions',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('permission_id', sa.Uuid(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('user_id', 'permission_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_user_permissions_user_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name='fk_user_permissions_permission_id', ondelete='CASCADE'),
    )
    op.create_index('ix_user_permissions_permission_id', 'user_permissions', ['permission_id'])

    op.create_table(
        'tweets',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_tweets_user_id', ondelete='CASCADE'),
    )
    op.create_index('ix_tweets_user_id', 'tweets', ['user_id'])

    # Keep updated_at current for writes that bypass the ORM
    op.execute(
        """
        CREATE OR REPLACE FUNCTION tweets_set_updated_at() RETURNS trigger AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
        """
    )
    op.execute(
        """
        CREATE TRIGGER tweets_set_updated_at
        BEFORE UPDATE ON tweets
        FOR EACH ROW EXECUTE FUNCTION tweets_set_updated_at()
        """
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("DROP TRIGGER IF EXISTS tweets_set_updated_at ON tweets")
    op.execute("DROP FUNCTION IF EXISTS tweets_set_updated_at()")

    op.drop_index('ix_tweets_user_id', table_name='tweets')
    op.drop_table('tweets')
    op.drop_index('ix_user_permissions_permission_id', table_name='user_permissions')
    op.drop_table('user_permissions')
    op.drop_index('ix_group_permissions_permission_id', table_name='group_permissions')
    op.drop_table('group_permissions')
    op.drop_index('ix_users_user_group_id', table_name='users')
    op.drop_index('uq_users_username', table_name='users')
    op.drop_table('users')
    op.drop_index('uq_permissions_name', table_name='permissions')
    op.drop_table('permissions')
    op.drop_index('uq_user_groups_group_name', table_name='user_groups')
    op.drop_table('user_groups')
