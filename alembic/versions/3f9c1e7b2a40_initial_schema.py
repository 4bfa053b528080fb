"""initial_schema

Revision ID: 3f9c1e7b2a40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1e7b2a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id',           sa.String(length=36),        nullable=False),
        sa.Column('username',     sa.String(length=64),        nullable=False),
        sa.Column('display_name', sa.String(length=128),       nullable=False),
        sa.Column('is_admin',     sa.Boolean(),                nullable=False),
        sa.Column('created_at',   sa.DateTime(timezone=True),  nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'tags',
        sa.Column('id',         sa.String(length=36),       nullable=False),
        sa.Column('name',       sa.String(length=64),       nullable=False),
        sa.Column('color',      sa.String(length=16),       nullable=False),
        sa.Column('is_system',  sa.Boolean(),               nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tags_name', 'tags', ['name'], unique=True)

    op.create_table(
        'permissions',
        sa.Column('id',          sa.String(length=36),       nullable=False),
        sa.Column('name',        sa.String(length=64),       nullable=False),
        sa.Column('description', sa.String(length=255),      nullable=False),
        sa.Column('category',    sa.String(length=32),       nullable=False),
        sa.Column('created_at',  sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'], unique=True)

    op.create_table(
        'tag_permissions',
        sa.Column('id',            sa.String(length=36),       nullable=False),
        sa.Column('tag_id',        sa.String(length=36),       nullable=False),
        sa.Column('permission_id', sa.String(length=36),       nullable=False),
        sa.Column('created_at',    sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tag_id'],        ['tags.id'],        ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tag_id', 'permission_id', name='uq_tag_permissions_pair'),
    )
    op.create_index('ix_tag_permissions_tag_id',        'tag_permissions', ['tag_id'],        unique=False)
    op.create_index('ix_tag_permissions_permission_id', 'tag_permissions', ['permission_id'], unique=False)

    op.create_table(
        'user_tags',
        sa.Column('id',      sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('tag_id',  sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tag_id'],  ['tags.id'],  ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'tag_id', name='uq_user_tags_pair'),
    )
    op.create_index('ix_user_tags_user_id', 'user_tags', ['user_id'], unique=False)
    op.create_index('ix_user_tags_tag_id',  'user_tags', ['tag_id'],  unique=False)

    op.create_table(
        'wiki_pages',
        sa.Column('id',               sa.String(length=36),       nullable=False),
        sa.Column('title',            sa.String(length=512),      nullable=False),
        sa.Column('content',          sa.Text(),                  nullable=False),
        sa.Column('author_id',        sa.String(length=36),       nullable=True),
        sa.Column('is_protected',     sa.Boolean(),               nullable=False),
        sa.Column('comments_enabled', sa.Boolean(),               nullable=False),
        sa.Column('icon',             sa.String(length=64),       nullable=True),
        sa.Column('created_at',       sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at',       sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['author_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_wiki_pages_title', 'wiki_pages', ['title'], unique=False)

    op.create_table(
        'wiki_page_history',
        sa.Column('id',         sa.String(length=36),       nullable=False),
        sa.Column('page_id',    sa.String(length=36),       nullable=False),
        sa.Column('seq',        sa.Integer(),               nullable=False),
        sa.Column('title',      sa.String(length=512),      nullable=False),
        sa.Column('content',    sa.Text(),                  nullable=False),
        sa.Column('changed_by', sa.String(length=36),       nullable=True),
        sa.Column('reason',     sa.String(length=512),      nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['page_id'],    ['wiki_pages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('page_id', 'seq', name='uq_wiki_page_history_page_seq'),
    )
    op.create_index('ix_wiki_page_history_page_id',     'wiki_page_history', ['page_id'],        unique=False)
    op.create_index('ix_wiki_page_history_page_latest', 'wiki_page_history', ['page_id', 'seq'], unique=False)

    op.create_table(
        'comments',
        sa.Column('id',         sa.String(length=36),       nullable=False),
        sa.Column('page_id',    sa.String(length=36),       nullable=False),
        sa.Column('user_id',    sa.String(length=36),       nullable=True),
        sa.Column('content',    sa.Text(),                  nullable=False),
        sa.Column('parent_id',  sa.String(length=36),       nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['page_id'],   ['wiki_pages.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'],   ['users.id']),
        sa.ForeignKeyConstraint(['parent_id'], ['comments.id'],   ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_comments_page_id',      'comments', ['page_id'],               unique=False)
    op.create_index('ix_comments_parent_id',    'comments', ['parent_id'],             unique=False)
    op.create_index('ix_comments_page_created', 'comments', ['page_id', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('comments')
    op.drop_table('wiki_page_history')
    op.drop_table('wiki_pages')
    op.drop_table('user_tags')
    op.drop_table('tag_permissions')
    op.drop_table('permissions')
    op.drop_table('tags')
    op.drop_table('users')
