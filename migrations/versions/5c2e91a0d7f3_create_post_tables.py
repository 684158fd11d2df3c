"""create post tables

Revision ID: 5c2e91a0d7f3
Revises:
Create Date: 2026-10-17 09:12:44.318204

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e91a0d7f3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create posts, their tag index, slug reservations, nodes and users."""
    op.create_table(
        "post",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("slug", sa.String(length=60), nullable=True),
        sa.Column("title", sa.String(length=140), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created", sa.BigInteger(), nullable=False),
        sa.Column("published", sa.BigInteger(), nullable=False),
        sa.Column("author", sa.String(length=36), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("content", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_post_slug"), "post", ["slug"], unique=False)
    op.create_index(op.f("ix_post_created"), "post", ["created"], unique=False)
    op.create_index(op.f("ix_post_published"), "post", ["published"], unique=False)
    op.create_index(op.f("ix_post_author"), "post", ["author"], unique=False)

    op.create_table(
        "post_tag",
        sa.Column("post_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("tag", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["post.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "position"),
    )
    op.create_index(op.f("ix_post_tag_tag"), "post_tag", ["tag"], unique=False)

    op.create_table(
        "post_slug",
        sa.Column("namespace", sa.String(length=64), nullable=False),
        sa.Column("value", sa.String(length=60), nullable=False),
        sa.PrimaryKeyConstraint("namespace", "value"),
    )

    op.create_table(
        "node",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("content", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "app_user",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("auth", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_table("app_user")
    op.drop_table("node")
    op.drop_table("post_slug")
    op.drop_index(op.f("ix_post_tag_tag"), table_name="post_tag")
    op.drop_table("post_tag")
    op.drop_index(op.f("ix_post_author"), table_name="post")
    op.drop_index(op.f("ix_post_published"), table_name="post")
    op.drop_index(op.f("ix_post_created"), table_name="post")
    op.drop_index(op.f("ix_post_slug"), table_name="post")
    op.drop_table("post")
