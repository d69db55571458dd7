"""Add English translation fields to posts and categories

Revision ID: 8e2d41c6a9f3
Revises: 3f1c9a2b7d40
Create Date: 2026-10-08

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8e2d41c6a9f3"
down_revision: Union[str, None] = "3f1c9a2b7d40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # posts: 번역 파이프라인 결과 저장
    op.add_column("posts", sa.Column("title_en", sa.String(length=255), nullable=True))
    op.add_column("posts", sa.Column("slug_en", sa.String(length=300), nullable=True))
    op.add_column("posts", sa.Column("excerpt_en", sa.Text(), nullable=True))
    op.add_column("posts", sa.Column("content_en", sa.Text(), nullable=True))
    op.add_column("posts", sa.Column("translated_at", sa.DateTime(timezone=True), nullable=True))
    op.create_index(op.f("ix_posts_slug_en"), "posts", ["slug_en"], unique=True)

    # categories
    op.add_column("categories", sa.Column("name_en", sa.String(length=100), nullable=True))
    op.add_column("categories", sa.Column("description_en", sa.Text(), nullable=True))


def downgrade() -> None:
    op.drop_column("categories", "description_en")
    op.drop_column("categories", "name_en")

    op.drop_index(op.f("ix_posts_slug_en"), table_name="posts")
    op.drop_column("posts", "translated_at")
    op.drop_column("posts", "content_en")
    op.drop_column("posts", "excerpt_en")
    op.drop_column("posts", "slug_en")
    op.drop_column("posts", "title_en")
