"""Initial schema — content_relationships (edges + path index), content_items (read model).

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "content_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("creator_id", UUID(as_uuid=True), nullable=True),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(500), nullable=False, server_default=""),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("url", sa.String(1000), nullable=True),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("engagements", sa.Integer, nullable=False, server_default="0"),
        sa.Column("shares", sa.Integer, nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("linked_content_ids", sa.JSON, nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_content_items_creator_id", "content_items", ["creator_id"])

    op.create_table(
        "content_relationships",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("source_content_id", UUID(as_uuid=True), nullable=False),
        sa.Column("target_content_id", UUID(as_uuid=True), nullable=False),
        sa.Column("relationship_type", sa.String(20), nullable=False),
        sa.Column("confidence", sa.Float, nullable=False, server_default="1.0"),
        sa.Column("creation_method", sa.String(20), nullable=False, server_default="manual"),
        sa.Column("path", sa.String(2048), nullable=True),
        sa.Column("depth", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "source_content_id", "target_content_id",
            name="uq_content_relationships_source_target",
        ),
    )
    op.create_index(
        "ix_content_relationships_source", "content_relationships", ["source_content_id"],
    )
    op.create_index(
        "ix_content_relationships_target", "content_relationships", ["target_content_id"],
    )
    op.create_index(
        "ix_content_relationships_path", "content_relationships", ["path"],
        postgresql_ops={"path": "text_pattern_ops"},
    )


def downgrade() -> None:
    op.drop_index("ix_content_relationships_path", table_name="content_relationships")
    op.drop_index("ix_content_relationships_target", table_name="content_relationships")
    op.drop_index("ix_content_relationships_source", table_name="content_relationships")
    op.drop_table("content_relationships")
    op.drop_index("ix_content_items_creator_id", table_name="content_items")
    op.drop_table("content_items")
