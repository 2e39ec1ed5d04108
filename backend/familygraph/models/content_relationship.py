"""ContentRelationship ORM — typed edges of the content relationship DAG plus the path index.

Invariants:
    - Connects two content items (source_content_id -> target_content_id)
    - relationship_type is a RelationshipType value; creation_method a CreationMethod value
    - At most one row per (source_content_id, target_content_id)
    - path/depth are set only on PARENT rows and describe the TARGET node's ancestry;
      a node without an incoming PARENT row is a family root

Design Decisions:
    - No FK to content: content is owned by an external repository and may disappear
      (GraphBuilder reports such nodes as inactive instead of cascading)
    - path index with text_pattern_ops on PostgreSQL: LIKE '<prefix>.%' becomes a range scan
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Float, Integer, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from familygraph.db.base import Base


class ContentRelationship(Base):
    """Typed edge in the content relationship DAG."""
    __tablename__ = "content_relationships"
    __table_args__ = (
        UniqueConstraint(
            "source_content_id", "target_content_id",
            name="uq_content_relationships_source_target",
        ),
        Index("ix_content_relationships_source", "source_content_id"),
        Index("ix_content_relationships_target", "target_content_id"),
        Index(
            "ix_content_relationships_path", "path",
            postgresql_ops={"path": "text_pattern_ops"},
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    source_content_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    target_content_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False,
    )
    relationship_type: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    creation_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="manual",
    )
    path: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    depth: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
