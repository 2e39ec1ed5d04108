"""SQL Content Repository — ContentRepository implementation over the content_items read model.

Invariants:
    - Read-only: never adds, updates or deletes ContentItem rows
    - Returns core ContentNode snapshots, never ORM instances
    - Datetimes are always timezone-aware (UTC assumed when the driver drops tzinfo)
    - list_candidates never returns the source itself

Design Decisions:
    - Candidate pool = same creator when known: relationships are between one creator's posts
    - Proximity ordering in Python after a bounded fetch: portable across sqlite/postgres
"""

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from familygraph.core.domain_types import ContentId, ContentNode, MetricsSnapshot
from familygraph.models.content_item import ContentItem

logger = logging.getLogger(__name__)

_CANDIDATE_POOL_FACTOR = 4


class SqlContentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, content_id: ContentId) -> ContentNode | None:
        item = await self.db.get(ContentItem, content_id)
        return to_content_node(item) if item else None

    async def list_by_ids(self, content_ids: Sequence[ContentId]) -> list[ContentNode]:
        if not content_ids:
            return []
        result = await self.db.execute(
            select(ContentItem).where(ContentItem.id.in_(list(content_ids)))
        )
        return [to_content_node(item) for item in result.scalars().all()]

    async def list_candidates(self, source: ContentNode, limit: int) -> list[ContentNode]:
        """Other items of the same creator, closest publish date first."""
        stmt = select(ContentItem).where(ContentItem.id != source.id)
        if source.creator_id is not None:
            stmt = stmt.where(ContentItem.creator_id == source.creator_id)
        stmt = stmt.order_by(ContentItem.published_at.desc()).limit(
            limit * _CANDIDATE_POOL_FACTOR,
        )
        result = await self.db.execute(stmt)
        nodes = [to_content_node(item) for item in result.scalars().all()]
        nodes.sort(key=lambda n: (_distance(source, n), str(n.id)))
        logger.debug(
            "Loaded suggestion candidates",
            extra={"content_id": source.id, "candidate_count": len(nodes[:limit])},
        )
        return nodes[:limit]


def to_content_node(item: ContentItem) -> ContentNode:
    return ContentNode(
        id=ContentId(item.id),
        platform=item.platform,
        content_type=item.content_type,
        metrics=MetricsSnapshot(
            views=item.views or 0,
            engagements=item.engagements or 0,
            shares=item.shares or 0,
            likes=item.likes or 0,
            comments=item.comments or 0,
        ),
        published_at=_aware(item.published_at),
        creator_id=item.creator_id,
        title=item.title or "",
        description=item.description or "",
        url=item.url,
        linked_content_ids=tuple(_parse_ids(item.linked_content_ids)),
    )


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_ids(raw: list | None) -> list[ContentId]:
    ids = []
    for value in raw or []:
        try:
            ids.append(ContentId(UUID(str(value))))
        except ValueError:
            logger.warning(f"Ignoring malformed linked content id: {value!r}")
    return ids


def _distance(source: ContentNode, candidate: ContentNode) -> float:
    if source.published_at is None or candidate.published_at is None:
        return float("inf")
    return abs((candidate.published_at - source.published_at).total_seconds())
