"""Family Metrics Aggregation — rolls normalized per-node metrics up to family statistics.

Invariants:
    - All functions are PURE and deterministic: same nodes in, bit-identical FamilyMetrics out
      (nodes summed in content-id order, breakdown keys sorted)
    - total_views == sum(node.normalized_views for node in result.nodes)
    - Inactive nodes (content removed upstream) are counted but contribute no metrics
    - audience_overlap is an ESTIMATE from configured platform-pair percentages;
      is_estimate is always True and the method is named in the payload

Design Decisions:
    - Per-platform audience approximated by that platform's normalized views:
      cross-platform user identity is unavailable
    - Pairwise duplication = overlap(p, q) * min(audience_p, audience_q): overlap cannot
      exceed the smaller audience
    - Unique reach never drops below the largest single-platform audience
"""

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import combinations

from familygraph.core.domain_types import ContentId, ContentNode
from familygraph.core.family_graph import FamilyNode
from familygraph.core.standardization import (
    OverlapTable, StandardizationTable,
    normalized_engagements, normalized_views, raw_engagements,
)

OVERLAP_METHOD = "configured_platform_pair_overlap"


@dataclass(frozen=True)
class NodeMetrics:
    content_id: ContentId
    platform: str
    content_type: str
    raw_views: int
    raw_engagements: int
    normalized_views: float
    normalized_engagements: float


@dataclass(frozen=True)
class BreakdownEntry:
    """Normalized totals for one platform or content type."""
    key: str
    content_count: int
    views: float
    engagements: float
    engagement_rate: float
    view_share_pct: float
    engagement_share_pct: float


@dataclass(frozen=True)
class PlatformPairOverlap:
    platforms: tuple[str, str]
    overlap_pct: float
    estimated_shared_audience: float


@dataclass(frozen=True)
class AudienceOverlapEstimate:
    """Approximate unique reach. Never an exact set intersection."""
    platform_audiences: tuple[tuple[str, float], ...]
    platform_pairs: tuple[PlatformPairOverlap, ...]
    total_audience: float
    estimated_duplication: float
    estimated_unique_reach: float
    is_estimate: bool = True
    method: str = OVERLAP_METHOD


@dataclass(frozen=True)
class FamilyMetrics:
    root_id: ContentId | None
    content_count: int
    active_count: int
    inactive_count: int
    platform_count: int
    total_views: float
    total_engagements: float
    total_shares: int
    total_likes: int
    total_comments: int
    engagement_rate: float
    platform_breakdown: tuple[BreakdownEntry, ...]
    content_type_breakdown: tuple[BreakdownEntry, ...]
    audience_overlap: AudienceOverlapEstimate
    nodes: tuple[NodeMetrics, ...]


def aggregate(
    nodes: Iterable[FamilyNode | ContentNode],
    standardization: StandardizationTable | None = None,
    overlap: OverlapTable | None = None,
    root_id: ContentId | None = None,
) -> FamilyMetrics:
    """Aggregate a family's nodes into normalized family-level statistics."""
    standardization = standardization or StandardizationTable()
    overlap = overlap or OverlapTable()

    contents, inactive = _split(nodes)
    contents.sort(key=lambda c: str(c.id))

    per_node = tuple(_node_metrics(c, standardization) for c in contents)

    total_views = 0.0
    total_engagements = 0.0
    for nm in per_node:
        total_views += nm.normalized_views
        total_engagements += nm.normalized_engagements

    platform_breakdown = _breakdown(per_node, lambda nm: nm.platform, total_views, total_engagements)
    type_breakdown = _breakdown(per_node, lambda nm: nm.content_type, total_views, total_engagements)

    return FamilyMetrics(
        root_id=root_id,
        content_count=len(contents) + inactive,
        active_count=len(contents),
        inactive_count=inactive,
        platform_count=len(platform_breakdown),
        total_views=total_views,
        total_engagements=total_engagements,
        total_shares=sum(c.metrics.shares for c in contents),
        total_likes=sum(c.metrics.likes for c in contents),
        total_comments=sum(c.metrics.comments for c in contents),
        engagement_rate=_rate(total_engagements, total_views),
        platform_breakdown=platform_breakdown,
        content_type_breakdown=type_breakdown,
        audience_overlap=estimate_audience_overlap(platform_breakdown, overlap),
        nodes=per_node,
    )


def estimate_audience_overlap(
    platform_breakdown: Iterable[BreakdownEntry], overlap: OverlapTable,
) -> AudienceOverlapEstimate:
    """Apply configured pair percentages to per-platform audiences."""
    audiences = tuple((entry.key, entry.views) for entry in platform_breakdown)
    total = 0.0
    for _, audience in audiences:
        total += audience

    pairs = []
    duplication = 0.0
    for (p, a_p), (q, a_q) in combinations(audiences, 2):
        pct = overlap.overlap(p, q)
        shared = pct * min(a_p, a_q)
        duplication += shared
        pairs.append(PlatformPairOverlap((p, q), pct, shared))

    largest = max((a for _, a in audiences), default=0.0)
    unique = max(total - duplication, largest)
    return AudienceOverlapEstimate(
        platform_audiences=audiences,
        platform_pairs=tuple(pairs),
        total_audience=total,
        estimated_duplication=total - unique,
        estimated_unique_reach=unique,
    )


def _split(nodes: Iterable[FamilyNode | ContentNode]) -> tuple[list[ContentNode], int]:
    contents: list[ContentNode] = []
    inactive = 0
    for node in nodes:
        if isinstance(node, FamilyNode):
            if node.content is None:
                inactive += 1
                continue
            contents.append(node.content)
        else:
            contents.append(node)
    return contents, inactive


def _node_metrics(content: ContentNode, table: StandardizationTable) -> NodeMetrics:
    return NodeMetrics(
        content_id=content.id,
        platform=content.platform.lower(),
        content_type=content.content_type.lower(),
        raw_views=content.metrics.views,
        raw_engagements=raw_engagements(content.metrics),
        normalized_views=normalized_views(content, table),
        normalized_engagements=normalized_engagements(content, table),
    )


def _breakdown(per_node, key_fn, total_views: float, total_engagements: float):
    buckets: dict[str, list[NodeMetrics]] = {}
    for nm in per_node:
        buckets.setdefault(key_fn(nm), []).append(nm)

    entries = []
    for key in sorted(buckets):
        views = 0.0
        engagements = 0.0
        for nm in buckets[key]:
            views += nm.normalized_views
            engagements += nm.normalized_engagements
        entries.append(BreakdownEntry(
            key=key,
            content_count=len(buckets[key]),
            views=views,
            engagements=engagements,
            engagement_rate=_rate(engagements, views),
            view_share_pct=_pct(views, total_views),
            engagement_share_pct=_pct(engagements, total_engagements),
        ))
    return tuple(entries)


def _rate(engagements: float, views: float) -> float:
    return engagements / views if views > 0 else 0.0


def _pct(part: float, whole: float) -> float:
    return part / whole * 100.0 if whole > 0 else 0.0
