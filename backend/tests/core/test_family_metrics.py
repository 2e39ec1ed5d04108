"""Family Metrics — verifies standardization, breakdowns and the audience-overlap estimate.

Tests:
    - Views are normalized per platform before summation (1000x1.0 + 500x1.2 = 1600)
    - total_views equals the sum of per-node normalized views
    - Re-running aggregate on the same nodes is bit-identical, regardless of input order
    - Inactive family nodes are counted but contribute no metrics
    - Overlap estimate never exceeds the total audience and is flagged as an estimate
"""

from uuid import uuid4

from familygraph.core.domain_types import ContentNode, MetricsSnapshot
from familygraph.core.family_graph import FamilyNode
from familygraph.core.family_metrics import aggregate
from familygraph.core.standardization import OverlapTable, StandardizationTable

TABLE = StandardizationTable(
    view_factors={"youtube": 1.0, "tiktok": 1.2},
    engagement_factors={"youtube": 1.0, "tiktok": 1.5},
)


def _content(platform, views, engagements=0, content_type="video", **metrics):
    return ContentNode(
        id=uuid4(), platform=platform, content_type=content_type,
        metrics=MetricsSnapshot(views=views, engagements=engagements, **metrics),
    )


def test_views_are_standardized_before_summing():
    result = aggregate(
        [_content("youtube", 1000), _content("tiktok", 500)], standardization=TABLE,
    )
    assert result.total_views == 1600.0


def test_total_equals_sum_of_node_values():
    nodes = [_content("youtube", 1234, 99), _content("tiktok", 777, 41), _content("tiktok", 3)]
    result = aggregate(nodes, standardization=TABLE)
    assert result.total_views == sum(n.normalized_views for n in result.nodes)
    assert result.total_engagements == sum(n.normalized_engagements for n in result.nodes)


def test_aggregate_is_idempotent_and_order_independent():
    nodes = [_content("youtube", 1000, 50), _content("tiktok", 333, 17), _content("instagram", 71, 9)]
    first = aggregate(nodes, standardization=TABLE)
    again = aggregate(list(reversed(nodes)), standardization=TABLE)
    assert first == again


def test_engagements_fall_back_to_likes_comments_shares():
    result = aggregate(
        [_content("youtube", 100, likes=5, comments=3, shares=2)], standardization=TABLE,
    )
    assert result.total_engagements == 10.0
    assert result.engagement_rate == 0.1
    assert result.total_likes == 5


def test_platform_and_content_type_breakdowns():
    nodes = [
        _content("youtube", 1000, content_type="video"),
        _content("tiktok", 500, content_type="short_video"),
        _content("tiktok", 500, content_type="short_video"),
    ]
    result = aggregate(nodes, standardization=TABLE)
    by_platform = {e.key: e for e in result.platform_breakdown}
    assert by_platform["tiktok"].content_count == 2
    assert by_platform["tiktok"].views == 1200.0
    assert round(by_platform["youtube"].view_share_pct, 6) == round(1000 / 2200 * 100, 6)
    assert [e.key for e in result.content_type_breakdown] == ["short_video", "video"]
    assert result.platform_count == 2


def test_inactive_nodes_counted_without_metrics():
    active = _content("youtube", 1000)
    nodes = [
        FamilyNode(active.id, active.id.hex, 0, None, active, is_root=True),
        FamilyNode(uuid4(), "x", 1, active.id, None),
    ]
    result = aggregate(nodes, standardization=TABLE)
    assert result.content_count == 2
    assert result.inactive_count == 1
    assert result.total_views == 1000.0


def test_audience_overlap_is_an_estimate():
    overlap = OverlapTable(pairs={"tiktok|youtube": 0.5}, default_overlap=0.0)
    result = aggregate(
        [_content("youtube", 1000), _content("tiktok", 500)],
        standardization=TABLE, overlap=overlap,
    )
    estimate = result.audience_overlap
    assert estimate.is_estimate is True
    assert estimate.total_audience == 1600.0
    # 0.5 * min(1000, 600)
    assert estimate.estimated_duplication == 300.0
    assert estimate.estimated_unique_reach == 1300.0


def test_unique_reach_never_below_largest_platform():
    overlap = OverlapTable(pairs={}, default_overlap=1.0)
    result = aggregate(
        [_content("youtube", 1000), _content("tiktok", 1000)],
        standardization=TABLE, overlap=overlap,
    )
    assert result.audience_overlap.estimated_unique_reach == 1200.0


def test_empty_family():
    result = aggregate([])
    assert result.total_views == 0.0
    assert result.engagement_rate == 0.0
    assert result.audience_overlap.estimated_unique_reach == 0.0
