"""Graph Export — pure transform of a built family into a visualization payload.

Invariants:
    - PURE: no IO, no persistence, no external calls; same family in, same payload out
    - Node size in [MIN_NODE_SIZE, MAX_NODE_SIZE], scaled by metric / family max of that metric
    - Every relationship type has an edge style; width scales with confidence
    - Layout hint is hierarchical top-down, levels keyed by PARENT depth

Design Decisions:
    - Payload is plain dicts/lists: consumed by the frontend graph renderer as JSON
    - Families with an all-zero metric get mid-size nodes instead of dividing by zero
"""

from collections.abc import Callable

from familygraph.core.domain_types import ContentNode, RelationshipType
from familygraph.core.family_graph import FamilyGraph, FamilyNode
from familygraph.core.standardization import raw_engagements

MIN_NODE_SIZE = 10.0
MAX_NODE_SIZE = 50.0
NEUTRAL_SCALE = 0.5

EDGE_STYLES: dict[RelationshipType, dict] = {
    RelationshipType.PARENT: {"style": "solid", "width": 3.0},
    RelationshipType.DERIVATIVE: {"style": "dashed", "width": 2.0},
    RelationshipType.REPURPOSED: {"style": "dotted", "width": 2.0},
    RelationshipType.REACTION: {"style": "dash-dot", "width": 1.0},
    RelationshipType.REFERENCE: {"style": "dash-dot", "width": 1.0},
}

PLATFORM_COLORS: dict[str, str] = {
    "youtube": "#FF0000",
    "instagram": "#E1306C",
    "tiktok": "#000000",
    "twitter": "#1DA1F2",
    "linkedin": "#0077B5",
    "podcast": "#8E44AD",
}
DEFAULT_COLOR = "#7F8C8D"
INACTIVE_COLOR = "#D0D0D0"

SIZE_METRICS: dict[str, Callable[[ContentNode], float]] = {
    "views": lambda c: float(c.metrics.views),
    "engagements": lambda c: float(raw_engagements(c.metrics)),
    "shares": lambda c: float(c.metrics.shares),
    "likes": lambda c: float(c.metrics.likes),
    "comments": lambda c: float(c.metrics.comments),
}


def export_family(family: FamilyGraph, size_metric: str = "views", layout: str = "hierarchical") -> dict:
    """Build the visualization payload for a family."""
    if size_metric not in SIZE_METRICS:
        raise ValueError(f"unknown size metric {size_metric!r}")
    metric = SIZE_METRICS[size_metric]

    values = {n.content_id: metric(n.content) for n in family.nodes if n.content is not None}
    max_value = max(values.values(), default=0.0)

    nodes = [
        _node_payload(n, values.get(n.content_id), max_value)
        for n in sorted(family.nodes, key=lambda n: (n.depth, n.path))
    ]
    edges = [
        _edge_payload(e)
        for e in sorted(family.edges, key=lambda e: (str(e.source), str(e.target)))
    ]
    return {
        "root_id": str(family.root_id),
        "size_metric": size_metric,
        "nodes": nodes,
        "edges": edges,
        "layout": _layout_hint(family, layout),
    }


def node_size(value: float | None, max_value: float) -> float:
    if value is None:
        return MIN_NODE_SIZE
    scale = value / max_value if max_value > 0 else NEUTRAL_SCALE
    return MIN_NODE_SIZE + scale * (MAX_NODE_SIZE - MIN_NODE_SIZE)


def _node_payload(node: FamilyNode, value: float | None, max_value: float) -> dict:
    content = node.content
    platform = content.platform.lower() if content else None
    return {
        "id": str(node.content_id),
        "label": (content.title or str(node.content_id)) if content else str(node.content_id),
        "platform": platform,
        "content_type": content.content_type if content else None,
        "size": node_size(value, max_value),
        "color": PLATFORM_COLORS.get(platform, DEFAULT_COLOR) if content else INACTIVE_COLOR,
        "depth": node.depth,
        "is_root": node.is_root,
        "inactive": not node.active,
        "url": content.url if content else None,
    }


def _edge_payload(edge) -> dict:
    style = EDGE_STYLES[edge.relationship_type]
    return {
        "id": str(edge.id),
        "source": str(edge.source),
        "target": str(edge.target),
        "type": edge.relationship_type.value,
        "label": edge.relationship_type.value.replace("_", " ").title(),
        "style": style["style"],
        "width": style["width"] * edge.confidence,
        "confidence": edge.confidence,
    }


def _layout_hint(family: FamilyGraph, layout: str) -> dict:
    levels: dict[int, list[str]] = {}
    for node in family.nodes:
        levels.setdefault(node.depth, []).append(str(node.content_id))
    return {
        "type": layout,
        "direction": "top-down",
        "levels": {str(depth): sorted(ids) for depth, ids in sorted(levels.items())},
    }
