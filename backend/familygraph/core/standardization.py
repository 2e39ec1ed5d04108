"""Metrics Standardization — converts raw platform counters into impression-equivalent units.

Invariants:
    - All functions are PURE: no IO, no async
    - normalized = raw * factor(platform); unknown platforms use default_factor (1.0)
    - engagements fall back to likes + comments + shares when the platform reports none
    - Factor tables are values passed in, never read from module globals at call time

Design Decisions:
    - Separate view and engagement tables: a TikTok view is cheaper than a YouTube view,
      but a TikTok engagement is not cheaper than a YouTube one
    - Defaults mirror the historical per-platform weights; deployments override via Settings
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from familygraph.core.domain_types import ContentNode, MetricsSnapshot

DEFAULT_VIEW_FACTORS: dict[str, float] = {
    "youtube": 1.0,
    "instagram": 0.9,
    "tiktok": 0.8,
    "twitter": 0.7,
    "linkedin": 0.8,
}

DEFAULT_ENGAGEMENT_FACTORS: dict[str, float] = {
    "youtube": 1.0,
    "instagram": 1.2,
    "tiktok": 1.3,
    "twitter": 0.9,
    "linkedin": 1.1,
}

# Historical share of audience two platforms have in common (key: sorted "a|b")
DEFAULT_PAIR_OVERLAP: dict[str, float] = {
    "instagram|youtube": 0.25,
    "tiktok|youtube": 0.2,
    "instagram|tiktok": 0.35,
    "instagram|twitter": 0.15,
    "twitter|youtube": 0.1,
    "linkedin|twitter": 0.2,
}
DEFAULT_PAIR_OVERLAP_FALLBACK = 0.2


@dataclass(frozen=True)
class StandardizationTable:
    """Per-platform weighting used before any cross-platform summation."""
    view_factors: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_VIEW_FACTORS))
    engagement_factors: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_ENGAGEMENT_FACTORS),
    )
    default_factor: float = 1.0

    def view_factor(self, platform: str) -> float:
        return float(self.view_factors.get(platform.lower(), self.default_factor))

    def engagement_factor(self, platform: str) -> float:
        return float(self.engagement_factors.get(platform.lower(), self.default_factor))


@dataclass(frozen=True)
class OverlapTable:
    """Configured platform-pair audience overlap fractions (estimates, not measurements)."""
    pairs: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_PAIR_OVERLAP))
    default_overlap: float = DEFAULT_PAIR_OVERLAP_FALLBACK

    def overlap(self, platform_a: str, platform_b: str) -> float:
        key = pair_key(platform_a, platform_b)
        value = float(self.pairs.get(key, self.default_overlap))
        return min(max(value, 0.0), 1.0)


def pair_key(platform_a: str, platform_b: str) -> str:
    a, b = sorted((platform_a.lower(), platform_b.lower()))
    return f"{a}|{b}"


def raw_engagements(metrics: MetricsSnapshot) -> int:
    if metrics.engagements:
        return metrics.engagements
    return metrics.likes + metrics.comments + metrics.shares


def normalized_views(content: ContentNode, table: StandardizationTable) -> float:
    return content.metrics.views * table.view_factor(content.platform)


def normalized_engagements(content: ContentNode, table: StandardizationTable) -> float:
    return raw_engagements(content.metrics) * table.engagement_factor(content.platform)
