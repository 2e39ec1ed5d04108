"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ContentId, RelationshipId wrap UUIDs — never use bare UUID in domain logic
    - Confidence is bounded 0.0–1.0; MANUAL edges carry 1.0
    - All valid states encoded as Enums — no raw string matching
    - ContentNode is a read-only snapshot owned by the external content repository

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - Frozen dataclasses for ContentNode/MetricsSnapshot: the core never mutates content
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ContentId = NewType("ContentId", UUID)
RelationshipId = NewType("RelationshipId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

Confidence = NewType("Confidence", float)       # 0.0–1.0
HierarchyPath = NewType("HierarchyPath", str)   # "<hex>.<hex>..."

MANUAL_CONFIDENCE = 1.0


# ─── Enums ───────────────────────────────────────────────────────

class RelationshipType(str, Enum):
    """Typed edge kinds. Only PARENT participates in the path index."""
    PARENT = "parent"
    DERIVATIVE = "derivative"
    REPURPOSED = "repurposed"
    REACTION = "reaction"
    REFERENCE = "reference"


class CreationMethod(str, Enum):
    """How an edge came to exist."""
    MANUAL = "manual"
    AI_SUGGESTED = "ai_suggested"
    PLATFORM_DETECTED = "platform_detected"


class Platform(str, Enum):
    """Supported source platforms."""
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    PODCAST = "podcast"
    OTHER = "other"


class ContentType(str, Enum):
    """Content format, used by suggestion heuristics and breakdowns."""
    VIDEO = "video"
    SHORT_VIDEO = "short_video"
    PHOTO = "photo"
    CAROUSEL = "carousel"
    STORY = "story"
    POST = "post"
    ARTICLE = "article"
    PODCAST = "podcast"
    OTHER = "other"


# ─── Content snapshot (external, read-only) ─────────────────────

@dataclass(frozen=True)
class MetricsSnapshot:
    """Raw per-platform counters as reported by the platform."""
    views: int = 0
    engagements: int = 0
    shares: int = 0
    likes: int = 0
    comments: int = 0


@dataclass(frozen=True)
class ContentNode:
    """A content item as seen by this core. Never mutated here."""
    id: ContentId
    platform: str
    content_type: str
    metrics: MetricsSnapshot = field(default_factory=MetricsSnapshot)
    published_at: datetime | None = None
    creator_id: UUID | None = None
    title: str = ""
    description: str = ""
    url: str | None = None
    # Platform-supplied linkage hints (e.g. "stitch of", "clip from")
    linked_content_ids: tuple[ContentId, ...] = ()


def parse_relationship_type(value: str) -> RelationshipType | None:
    """Case-insensitive enum lookup. Returns None for unknown values."""
    try:
        return RelationshipType(str(value).strip().lower())
    except ValueError:
        return None


def parse_creation_method(value: str) -> CreationMethod | None:
    try:
        return CreationMethod(str(value).strip().lower())
    except ValueError:
        return None
