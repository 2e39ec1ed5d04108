"""ORM Models — SQLAlchemy declarative models for the content graph.

Invariants:
    - All models inherit from Base (db/base.py)
    - ContentRelationship is owned by RelationshipStore; ContentItem is read-only here

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from familygraph.models.content_item import ContentItem  # noqa: F401
from familygraph.models.content_relationship import ContentRelationship  # noqa: F401
