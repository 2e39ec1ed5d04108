"""Hierarchical Paths — pure encoding of a node's PARENT ancestry chain.

Invariants:
    - A label is the 32-char lowercase hex of the content UUID
    - A path is labels joined by "." from family root down to the node
    - depth(path) == number of separators; a family root has depth 0
    - Labels never contain LIKE wildcards, so "<path>.%" is a safe prefix pattern

Design Decisions:
    - hex labels over raw UUID strings: dash-free, fixed width, valid LTREE labels too
    - Rebase is pure string arithmetic: the store applies it row by row inside one unit of work
"""

from uuid import UUID

from familygraph.core.domain_types import ContentId, HierarchyPath

SEPARATOR = "."


def label_for(content_id: UUID) -> str:
    return content_id.hex


def content_id_from_label(label: str) -> ContentId:
    return ContentId(UUID(hex=label))


def root_path(content_id: UUID) -> HierarchyPath:
    """Path of a node that has no incoming PARENT edge."""
    return HierarchyPath(label_for(content_id))


def child_path(parent_path: str, child_id: UUID) -> HierarchyPath:
    return HierarchyPath(f"{parent_path}{SEPARATOR}{label_for(child_id)}")


def depth_of(path: str) -> int:
    return path.count(SEPARATOR)


def root_of(path: str) -> ContentId:
    """Family root encoded by the first label."""
    return content_id_from_label(path.split(SEPARATOR, 1)[0])


def parent_of(path: str) -> ContentId | None:
    labels = path.split(SEPARATOR)
    if len(labels) < 2:
        return None
    return content_id_from_label(labels[-2])


def ancestors_of(path: str) -> list[ContentId]:
    """Ancestor ids from root down to (excluding) the node itself."""
    return [content_id_from_label(label) for label in path.split(SEPARATOR)[:-1]]


def descendant_pattern(path: str) -> str:
    """SQL LIKE pattern matching every strict descendant of path."""
    return f"{path}{SEPARATOR}%"


def is_descendant(candidate: str, ancestor: str) -> bool:
    return candidate.startswith(f"{ancestor}{SEPARATOR}")


def rebase(path: str, old_prefix: str, new_prefix: str) -> HierarchyPath:
    """Move path from under old_prefix to under new_prefix.

    Raises ValueError if path is not old_prefix or one of its descendants.
    """
    if path == old_prefix:
        return HierarchyPath(new_prefix)
    if not is_descendant(path, old_prefix):
        raise ValueError(f"path {path!r} is not under {old_prefix!r}")
    return HierarchyPath(new_prefix + path[len(old_prefix):])


def is_valid_path(path: str) -> bool:
    """Every label must be a 32-char hex string and labels must be unique."""
    if not path:
        return False
    labels = path.split(SEPARATOR)
    if len(set(labels)) != len(labels):
        return False
    for label in labels:
        if len(label) != 32:
            return False
        try:
            int(label, 16)
        except ValueError:
            return False
    return True
