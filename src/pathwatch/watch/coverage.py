"""Tracking of live low-level watches and directory coverage."""
from collections.abc import Iterable
from pathlib import PurePath


def is_descendant(path: str, ancestor: str) -> bool:
    """Check whether path lies strictly below ancestor.

    Compares whole path segments, so ``a/bc`` is not below ``a/b``.

    Args:
        path: Candidate descendant path.
        ancestor: Candidate ancestor directory.

    Returns:
        True if path is a proper descendant of ancestor.
    """
    if PurePath(path).is_absolute() != PurePath(ancestor).is_absolute():
        return False
    path_parts = PurePath(path).parts
    ancestor_parts = PurePath(ancestor).parts
    return (
        len(path_parts) > len(ancestor_parts)
        and path_parts[: len(ancestor_parts)] == ancestor_parts
    )


def descendants(paths: Iterable[str], ancestor: str) -> list[str]:
    """Paths below ancestor, shallowest first."""
    found = [p for p in paths if is_descendant(p, ancestor)]
    found.sort(key=lambda p: len(PurePath(p).parts))
    return found


class CoverageTracker:
    """Tracks which paths hold a live watch and which directories cover others.

    A path is covered when it holds its own active watch, or when one of
    its ancestors is both active and marked as covering.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._covering: set[str] = set()

    @property
    def active(self) -> frozenset[str]:
        return frozenset(self._active)

    @property
    def covering(self) -> frozenset[str]:
        return frozenset(self._covering)

    def is_active(self, path: str) -> bool:
        return path in self._active

    def is_covering(self, path: str) -> bool:
        return path in self._covering

    def activate(self, path: str) -> None:
        self._active.add(path)

    def deactivate(self, path: str) -> None:
        self._active.discard(path)

    def mark_covering(self, directory: str) -> None:
        self._covering.add(directory)

    def unmark_covering(self, directory: str) -> None:
        self._covering.discard(directory)

    def covering_ancestor(self, path: str) -> str | None:
        """Nearest ancestor that is active and covering, if any."""
        for parent in PurePath(path).parents:
            candidate = str(parent)
            if candidate in self._active and candidate in self._covering:
                return candidate
        return None

    def is_covered(self, path: str) -> bool:
        """Check whether path receives events from its own or an ancestor's watch."""
        return path in self._active or self.covering_ancestor(path) is not None

    def active_descendants(self, directory: str) -> list[str]:
        return descendants(self._active, directory)

    def clear(self) -> None:
        self._active.clear()
        self._covering.clear()
