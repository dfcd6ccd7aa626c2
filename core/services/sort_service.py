"""Sorting service for query results.

The service performs multi-key sorting across photos, handling None values and
per-key ascending/descending ordering without mutating original values.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

DEFAULT_SORT: list[tuple[str, bool]] = [("filename", True)]


class SortService:
    """Provides sorting utilities for photo collections."""

    def __init__(self, default_keys: list[tuple[str, bool]] | None = None) -> None:
        self._default_keys = default_keys or DEFAULT_SORT

    def sort(self, items: Iterable[Any], sort_keys: list[tuple[str, bool]] | None = None) -> list:
        """Return `items` sorted by the provided keys.

        Args:
            items: Photos (or anything exposing the named attributes).
            sort_keys: List of tuples (field_name, ascending); defaults to the
                keys given at construction, which default to the filename.
        """
        keys = sort_keys or self._default_keys

        # Build a decorated list with adjusted values for per-key order
        decorated: list[tuple[tuple[Any, ...], Any]] = []
        for item in items:
            row: list[Any] = []
            for field_name, ascending in keys:
                value = getattr(item, field_name, None)
                if value is None:
                    # Missing values sort first ascending, last descending
                    row.append((0, 0) if ascending else (1, 0))
                elif isinstance(value, (int, float)) and not isinstance(value, bool):
                    row.append((1, value) if ascending else (0, -value))
                else:
                    text = str(value)
                    row.append((1, text) if ascending else (0, _Reversed(text)))
            decorated.append((tuple(row), item))

        decorated.sort(key=lambda x: x[0])
        return [it for _, it in decorated]


class _Reversed:
    """Wrap a string so it orders in reverse."""

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    def __lt__(self, other: _Reversed) -> bool:
        return self.value > other.value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _Reversed) and self.value == other.value
