from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from ..domain.models import Friend, Tag


class SortOption(Enum):
    NAME = "name"
    LAST_SEEN = "last_seen"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SortOption":
        candidate = (raw or "").strip().lower().replace(" ", "_").replace("-", "_")
        for option in cls:
            if option.value == candidate:
                return option
        return cls.NAME


class SortDirection(Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"
    NONE = "none"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "SortDirection":
        candidate = (raw or "").strip().lower()
        aliases = {"asc": cls.ASCENDING, "desc": cls.DESCENDING}
        if candidate in aliases:
            return aliases[candidate]
        for direction in cls:
            if direction.value == candidate:
                return direction
        return cls.NONE

    def toggle(self) -> "SortDirection":
        """Cycle none -> ascending -> descending -> none."""
        return {
            SortDirection.NONE: SortDirection.ASCENDING,
            SortDirection.ASCENDING: SortDirection.DESCENDING,
            SortDirection.DESCENDING: SortDirection.NONE,
        }[self]


def friend_matches_query(friend: Friend, query: Optional[str]) -> bool:
    """Case-insensitive substring match on the friend's name."""
    if not query:
        return True
    return query.strip().lower() in (friend.name or "").lower()


def friend_has_any_tag(friend: Friend, selected_tags: Iterable[Any]) -> bool:
    selected = {Tag.normalize_name(t) for t in selected_tags if t}
    if not selected:
        return True
    return not selected.isdisjoint(Tag.normalize_name(t) for t in friend.tags)


def filter_friends(
    friends: Sequence[Friend],
    search_text: Optional[str] = None,
    selected_tags: Optional[Iterable[str]] = None,
    sort_option: SortOption = SortOption.NAME,
    sort_direction: SortDirection = SortDirection.NONE,
) -> list[Friend]:
    """Search, tag-filter and sort a friend list.

    With SortDirection.NONE the input order is kept. Friends that were never
    seen sort after everyone else when sorting by last seen, in either
    direction.
    """
    result = [f for f in friends if friend_matches_query(f, search_text)]
    result = [f for f in result if friend_has_any_tag(f, selected_tags or [])]

    if sort_direction is SortDirection.NONE:
        return result

    reverse = sort_direction is SortDirection.DESCENDING
    if sort_option is SortOption.NAME:
        return sorted(result, key=lambda f: (f.name or "").lower(), reverse=reverse)

    seen = [f for f in result if f.last_seen is not None]
    never = [f for f in result if f.last_seen is None]
    return sorted(seen, key=lambda f: f.last_seen, reverse=reverse) + never


def wishlist(friends: Sequence[Friend]) -> list[Friend]:
    """Friends flagged as wanting to reconnect soon, least recently seen first."""
    flagged = [f for f in friends if f.needs_to_connect_flag]
    return filter_friends(flagged, sort_option=SortOption.LAST_SEEN, sort_direction=SortDirection.ASCENDING)
