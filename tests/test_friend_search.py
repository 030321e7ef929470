"""Tests for the friend search and sort utility."""
from datetime import datetime, timezone

from ketchupsoon.domain.models import Friend
from ketchupsoon.utils.friend_search import (
    SortDirection, SortOption, filter_friends, friend_matches_query, wishlist,
)

UTC = timezone.utc


def _friends():
    return [
        Friend(id="1", name="Charlie Brown", tags=["work"], last_seen=datetime(2024, 3, 1, tzinfo=UTC)),
        Friend(id="2", name="alice Smith", tags=["family", "local"]),
        Friend(id="3", name="Bob Jones", tags=["local"], last_seen=datetime(2024, 1, 1, tzinfo=UTC),
               needs_to_connect_flag=True),
        Friend(id="4", name="Dana Scully", last_seen=datetime(2024, 2, 1, tzinfo=UTC),
               needs_to_connect_flag=True),
    ]


def test_search_is_case_insensitive_substring():
    friend = Friend(name="Charlie Brown")
    assert friend_matches_query(friend, "char")
    assert friend_matches_query(friend, "BROWN")
    assert not friend_matches_query(friend, "lucy")
    assert friend_matches_query(friend, "")


def test_no_sort_keeps_input_order():
    result = filter_friends(_friends())
    assert [f.id for f in result] == ["1", "2", "3", "4"]


def test_tag_filter_matches_any_selected_tag():
    result = filter_friends(_friends(), selected_tags=["local", "work"])
    assert [f.id for f in result] == ["1", "2", "3"]


def test_sort_by_name():
    ascending = filter_friends(_friends(), sort_option=SortOption.NAME, sort_direction=SortDirection.ASCENDING)
    assert [f.name for f in ascending] == ["alice Smith", "Bob Jones", "Charlie Brown", "Dana Scully"]

    descending = filter_friends(_friends(), sort_option=SortOption.NAME, sort_direction=SortDirection.DESCENDING)
    assert [f.id for f in descending] == ["4", "1", "3", "2"]


def test_sort_by_last_seen_puts_never_seen_last():
    ascending = filter_friends(_friends(), sort_option=SortOption.LAST_SEEN,
                               sort_direction=SortDirection.ASCENDING)
    assert [f.id for f in ascending] == ["3", "4", "1", "2"]

    descending = filter_friends(_friends(), sort_option=SortOption.LAST_SEEN,
                                sort_direction=SortDirection.DESCENDING)
    assert [f.id for f in descending] == ["1", "4", "3", "2"]


def test_search_and_tag_filters_combine():
    result = filter_friends(_friends(), search_text="s", selected_tags=["local"])
    assert [f.id for f in result] == ["2", "3"]


def test_sort_direction_toggle_cycles():
    assert SortDirection.NONE.toggle() is SortDirection.ASCENDING
    assert SortDirection.ASCENDING.toggle() is SortDirection.DESCENDING
    assert SortDirection.DESCENDING.toggle() is SortDirection.NONE


def test_parse_helpers_fall_back_to_defaults():
    assert SortOption.parse("last-seen") is SortOption.LAST_SEEN
    assert SortOption.parse(None) is SortOption.NAME
    assert SortDirection.parse("desc") is SortDirection.DESCENDING
    assert SortDirection.parse("sideways") is SortDirection.NONE


def test_wishlist_orders_least_recently_seen_first():
    assert [f.id for f in wishlist(_friends())] == ["3", "4"]
