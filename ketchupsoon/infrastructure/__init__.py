"""Kuzu-backed implementations of the domain repositories."""

from .kuzu_repositories import (
    KuzuFriendRepository,
    KuzuTagRepository,
    KuzuHangoutRepository,
    KuzuEventRepository,
    KuzuReminderRepository,
)

__all__ = [
    'KuzuFriendRepository',
    'KuzuTagRepository',
    'KuzuHangoutRepository',
    'KuzuEventRepository',
    'KuzuReminderRepository',
]
