"""Tag Service: shared tags, predefined seeding and friend tagging."""

import logging
from typing import Iterable, List, Optional

from ..domain.errors import KetchupError, TagError
from ..domain.models import Tag
from ..domain.repositories import FriendRepository, TagRepository
from ..infrastructure.kuzu_repositories import KuzuFriendRepository, KuzuTagRepository
from ..utils.simple_cache import bump_data_version, cached

logger = logging.getLogger(__name__)

TAG_LIST_TTL = 60


class TagService:
    def __init__(self, tag_repo: Optional[TagRepository] = None,
                 friend_repo: Optional[FriendRepository] = None):
        self.tag_repo = tag_repo or KuzuTagRepository()
        self.friend_repo = friend_repo or KuzuFriendRepository()

    def ensure_predefined_tags(self) -> List[Tag]:
        """Create any missing predefined tags. Safe to call on every startup."""
        created = []
        for name in Tag.PREDEFINED_TAGS:
            if self.tag_repo.get_by_name(name) is None:
                created.append(self.tag_repo.create(Tag.create_predefined(name)))
        if created:
            logger.info(f"Seeded predefined tags: {', '.join(t.name for t in created)}")
            bump_data_version()
        return created

    @cached(ttl_seconds=TAG_LIST_TTL)
    def list_tags(self) -> List[Tag]:
        return sorted(self.tag_repo.list_all(), key=lambda t: t.name)

    def get_tag(self, tag_id: str) -> Tag:
        tag = self.tag_repo.get_by_id(tag_id)
        if tag is None:
            raise TagError.not_found("Tag", tag_id)
        return tag

    def _require_friend(self, friend_id: str) -> None:
        if self.friend_repo.get_by_id(friend_id) is None:
            raise KetchupError.not_found("Friend", friend_id)

    def create_tag(self, name: str, friend_id: Optional[str] = None) -> Tag:
        """Create a tag, reusing an existing one with the same normalized name."""
        normalized = Tag.normalize_name(name)
        if not normalized:
            raise TagError.empty_name()
        if friend_id:
            self._require_friend(friend_id)

        tag = self.tag_repo.get_by_name(normalized)
        if tag is None:
            tag = self.tag_repo.create(Tag(name=normalized))
            logger.info(f"Created tag '{tag.name}'")
        if friend_id:
            self.tag_repo.attach(tag.id, friend_id)
        bump_data_version()
        return tag

    def delete_tag(self, tag_id: str) -> None:
        tag = self.get_tag(tag_id)
        if tag.is_predefined:
            raise TagError.predefined(tag.name)
        self.tag_repo.delete(tag_id)
        bump_data_version()
        logger.info(f"Deleted tag '{tag.name}'")

    def delete_tags(self, tag_ids: Iterable[str]) -> int:
        """Delete several tags. Predefined tags abort the batch before anything is removed."""
        tags = [self.get_tag(tag_id) for tag_id in tag_ids]
        for tag in tags:
            if tag.is_predefined:
                raise TagError.predefined(tag.name)
        for tag in tags:
            self.tag_repo.delete(tag.id)
        if tags:
            bump_data_version()
        return len(tags)

    def toggle_tag(self, tag_id: str, friend_id: str) -> bool:
        """Attach the tag if the friend lacks it, detach it otherwise. Returns the new state."""
        self.get_tag(tag_id)
        self._require_friend(friend_id)
        if self.tag_repo.is_attached(tag_id, friend_id):
            self.tag_repo.detach(tag_id, friend_id)
            attached = False
        else:
            self.tag_repo.attach(tag_id, friend_id)
            attached = True
        bump_data_version()
        return attached

    def set_friend_tags(self, friend_id: str, names: Iterable[str]) -> List[str]:
        """Replace a friend's tags with the given names, creating tags as needed."""
        wanted = {Tag.normalize_name(n) for n in names if Tag.normalize_name(n)}
        current = {t.name: t for t in self.tag_repo.list_all()}
        friend = self.friend_repo.get_by_id(friend_id)
        if friend is None:
            raise KetchupError.not_found("Friend", friend_id)

        for name in set(friend.tags) - wanted:
            if name in current:
                self.tag_repo.detach(current[name].id, friend_id)
        for name in wanted - set(friend.tags):
            tag = current.get(name) or self.tag_repo.create(Tag(name=name))
            self.tag_repo.attach(tag.id, friend_id)
        bump_data_version()
        return sorted(wanted)
