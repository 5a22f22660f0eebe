"""
Tag registry: name normalization, tag resolution and bookmark/tag associations.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from markstore.db import Database, is_unique_violation
from markstore.errors import ValidationError
from markstore.models import Tag, bookmark_tag
from markstore.records import TagRecord

logger = logging.getLogger(__name__)


def normalize_tag_name(name: str) -> str:
    """Trim and case-fold a tag name. 'Go ' and 'go' are the same tag."""
    return name.strip().casefold()


class TagRegistry:
    """
    Resolves tag names to stable ids and manages the bookmark_tag table.

    resolve, attach and detach take the caller's transactional session; they
    never open a transaction of their own.
    """

    def __init__(self, db: Database):
        self.db = db

    def resolve(self, session: Session, name: str) -> int:
        """
        Get the id of a tag, creating the tag on first use.

        Args:
            session: Open transactional session
            name: Tag name, normalized before lookup

        Returns:
            Id of the tag

        Raises:
            ValidationError: if the name is empty after normalization
        """
        normalized = normalize_tag_name(name)
        if not normalized:
            raise ValidationError("tag", "Tag name must not be empty")

        tag_id = self._lookup(session, normalized)
        if tag_id is not None:
            return tag_id

        try:
            with session.begin_nested():
                result = session.execute(insert(Tag.__table__).values(name=normalized))
        except IntegrityError as e:
            # Someone else created the tag first; their row wins
            if not is_unique_violation(e):
                raise
            tag_id = self._lookup(session, normalized)
            if tag_id is None:
                raise
            return tag_id

        tag_id = result.inserted_primary_key[0]
        logger.debug("Created tag %r (id=%s)", normalized, tag_id)
        return tag_id

    def find(self, session: Session, name: str) -> Optional[int]:
        """Get the id of an existing tag without creating it."""
        return self._lookup(session, normalize_tag_name(name))

    @staticmethod
    def _lookup(session: Session, normalized: str) -> Optional[int]:
        return session.execute(
            select(Tag.id).where(Tag.name == normalized)
        ).scalar_one_or_none()

    def attach(self, session: Session, bookmark_id: int, tag_id: int) -> bool:
        """
        Make sure a bookmark carries a tag.

        Returns:
            True if the association was created, False if it already existed
        """
        exists = session.execute(
            select(bookmark_tag.c.bookmark_id).where(
                bookmark_tag.c.bookmark_id == bookmark_id,
                bookmark_tag.c.tag_id == tag_id
            )
        ).first()
        if exists is not None:
            return False

        try:
            with session.begin_nested():
                session.execute(insert(bookmark_tag).values(bookmark_id=bookmark_id, tag_id=tag_id))
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            return False
        return True

    def detach(self, session: Session, bookmark_id: int, tag_id: int) -> bool:
        """
        Remove a tag from a bookmark. Removing a missing association is a no-op.

        Returns:
            True if an association was removed
        """
        result = session.execute(
            delete(bookmark_tag).where(
                bookmark_tag.c.bookmark_id == bookmark_id,
                bookmark_tag.c.tag_id == tag_id
            )
        )
        return result.rowcount > 0

    def list_with_counts(self) -> List[TagRecord]:
        """
        List every tag with the number of bookmarks carrying it, ordered by name.

        Tags no bookmark uses any more are included with a count of 0.
        """
        with self.db.read_session() as session:
            n_bookmarks = func.count(bookmark_tag.c.bookmark_id)
            rows = session.execute(
                select(Tag, n_bookmarks)
                .outerjoin(bookmark_tag, Tag.id == bookmark_tag.c.tag_id)
                .group_by(Tag.id)
                .order_by(Tag.name)
            ).all()
            return [TagRecord.from_model(tag, count) for tag, count in rows]

    def prune_orphans(self) -> int:
        """
        Delete tags that no bookmark carries.

        Returns:
            Number of tags removed
        """
        with self.db.atomic() as session:
            in_use = select(bookmark_tag.c.tag_id)
            result = session.execute(
                delete(Tag)
                .where(Tag.id.not_in(in_use))
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount

        logger.debug("Pruned %s orphaned tags", removed)
        return removed
