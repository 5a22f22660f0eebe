"""
Bookmark store: create, read, update and delete bookmarks with their
archived content and tags.

Each write is a single transaction covering the bookmark row, its content
row, any new tags and the associations, so callers see all of it or none.
"""
import logging
from dataclasses import replace
from typing import List, Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from markstore.db import Database, restrict_to
from markstore.errors import NotFoundError, ValidationError
from markstore.models import Bookmark, Content, bookmark_tag, utcnow
from markstore.records import BookmarkRecord, TagRecord
from markstore.tags import TagRegistry, normalize_tag_name

logger = logging.getLogger(__name__)


def _tag_name(tag: Union[TagRecord, str]) -> str:
    return tag.name if isinstance(tag, TagRecord) else tag


def validate_bookmark(bookmark: BookmarkRecord, require_id: bool = False) -> None:
    """
    Reject a bookmark that cannot be stored.

    Raises:
        ValidationError: on a missing id (when required), url or title, or a
            negative read time
    """
    if require_id and (not bookmark.id or bookmark.id < 0):
        raise ValidationError("id", "Bookmark ID must be a positive integer")

    if not bookmark.url or not bookmark.url.strip():
        raise ValidationError("url", "URL must not be empty")

    if not bookmark.title or not bookmark.title.strip():
        raise ValidationError("title", "Title must not be empty")

    if bookmark.min_read_time < 0 or bookmark.max_read_time < 0:
        raise ValidationError("read_time", "Read time must not be negative")


class BookmarkStore:
    """CRUD for bookmarks, composed with the tag registry."""

    def __init__(self, db: Database, tags: Optional[TagRegistry] = None):
        self.db = db
        self.tags = tags or TagRegistry(db)

    def insert(self, bookmark: BookmarkRecord) -> int:
        """
        Save a new bookmark with its content and tags.

        Args:
            bookmark: Bookmark to save. Its id is ignored; modified defaults to now (UTC).

        Returns:
            Id assigned by the database

        Raises:
            ValidationError: if url or title is empty
            ConflictError: if a bookmark with the same url exists
        """
        validate_bookmark(bookmark)
        modified = bookmark.modified or utcnow()

        with self.db.atomic() as session:
            row = Bookmark(
                url=bookmark.url,
                title=bookmark.title,
                image_url=bookmark.image_url,
                excerpt=bookmark.excerpt,
                author=bookmark.author,
                min_read_time=bookmark.min_read_time,
                max_read_time=bookmark.max_read_time,
                modified=modified
            )
            session.add(row)
            session.flush()  # Get the ID before adding content

            session.add(Content(
                bookmark_id=row.id,
                title=bookmark.title,
                content=bookmark.content or '',
                html=bookmark.html or ''
            ))
            session.flush()

            for tag in bookmark.tags:
                if isinstance(tag, TagRecord) and tag.deleted:
                    continue
                tag_id = self.tags.resolve(session, _tag_name(tag))
                self.tags.attach(session, row.id, tag_id)

            bookmark_id = row.id

        logger.debug("Inserted bookmark %s", bookmark_id)
        return bookmark_id

    def get(self, *ids: int, with_content: bool = False) -> List[BookmarkRecord]:
        """
        Fetch bookmarks by id, or all of them when no ids are given.

        Ids that do not exist are skipped. Results are ordered by id and carry
        their tags ordered by name.

        Args:
            *ids: Bookmark ids
            with_content: Also load archived content and HTML
        """
        query = restrict_to(select(Bookmark), Bookmark.id, ids).order_by(Bookmark.id)
        if with_content:
            query = query.options(selectinload(Bookmark.content))

        with self.db.read_session() as session:
            bookmarks = session.execute(query).scalars().all()
            return [BookmarkRecord.from_model(b, with_content=with_content) for b in bookmarks]

    def delete(self, *ids: int) -> int:
        """
        Delete bookmarks with their content and tag associations.

        With no ids every bookmark is deleted. Missing ids are ignored.

        Returns:
            Number of bookmarks removed
        """
        with self.db.atomic() as session:
            session.execute(restrict_to(delete(bookmark_tag), bookmark_tag.c.bookmark_id, ids))
            session.execute(
                restrict_to(delete(Content), Content.bookmark_id, ids)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(
                restrict_to(delete(Bookmark), Bookmark.id, ids)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount

        logger.debug("Deleted %s bookmarks", removed)
        return removed

    def update(self, *bookmarks: BookmarkRecord) -> List[BookmarkRecord]:
        """
        Overwrite stored bookmarks, their content and their tags as one batch.

        Tags marked deleted are detached; tags without an id are resolved and
        attached. If any bookmark in the batch fails, none of the changes persist.

        Returns:
            The applied bookmarks, carrying their remaining tags with resolved ids

        Raises:
            ValidationError: if any record lacks an id, url or title
            NotFoundError: if a record's id does not exist
            ConflictError: if a new url collides with another bookmark
        """
        for bookmark in bookmarks:
            validate_bookmark(bookmark, require_id=True)

        with self.db.atomic() as session:
            applied = [self._apply_update(session, bookmark) for bookmark in bookmarks]

        logger.debug("Updated %s bookmarks", len(applied))
        return applied

    def _apply_update(self, session: Session, bookmark: BookmarkRecord) -> BookmarkRecord:
        row = session.get(Bookmark, bookmark.id)
        if row is None:
            raise NotFoundError("bookmark", bookmark.id)

        modified = bookmark.modified or utcnow()
        row.url = bookmark.url
        row.title = bookmark.title
        row.image_url = bookmark.image_url
        row.excerpt = bookmark.excerpt
        row.author = bookmark.author
        row.min_read_time = bookmark.min_read_time
        row.max_read_time = bookmark.max_read_time
        row.modified = modified

        content = session.get(Content, bookmark.id)
        if content is None:
            content = Content(bookmark_id=bookmark.id)
            session.add(content)
        content.title = bookmark.title
        content.content = bookmark.content or ''
        content.html = bookmark.html or ''
        session.flush()

        tags = []
        for tag in bookmark.tags:
            if not isinstance(tag, TagRecord):
                tag = TagRecord(name=tag)

            if tag.deleted:
                tag_id = tag.id or self.tags.find(session, tag.name)
                if tag_id:
                    self.tags.detach(session, bookmark.id, tag_id)
                continue

            if not tag.id:
                tag_id = self.tags.resolve(session, tag.name)
                self.tags.attach(session, bookmark.id, tag_id)
                tag = TagRecord(name=normalize_tag_name(tag.name), id=tag_id)

            tags.append(tag)

        return replace(bookmark, modified=modified, tags=tags)

    def find_id(self, url: str) -> Optional[int]:
        """Get the id of the bookmark saved under a url, if any."""
        with self.db.read_session() as session:
            return session.execute(
                select(Bookmark.id).where(Bookmark.url == url)
            ).scalar_one_or_none()

    def preview_next_id(self) -> int:
        """Advisory preview of the next bookmark id; see Database.preview_next_id."""
        return self.db.preview_next_id(Bookmark.__tablename__)
