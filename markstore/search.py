"""
Keyword and tag search over stored bookmarks.

A keyword matches a bookmark when its url contains the keyword or its
archived title/content matches it full-text. Tag filters are intersections:
a bookmark must carry every requested tag.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import func, literal_column, or_, select
from sqlalchemy.sql import column, table

from markstore.db import Database
from markstore.models import Bookmark, Content, Tag, bookmark_tag
from markstore.records import BookmarkRecord
from markstore.schema import FTS_TABLE
from markstore.tags import normalize_tag_name

logger = logging.getLogger(__name__)

content_fts = table(FTS_TABLE, column("rowid"))


def prepare_fts_query(keyword: str) -> Optional[str]:
    """
    Turn a free-text keyword into a safe FTS5 query.

    Each term is quoted so punctuation cannot form FTS5 syntax, and gets
    prefix matching. Terms are implicitly ANDed.

    Returns:
        The query, or None if the keyword has no searchable terms
    """
    terms = []
    for word in keyword.split():
        if not any(ch.isalnum() for ch in word):
            continue
        terms.append('"{}"*'.format(word.replace('"', '""')))
    return " ".join(terms) or None


class SearchEngine:
    """Searches bookmarks by keyword and tags."""

    def __init__(self, db: Database):
        self.db = db

    def search(self, keyword: str = "", tags: Iterable[str] = (),
               order_latest: bool = False) -> List[BookmarkRecord]:
        """
        Search bookmarks.

        Args:
            keyword: Matched against the url (substring) and archived
                title/content (full-text). Ignored when blank.
            tags: Bookmarks must carry all of these tags; a single name may
                be passed as a plain string
            order_latest: Newest (highest id) first instead of oldest first

        Returns:
            Matching bookmarks with their tags, without content
        """
        keyword = (keyword or "").strip()
        if isinstance(tags, str):
            tags = (tags,)
        query = select(Bookmark)

        if keyword:
            matches = [Bookmark.url.icontains(keyword, autoescape=True)]
            content_ids = self._content_matches(keyword)
            if content_ids is not None:
                matches.append(Bookmark.id.in_(content_ids))
            query = query.where(or_(*matches))

        names = sorted({normalize_tag_name(name) for name in tags} - {""})
        if names:
            tagged = (
                select(bookmark_tag.c.bookmark_id)
                .join(Tag, Tag.id == bookmark_tag.c.tag_id)
                .where(Tag.name.in_(names))
                .group_by(bookmark_tag.c.bookmark_id)
                .having(func.count(bookmark_tag.c.tag_id) == len(names))
            )
            query = query.where(Bookmark.id.in_(tagged))

        query = query.order_by(Bookmark.id.desc() if order_latest else Bookmark.id)

        with self.db.read_session() as session:
            bookmarks = session.execute(query).scalars().all()
            logger.debug("Search %r tags=%s matched %s bookmarks", keyword, names, len(bookmarks))
            return [BookmarkRecord.from_model(b) for b in bookmarks]

    def _content_matches(self, keyword: str):
        """Subquery of bookmark ids whose archived title or content matches."""
        dialect = self.db.engine.dialect.name

        if dialect == "sqlite" and self.db.fulltext:
            fts_query = prepare_fts_query(keyword)
            if fts_query is None:
                return None
            return (
                select(content_fts.c.rowid)
                .where(literal_column(FTS_TABLE).op("MATCH")(fts_query))
            )

        if dialect == "postgresql":
            document = func.to_tsvector(
                func.coalesce(Content.title, '') + ' ' + func.coalesce(Content.content, '')
            )
            return (
                select(Content.bookmark_id)
                .where(document.op("@@")(func.plainto_tsquery(keyword)))
            )

        # No full-text support: substring match over content
        return select(Content.bookmark_id).where(or_(
            Content.title.icontains(keyword, autoescape=True),
            Content.content.icontains(keyword, autoescape=True)
        ))
