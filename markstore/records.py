"""
Plain value objects passed in and out of the engine.

Callers never hold live ORM instances: operations accept these records and
return freshly built ones, so results stay usable after the session closes.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Dict, Any

from markstore.models import Account, Bookmark, Tag


@dataclass
class TagRecord:
    """
    A tag as seen by callers.

    An id of 0 means the tag has not been resolved yet. Setting deleted
    marks the tag for removal when the owning bookmark is updated.
    """
    name: str
    id: int = 0
    bookmark_count: int = 0
    deleted: bool = False

    @classmethod
    def from_model(cls, tag: Tag, bookmark_count: int = 0) -> "TagRecord":
        return cls(name=tag.name, id=tag.id, bookmark_count=bookmark_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'bookmark_count': self.bookmark_count,
        }


@dataclass
class BookmarkRecord:
    """A bookmark together with its tags and, optionally, its archived content."""
    url: str
    title: str
    id: int = 0
    image_url: str = ''
    excerpt: str = ''
    author: str = ''
    min_read_time: int = 0
    max_read_time: int = 0
    modified: Optional[datetime] = None
    content: str = ''
    html: str = ''
    tags: List[TagRecord] = field(default_factory=list)

    @property
    def tag_names(self) -> List[str]:
        return [tag.name for tag in self.tags]

    @classmethod
    def from_model(cls, bookmark: Bookmark, with_content: bool = False) -> "BookmarkRecord":
        record = cls(
            id=bookmark.id,
            url=bookmark.url,
            title=bookmark.title,
            image_url=bookmark.image_url,
            excerpt=bookmark.excerpt,
            author=bookmark.author,
            min_read_time=bookmark.min_read_time,
            max_read_time=bookmark.max_read_time,
            modified=bookmark.modified,
            tags=[TagRecord.from_model(tag) for tag in bookmark.tags],
        )
        # A missing content row just leaves the fields empty
        if with_content and bookmark.content is not None:
            record.content = bookmark.content.content or ''
            record.html = bookmark.content.html or ''
        return record

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'title': self.title,
            'image_url': self.image_url,
            'excerpt': self.excerpt,
            'author': self.author,
            'min_read_time': self.min_read_time,
            'max_read_time': self.max_read_time,
            'modified': self.modified.isoformat() if self.modified else None,
            'content': self.content,
            'html': self.html,
            'tags': self.tag_names,
        }


@dataclass
class AccountRecord:
    """A stored account. password_hash is the bcrypt hash, never plaintext."""
    id: int
    username: str
    password_hash: str = field(default='', repr=False)

    @classmethod
    def from_model(cls, account: Account) -> "AccountRecord":
        return cls(id=account.id, username=account.username, password_hash=account.password)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username}
