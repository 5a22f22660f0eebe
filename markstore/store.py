"""
Facade wiring every component to one Database.
"""
from pathlib import Path
from typing import Optional

from markstore.accounts import AccountStore
from markstore.bookmarks import BookmarkStore
from markstore.config import StoreConfig
from markstore.db import Database
from markstore.search import SearchEngine
from markstore.tags import TagRegistry


class Store:
    """
    All markstore components sharing one storage handle.

    Example:
        >>> with Store.open("bookmarks.db") as store:
        ...     store.bookmarks.insert(BookmarkRecord(url="https://example.com", title="Example"))
    """

    def __init__(self, db: Database):
        self.db = db
        self.tags = TagRegistry(db)
        self.bookmarks = BookmarkStore(db, self.tags)
        self.searcher = SearchEngine(db)
        self.accounts = AccountStore(db)

    @classmethod
    def open(cls, path: Optional[str] = None, url: Optional[str] = None,
             config: Optional[StoreConfig] = None) -> "Store":
        """Open (and provision) a database; arguments as for Database."""
        if isinstance(path, Path):
            path = str(path)
        return cls(Database(path=path, url=url, config=config))

    def search(self, keyword: str = "", tags=(), order_latest: bool = False):
        """Shortcut for SearchEngine.search."""
        return self.searcher.search(keyword, tags, order_latest=order_latest)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
