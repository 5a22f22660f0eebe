"""
markstore - transactional bookmark storage engine

Owns the persistent state of a bookmark manager: bookmarks, their archived
content, tags, bookmark/tag associations and accounts, built on SQLAlchemy.

Design Principles:
- Every multi-table write is one transaction: all of it persists or none
- One explicit storage handle, injected into each component
- Tag names are normalized (trimmed, case-folded) and never duplicated
- Support for SQLite, PostgreSQL, MySQL via connection strings

Example Usage:
    >>> from markstore import Store, BookmarkRecord, TagRecord
    >>> store = Store.open("bookmarks.db")
    >>> bookmark_id = store.bookmarks.insert(
    ...     BookmarkRecord(url="https://example.com", title="Example", tags=[TagRecord("demo")]))
    >>> store.search("example", tags=["demo"])
"""
import logging

__version__ = "0.3.0"
__author__ = "markstore Contributors"

# Core database API
from markstore.db import Database

# Configuration
from markstore.config import StoreConfig, get_config, init_config

# Records
from markstore.records import BookmarkRecord, TagRecord, AccountRecord

# Components
from markstore.schema import provision
from markstore.tags import TagRegistry, normalize_tag_name
from markstore.bookmarks import BookmarkStore
from markstore.search import SearchEngine
from markstore.accounts import AccountStore
from markstore.store import Store

# Errors
from markstore.errors import (
    StoreError,
    ValidationError,
    ConflictError,
    NotFoundError,
    TransactionFailure,
    ProvisionError,
    NestedTransactionError,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Database
    "Database",
    "Store",
    # Config
    "StoreConfig",
    "get_config",
    "init_config",
    # Records
    "BookmarkRecord",
    "TagRecord",
    "AccountRecord",
    # Components
    "provision",
    "TagRegistry",
    "normalize_tag_name",
    "BookmarkStore",
    "SearchEngine",
    "AccountStore",
    # Errors
    "StoreError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "TransactionFailure",
    "ProvisionError",
    "NestedTransactionError",
]
