"""
Schema provisioning for markstore.

Creates the five relations (bookmark, content, tag, bookmark_tag, account)
and, on SQLite, an FTS5 index over archived content. Safe to run on every
startup: existing tables, indexes and triggers are left alone.
"""
import logging
from typing import Any, Dict

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from markstore.errors import ProvisionError
from markstore.models import Base

logger = logging.getLogger(__name__)

FTS_TABLE = 'content_fts'

# The index rowid is the bookmark id. Triggers keep it in step with the
# content table inside the writing transaction.
_FTS_TRIGGERS = [
    f"""
    CREATE TRIGGER IF NOT EXISTS content_fts_ai AFTER INSERT ON content BEGIN
        INSERT INTO {FTS_TABLE} (rowid, title, content)
        VALUES (new.bookmark_id, new.title, new.content);
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS content_fts_ad AFTER DELETE ON content BEGIN
        DELETE FROM {FTS_TABLE} WHERE rowid = old.bookmark_id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS content_fts_au AFTER UPDATE ON content BEGIN
        DELETE FROM {FTS_TABLE} WHERE rowid = old.bookmark_id;
        INSERT INTO {FTS_TABLE} (rowid, title, content)
        VALUES (new.bookmark_id, new.title, new.content);
    END
    """,
]


def provision(engine: Engine, fulltext: bool = True) -> bool:
    """
    Create every relation that does not exist yet.

    Args:
        engine: Engine bound to the target database
        fulltext: Provision the SQLite full-text index

    Returns:
        True if the full-text index is available afterwards

    Raises:
        ProvisionError: if the schema cannot be created
    """
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise ProvisionError(f"Could not provision schema: {e}") from e

    if not fulltext or engine.dialect.name != 'sqlite':
        return False

    try:
        with engine.begin() as conn:
            _provision_sqlite_fts(conn)
    except OperationalError as e:
        if 'fts5' in str(e).lower():
            logger.warning("SQLite was built without FTS5; content search falls back to substring matching")
            return False
        raise ProvisionError(f"Could not provision full-text index: {e}") from e
    except SQLAlchemyError as e:
        raise ProvisionError(f"Could not provision full-text index: {e}") from e

    return True


def _provision_sqlite_fts(conn) -> None:
    exists = conn.execute(
        text("SELECT name FROM sqlite_master WHERE type = 'table' AND name = :name"),
        {'name': FTS_TABLE}
    ).first()

    if exists is None:
        conn.execute(text(f"""
            CREATE VIRTUAL TABLE {FTS_TABLE} USING fts5(
                title,
                content,
                tokenize='porter unicode61'
            )
        """))
        # Index content written before the index existed
        indexed = conn.execute(text(f"""
            INSERT INTO {FTS_TABLE} (rowid, title, content)
            SELECT bookmark_id, title, content FROM content
        """)).rowcount
        logger.debug("Created %s, indexed %s existing rows", FTS_TABLE, indexed)

    for statement in _FTS_TRIGGERS:
        conn.execute(text(statement))


def has_fulltext_index(engine: Engine) -> bool:
    """Check whether the SQLite full-text index exists."""
    if engine.dialect.name != 'sqlite':
        return False
    return FTS_TABLE in inspect(engine).get_table_names()


def describe(engine: Engine) -> Dict[str, Any]:
    """
    Get schema information.

    Returns:
        Dictionary with a 'tables' mapping of table name to column and index
        definitions, and a 'fulltext' flag
    """
    tables = {}

    for table_name, table in Base.metadata.tables.items():
        columns = []
        for col in table.columns:
            columns.append({
                "name": col.name,
                "type": str(col.type),
                "nullable": col.nullable,
                "primary_key": col.primary_key,
                "foreign_keys": [fk.target_fullname for fk in col.foreign_keys],
            })

        indexes = [{"name": idx.name, "columns": [c.name for c in idx.columns]} for idx in table.indexes]

        tables[table_name] = {
            "columns": columns,
            "indexes": indexes,
        }

    return {"tables": tables, "fulltext": has_fulltext_index(engine)}
