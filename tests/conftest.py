import pytest
import tempfile
import shutil
import os

from markstore.config import get_config
from markstore.db import Database
from markstore.records import BookmarkRecord, TagRecord
from markstore.store import Store


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """
    Run every test in a clean environment without touching real config.

    Removes MARKSTORE_ environment variables, points HOME and the working
    directory at a temp directory, and reloads the global configuration.
    """
    for key in list(os.environ.keys()):
        if key.startswith("MARKSTORE_"):
            monkeypatch.delenv(key, raising=False)

    mock_home = tmp_path / "home"
    mock_home.mkdir()
    monkeypatch.setenv("HOME", str(mock_home))
    monkeypatch.chdir(tmp_path)

    get_config(reload=True)
    yield tmp_path
    for key in list(os.environ.keys()):
        if key.startswith("MARKSTORE_"):
            monkeypatch.delenv(key, raising=False)
    get_config(reload=True)


@pytest.fixture
def temp_db():
    """Create a temporary database file path."""
    temp_dir = tempfile.mkdtemp(prefix="markstore_test_db_")
    db_path = os.path.join(temp_dir, "test.db")
    yield db_path
    shutil.rmtree(temp_dir)


@pytest.fixture
def db(temp_db):
    """An open, provisioned Database on a temporary file."""
    database = Database(path=temp_db)
    yield database
    database.close()


@pytest.fixture
def store(db):
    """A Store over the temporary database, with a cheap bcrypt cost."""
    s = Store(db)
    s.accounts.rounds = 4
    return s


class BookmarkBuilder:
    """
    Test data builder for creating bookmarks with a fluent API.

    Usage:
        builder = BookmarkBuilder(store)
        builder.with_url("https://example.com").with_tags("go").insert()
    """
    def __init__(self, store):
        self.store = store
        self.record = BookmarkRecord(url="https://example.com", title="Test Bookmark")

    def with_url(self, url):
        self.record.url = url
        return self

    def with_title(self, title):
        self.record.title = title
        return self

    def with_content(self, content, html=""):
        self.record.content = content
        self.record.html = html
        return self

    def with_tags(self, *tags):
        self.record.tags = [TagRecord(name=t) for t in tags]
        return self

    def build(self):
        """Return the record without saving it."""
        return self.record

    def insert(self):
        """Save the bookmark and return its id."""
        return self.store.bookmarks.insert(self.record)


@pytest.fixture
def bookmark_builder(store):
    """
    Fixture returning a factory of BookmarkBuilders bound to the store.

    Usage:
        def test_something(bookmark_builder):
            bookmark_builder().with_url("https://test.com").insert()
    """
    def _builder():
        return BookmarkBuilder(store)
    return _builder


@pytest.fixture
def populated_store(store, bookmark_builder):
    """Store holding a handful of tagged bookmarks with content."""
    bookmark_builder().with_url("https://docs.python.org").with_title("Python Documentation") \
        .with_content("The official reference for the Python language") \
        .with_tags("python", "docs").insert()
    bookmark_builder().with_url("https://go.dev").with_title("The Go Programming Language") \
        .with_content("Go is an open source programming language") \
        .with_tags("go", "programming").insert()
    bookmark_builder().with_url("https://www.rust-lang.org").with_title("Rust") \
        .with_content("A language empowering everyone to build reliable software") \
        .with_tags("rust", "programming").insert()
    bookmark_builder().with_url("https://github.com").with_title("GitHub") \
        .with_content("Where the world builds software") \
        .with_tags("git").insert()
    return store


@pytest.fixture
def count_rows(db):
    """
    Fixture counting rows of a table, optionally filtered by column equality.

    Usage:
        assert count_rows("content", bookmark_id=1) == 1
    """
    from sqlalchemy import func, select
    from markstore.models import Base

    def _count(table_name, **where):
        table = Base.metadata.tables[table_name]
        query = select(func.count()).select_from(table)
        for column_name, value in where.items():
            query = query.where(table.c[column_name] == value)

        with db.read_session() as session:
            return session.execute(query).scalar_one()
    return _count


@pytest.fixture
def run_concurrently():
    """
    Fixture running one callable per argument on separate threads.

    All threads are released together by a barrier. Returns the results in
    argument order and the list of exceptions raised.

    Usage:
        results, errors = run_concurrently(store.accounts.create, ["a", "b"])
    """
    import threading

    def _run(fn, arguments):
        arguments = list(arguments)
        barrier = threading.Barrier(len(arguments))
        results = [None] * len(arguments)
        errors = []
        lock = threading.Lock()

        def worker(index, argument):
            barrier.wait()
            try:
                results[index] = fn(argument)
            except Exception as e:
                with lock:
                    errors.append(e)

        threads = [threading.Thread(target=worker, args=(i, a)) for i, a in enumerate(arguments)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=120)
        return results, errors
    return _run
