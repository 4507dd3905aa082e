import pytest

from progress_tracker.storage import SqliteStorage


class FakeStorage:
    """In-memory key-value storage; flip `fail_writes`/`fail_reads` to simulate errors."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.fail_writes = False
        self.fail_reads = False
        self.writes = 0

    def get(self, key):
        if self.fail_reads:
            return None
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_writes:
            return False
        self.writes += 1
        self.data[key] = value
        return True

    def remove(self, keys):
        if self.fail_writes:
            return False
        for key in keys:
            self.data.pop(key, None)
        return True


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


@pytest.fixture
def sqlite_storage(tmp_db):
    storage = SqliteStorage(tmp_db)
    storage.init()
    return storage


@pytest.fixture
def fake_storage():
    return FakeStorage()
