from datetime import date, datetime

import pytest
import yaml

from ramadhan_tracker.core.db import dispose_db, init_db
from ramadhan_tracker.tracker.store import EntryStore

START = date(2026, 2, 19)


class MemoryStorage:
    """Dict-backed stand-in for KeyValueStorage that records writes."""

    def __init__(self, initial=None):
        self.data = dict(initial or {})
        self.writes = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes.append(key)
        self.data[key] = value


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    entry_store = EntryStore(storage)
    entry_store.load_all()
    return entry_store


@pytest.fixture
def db(tmp_path):
    init_db(db_url=f"sqlite:///{tmp_path / 'test.db'}")
    yield
    dispose_db()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "ramadan": {"start_date": START.isoformat()},
        "location": {"name": "Bandung", "lat": None, "lon": None},
        "cache": {"directory": str(tmp_path / "cache")},
        "database": {"path": str(tmp_path / "tracker.db")},
        "logging": {"level": "INFO", "file": str(tmp_path / "tracker.log")},
    }))
    return path


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 2, 21, 9, 30))


@pytest.fixture
def tracker_app(config_file, clock):
    from ramadhan_tracker.core.app import TrackerApp

    app = TrackerApp(config_path=str(config_file), clock=clock)
    yield app
    app.stop()
