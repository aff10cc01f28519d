"""Shared fixtures: a throwaway SQLite database per test."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from rfd_store.config.settings import Settings
from rfd_store.db.db import Database
from rfd_store.services.rfd_store import RFDStore

COMMIT_DATE = datetime(2020, 9, 7, 0, 12, 7, tzinfo=timezone.utc)


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'rfds.db'}"


@pytest_asyncio.fixture
async def database(sqlite_url):
    db = Database(Settings(DATABASE_URL=sqlite_url))
    await db.start()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database):
    # Small batches so listings page through the table more than once
    return RFDStore(database.session_maker, batch_size=2)


@pytest.fixture
def make_rfd():
    """Build a complete RFD field set; keyword overrides replace fields."""

    def _make(number: int = 1, title: str = "Foo", **overrides) -> dict:
        fields = {
            "number": number,
            "number_string": f"{number:04d}",
            "title": title,
            "name": f"rfd-{number}-{title.lower()}",
            "state": "discussion",
            "link": f"https://github.com/example/rfd/tree/{number:04d}",
            "short_link": f"https://{number}.rfd.example.com",
            "rendered_link": f"https://rfd.example.com/rfd/{number:04d}",
            "discussion": "",
            "authors": "Ada Lovelace <ada@example.com>",
            "html": f"<h1>{title}</h1>",
            "content": f"= {title}",
            "sha": "0" * 40,
            "commit_date": COMMIT_DATE,
            "milestones": [],
            "relevant_complaints": [],
        }
        fields.update(overrides)
        return fields

    return _make
