from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from peerledger.database import Database  # noqa: E402
from peerledger.models import User  # noqa: E402


class Ticker:
    """Deterministic clock advancing by ``step`` on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture()
def ticker() -> Ticker:
    return Ticker()


@pytest.fixture(params=["memory", "sqlite"])
def database(request: pytest.FixtureRequest, tmp_path: Path, ticker: Ticker) -> Iterator[Database]:
    if request.param == "memory":
        db = Database.in_memory(clock=ticker)
    else:
        db = Database(tmp_path / "peerledger.sqlite3", clock=ticker)
    db.initialize()
    yield db


@pytest.fixture()
def make_user(database: Database) -> Callable[..., User]:
    counter: Dict[str, int] = {"n": 0}

    def factory(username: str | None = None, **overrides: object) -> User:
        counter["n"] += 1
        name = username or f"user{counter['n']}"
        payload: Dict[str, object] = {
            "username": name,
            "email": f"{name}@example.com",
            "password": "password123",
            "first_name": name.capitalize(),
        }
        payload.update(overrides)
        return database.create_user(payload)

    return factory
