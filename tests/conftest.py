import os

# point the app at throwaway backends before any app module is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from datetime import date
from typing import List

import fakeredis
import pytest
from sqlalchemy.orm import Session
from sqlmodel import SQLModel

from app.jobs.scheduler import PopulationDispatcher
from app.models.person import Person
from app.schemas.people import PersonRecord
from app.services.database import build_engine
from app.services.people_cache import CacheKeys, CachePopulator, PagedReader, StalenessGuard


class RecordingDispatcher(PopulationDispatcher):
    """Dispatcher that keeps every job handle so tests can wait on them."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.futures = []

    def dispatch(self, rows, key):
        future = super().dispatch(rows, key)
        self.futures.append(future)
        return future

    def wait(self):
        for future in self.futures:
            future.result(timeout=5)


def make_record(i: int, birthday: date) -> PersonRecord:
    return PersonRecord(
        id=i,
        email=f"person{i}@example.com",
        full_name=f"Person {i}",
        country="Argentina",
        birthday=birthday,
        phone=f"+54 11 5555-{i:04d}",
        ip=f"10.0.{i // 256}.{i % 256}",
    )


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def add_people(db):
    """Insert `count` people born on `birthday`; returns their records."""
    next_id = {"value": 1}

    def _add(count: int, birthday: date) -> List[PersonRecord]:
        records = []
        for _ in range(count):
            records.append(make_record(next_id["value"], birthday))
            next_id["value"] += 1
        db.add_all([Person(**r.model_dump()) for r in records])
        db.commit()
        return records

    return _add


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def keys():
    return CacheKeys.from_settings()


@pytest.fixture
def guard(redis_client, keys):
    return StalenessGuard(redis_client, keys, ttl=60)


@pytest.fixture
def populator(redis_client, keys):
    return CachePopulator(redis_client, keys, ttl=120, chunk_size=7)


@pytest.fixture
def reader(redis_client, keys):
    return PagedReader(redis_client, keys)


@pytest.fixture
def dispatcher(populator):
    dispatcher = RecordingDispatcher(populator, max_workers=2, max_retries=1, retry_delay=0)
    yield dispatcher
    dispatcher.shutdown(wait=True)
