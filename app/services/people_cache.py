from contextlib import contextmanager
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from app.config.settings import settings
from app.core.exceptions.exceptions import (
    CacheUnavailableError,
    CorruptCacheEntryError,
    InvalidPaginationError,
)
from app.schemas.people import PersonRecord
from app.services.filter_context import FilterKey
from app.utils.log import app_logger


@contextmanager
def store_errors(operation: str):
    """Translate Redis failures into `CacheUnavailableError` for `operation`."""
    try:
        yield
    except RedisError as e:
        app_logger.error("people_cache.store_error", operation=operation, error=str(e))
        raise CacheUnavailableError(operation, str(e)) from e


@dataclass(frozen=True)
class CacheKeys:
    """Every Redis key of the people cache, derived from one prefix."""
    prefix: str = "people"

    @property
    def marker(self) -> str:
        return f"{self.prefix}:previousFilterKey"

    def count(self, canonical: str) -> str:
        return f"{self.prefix}:count:{canonical}"

    def entry(self, canonical: str) -> str:
        return f"{self.prefix}:entry:{canonical}"

    @classmethod
    def from_settings(cls) -> "CacheKeys":
        return cls(prefix=settings.PEOPLE_CACHE_PREFIX)


class StalenessGuard:
    """Decides whether the cached people set still matches the applied filters.

    Only one filter combination is cached at a time. The marker key names it
    and expires after `ttl` seconds; an expired marker reads as absent, so it
    never matches. On a mismatch the guard drops the entry under the new key,
    the stale entry named by the old marker and both counts, then points the
    marker at the new key. The reset is several single-key commands, not a
    transaction: concurrent callers may both reset and both repopulate.
    """

    def __init__(self, redis: Redis, keys: CacheKeys, ttl: int):
        self.redis = redis
        self.keys = keys
        self.ttl = ttl

    def is_current(self, key: FilterKey) -> bool:
        canonical = key.canonical
        with store_errors("guard.is_current"):
            previous = self.redis.get(self.keys.marker)
            if previous == canonical:
                app_logger.debug("people_cache.guard.hit", filter_key=canonical)
                return True

            doomed = [self.keys.entry(canonical), self.keys.count(canonical)]
            if previous is not None:
                doomed.extend([self.keys.entry(previous), self.keys.count(previous)])
            self.redis.delete(*doomed)
            self.redis.delete(self.keys.marker)
            self.redis.set(self.keys.marker, canonical, ex=self.ttl)

        app_logger.info("people_cache.guard.miss", filter_key=canonical, previous=previous)
        return False


def serialize_record(record: PersonRecord) -> str:
    return record.model_dump_json()


def deserialize_record(entry_key: str, raw: str) -> PersonRecord:
    try:
        return PersonRecord.model_validate_json(raw)
    except ValidationError as e:
        raise CorruptCacheEntryError(entry_key, raw) from e


class CachePopulator:
    """Writes a full filtered result set into the cache.

    Rows go into a sorted set scored by their rank so that pages are rank
    slices. The count is written last; its presence means the entry is
    complete. Members and scores are deterministic, so rerunning a partial
    population converges on the same entry.

    A job whose filter is no longer the one the marker names stops writing and
    removes what it wrote, so a late job cannot bring back an evicted entry.
    """

    def __init__(self, redis: Redis, keys: CacheKeys, ttl: int, chunk_size: int = 500):
        self.redis = redis
        self.keys = keys
        self.ttl = ttl
        self.chunk_size = max(1, chunk_size)

    def _superseded(self, canonical: str) -> bool:
        current = self.redis.get(self.keys.marker)
        return current is not None and current != canonical

    def populate(self, rows: Sequence[PersonRecord], key: FilterKey) -> int:
        canonical = key.canonical
        entry_key = self.keys.entry(canonical)
        with store_errors("populator.populate"):
            for offset in range(0, len(rows), self.chunk_size):
                if self._superseded(canonical):
                    return self._abandon(canonical)
                chunk = rows[offset:offset + self.chunk_size]
                pipe = self.redis.pipeline(transaction=False)
                pipe.zadd(entry_key, {serialize_record(r): rank for rank, r in enumerate(chunk, start=offset)})
                pipe.expire(entry_key, self.ttl)
                pipe.execute()
            if self._superseded(canonical):
                return self._abandon(canonical)
            self.redis.set(self.keys.count(canonical), len(rows), ex=self.ttl)
        return len(rows)

    def _abandon(self, canonical: str) -> int:
        self.redis.delete(self.keys.entry(canonical), self.keys.count(canonical))
        app_logger.info("people_cache.populator.superseded", filter_key=canonical)
        return 0


class PagedReader:
    """Reads pages of a populated people entry.

    `ZRANGE` bounds are inclusive on both ends, so a page of `page_size` rows
    is read as `[start, start + page_size - 1]`. A member that does not decode
    fails the whole page with `CorruptCacheEntryError`.
    """

    def __init__(self, redis: Redis, keys: CacheKeys):
        self.redis = redis
        self.keys = keys

    def stored_total(self, key: FilterKey) -> Optional[int]:
        with store_errors("reader.total"):
            raw = self.redis.get(self.keys.count(key.canonical))
        return None if raw is None else int(raw)

    def page(self, key: FilterKey, page_number: int, page_size: int) -> Tuple[List[PersonRecord], int]:
        if page_number < 1 or page_size < 1:
            raise InvalidPaginationError(page_number, page_size)

        entry_key = self.keys.entry(key.canonical)
        start = (page_number - 1) * page_size
        end = start + page_size

        with store_errors("reader.page"):
            raw_rows = self.redis.zrange(entry_key, start, end - 1)
        records = [deserialize_record(entry_key, raw) for raw in raw_rows]
        total = self.stored_total(key) or 0

        app_logger.debug("people_cache.reader.page", filter_key=key.canonical, page=page_number, rows=len(records))
        return records, total
