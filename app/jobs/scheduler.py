from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Sequence

from app.config.settings import settings
from app.jobs.populate_people_cache import populate_people_cache
from app.schemas.people import PersonRecord
from app.services.filter_context import FilterKey
from app.services.people_cache import CachePopulator, CacheKeys
from app.services.redis_client import get_redis
from app.utils.log import app_logger


class PopulationDispatcher:
    """Runs cache population jobs on a thread pool.

    `dispatch` returns the job's Future. Request handlers drop it; tests can
    wait on it to make the population race deterministic.
    """

    def __init__(
        self,
        populator: CachePopulator,
        max_workers: int = settings.POPULATION_MAX_WORKERS,
        max_retries: int = settings.POPULATION_MAX_RETRIES,
        retry_delay: float = settings.POPULATION_RETRY_DELAY,
    ):
        self.populator = populator
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="people-cache")

    def dispatch(self, rows: Sequence[PersonRecord], key: FilterKey) -> Future:
        rows = list(rows)
        app_logger.debug("population.dispatched", filter_key=key.canonical, rows=len(rows))
        return self._executor.submit(
            populate_people_cache, self.populator, rows, key, self.max_retries, self.retry_delay
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


_dispatcher: Optional[PopulationDispatcher] = None


def get_dispatcher() -> PopulationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        populator = CachePopulator(
            get_redis(),
            CacheKeys.from_settings(),
            ttl=max(settings.PEOPLE_CACHE_ENTRY_TTL, settings.PEOPLE_FILTER_TTL),
            chunk_size=settings.PEOPLE_CACHE_CHUNK_SIZE,
        )
        _dispatcher = PopulationDispatcher(populator)
    return _dispatcher


def start_dispatcher():
    get_dispatcher()
    app_logger.info("dispatcher: started", workers=settings.POPULATION_MAX_WORKERS)


def shutdown_dispatcher():
    global _dispatcher
    if _dispatcher is not None:
        _dispatcher.shutdown(wait=True)
        _dispatcher = None
        app_logger.info("dispatcher: shutdown")
