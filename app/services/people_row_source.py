import math
from dataclasses import dataclass
from typing import List, Optional

from redis import Redis
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.exceptions.exceptions import InvalidPaginationError
from app.jobs.scheduler import PopulationDispatcher
from app.schemas.people import PersonRecord, RowSourceEnum
from app.services.filter_context import FilterContext
from app.services.people_cache import CacheKeys, PagedReader, StalenessGuard
from app.services.people_query_service import PeopleQueryService
from app.utils.log import app_logger


@dataclass
class PeoplePage:
    records: List[PersonRecord]
    total: int
    page: int
    per_page: int
    source: RowSourceEnum

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


class PeopleRowSource:
    """Chooses where the rows of one people table request come from.

    - no filter: live query, paginated by the database
    - filter cached: the cached entry (live query while the entry is still
      being written)
    - new filter: one unpaginated live query whose rows are handed to the
      population job and whose first page answers the request
    """

    def __init__(
        self,
        db: Session,
        filters: FilterContext,
        guard: StalenessGuard,
        reader: PagedReader,
        dispatcher: PopulationDispatcher,
        query: Optional[PeopleQueryService] = None,
    ):
        self.db = db
        self.filters = filters
        self.guard = guard
        self.reader = reader
        self.dispatcher = dispatcher
        self.query = query if query is not None else PeopleQueryService()

    def get_rows(self, page: int, per_page: int) -> PeoplePage:
        if page < 1 or per_page < 1:
            raise InvalidPaginationError(page, per_page)

        if not self.filters.has_active_filter():
            return self._live_page(page, per_page)

        key = self.filters.canonical_key()
        if self.guard.is_current(key):
            if self.reader.stored_total(key) is None:
                app_logger.debug("people_rows.population_pending", filter_key=key.canonical)
                return self._live_page(page, per_page)
            records, total = self.reader.page(key, page, per_page)
            return PeoplePage(records, total, page, per_page, RowSourceEnum.CACHE)

        rows = [
            PersonRecord.model_validate(p)
            for p in self.query.list_people(self.db, self.filters.month, self.filters.year)
        ]
        # the job handle is dropped; this request never waits on population
        self.dispatcher.dispatch(rows, key)
        return PeoplePage(rows[:per_page], len(rows), 1, per_page, RowSourceEnum.POPULATING)

    def _live_page(self, page: int, per_page: int) -> PeoplePage:
        month, year = self.filters.month, self.filters.year
        rows = self.query.list_people(self.db, month, year, page=page, per_page=per_page)
        total = self.query.count_people(self.db, month, year)
        records = [PersonRecord.model_validate(p) for p in rows]
        return PeoplePage(records, total, page, per_page, RowSourceEnum.LIVE)


def build_people_row_source(
    db: Session,
    filters: FilterContext,
    redis: Redis,
    dispatcher: PopulationDispatcher,
) -> PeopleRowSource:
    keys = CacheKeys.from_settings()
    return PeopleRowSource(
        db,
        filters,
        StalenessGuard(redis, keys, ttl=settings.PEOPLE_FILTER_TTL),
        PagedReader(redis, keys),
        dispatcher,
    )
