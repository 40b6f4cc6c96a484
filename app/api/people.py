from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from redis import Redis
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.core.exceptions.exceptions import (
    CorruptCacheEntryError,
    DomainError,
    InfrastructureError,
)
from app.jobs.scheduler import PopulationDispatcher, get_dispatcher
from app.schemas.people import PeopleMeta, PeopleResponse
from app.services.database import get_db
from app.services.filter_context import FilterContext
from app.services.people_row_source import build_people_row_source
from app.services.redis_client import get_redis
from app.utils.log import app_logger

router = APIRouter(tags=["People"])


@router.get("/people", response_model=PeopleResponse)
def people_table(
    request: Request,
    response: Response,
    month: Optional[int] = None,
    year: Optional[int] = None,
    page: int = 1,
    per_page: int = settings.PEOPLE_PER_PAGE,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
    dispatcher: PopulationDispatcher = Depends(get_dispatcher),
) -> PeopleResponse:
    """Return one page of the people table, optionally filtered by birthday month/year.

    Filtered requests go through the people cache; see `PeopleRowSource`.
    """
    if page < 1 or per_page not in settings.PEOPLE_PER_PAGE_ACCEPTED:
        raise HTTPException(status_code=400, detail="invalid pagination params")

    try:
        filters = FilterContext(month=month, year=year)
        source = build_people_row_source(db, filters, redis, dispatcher)
        result = source.get_rows(page, per_page)
    except CorruptCacheEntryError as e:
        app_logger.error("api.people.corrupt_cache", error=e.message)
        raise HTTPException(status_code=500, detail="cached page could not be read")
    except DomainError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InfrastructureError as e:
        app_logger.error("api.people.unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="people table temporarily unavailable, try again",
        )

    response.headers["X-Page"] = str(result.page)
    response.headers["X-Per-Page"] = str(result.per_page)
    response.headers["X-Total-Count"] = str(result.total)
    response.headers["X-Cache-Source"] = result.source.value

    # keep the applied filters in the pagination links
    base = str(request.url).split("?")[0]
    params = {k: v for k, v in (("month", month), ("year", year)) if v is not None}
    self_url = f"{base}?{urlencode({**params, 'page': result.page, 'per_page': per_page})}"
    next_url = ""
    if result.page < result.last_page:
        next_url = f"{base}?{urlencode({**params, 'page': result.page + 1, 'per_page': per_page})}"

    return PeopleResponse(
        data=result.records,
        meta=PeopleMeta(
            count=result.total,
            page=result.page,
            per_page=result.per_page,
            last_page=result.last_page,
            source=result.source,
        ),
        links={"self": self_url, "next": next_url},
    )
