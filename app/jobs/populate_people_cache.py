import time
from typing import Sequence

from app.config.settings import settings
from app.core.exceptions.exceptions import InfrastructureError
from app.schemas.people import PersonRecord
from app.services.filter_context import FilterKey
from app.services.people_cache import CachePopulator
from app.utils.log import app_logger


def populate_people_cache(
    populator: CachePopulator,
    rows: Sequence[PersonRecord],
    key: FilterKey,
    max_retries: int = settings.POPULATION_MAX_RETRIES,
    retry_delay: float = settings.POPULATION_RETRY_DELAY,
) -> int:
    """Write `rows` into the people cache under `key`.

    - Runs off the request path (see `PopulationDispatcher`)
    - Retries infrastructure failures up to `max_retries` times
    - Leaves a partial entry behind on final failure; the next guard reset clears it

    Returns the number of rows written.
    """
    app_logger.info("population.start", filter_key=key.canonical, rows=len(rows))

    attempt = 0
    while True:
        attempt += 1
        try:
            written = populator.populate(rows, key)
        except InfrastructureError as e:
            if attempt > max_retries:
                app_logger.error("population.failed", filter_key=key.canonical, attempts=attempt, error=str(e))
                raise
            app_logger.warning("population.retry", filter_key=key.canonical, attempt=attempt, error=str(e))
            time.sleep(retry_delay)
            continue

        app_logger.info("population.finished", filter_key=key.canonical, rows=written, attempts=attempt)
        return written
