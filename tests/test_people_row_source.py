from datetime import date
from unittest.mock import MagicMock

import pytest

from app.core.exceptions.exceptions import CacheUnavailableError, InvalidPaginationError
from app.schemas.people import RowSourceEnum
from app.services.filter_context import FilterContext
from app.services.people_row_source import PeopleRowSource
from conftest import RecordingDispatcher


@pytest.fixture
def row_source(db, guard, reader, dispatcher):
    def _build(month=None, year=None, dispatcher=dispatcher):
        return PeopleRowSource(db, FilterContext(month, year), guard, reader, dispatcher)
    return _build


def test_no_filter_bypasses_cache(row_source, add_people, redis_client, dispatcher):
    add_people(25, date(1990, 1, 1))

    result = row_source().get_rows(2, 20)

    assert result.source is RowSourceEnum.LIVE
    assert [r.id for r in result.records] == list(range(21, 26))
    assert result.total == 25
    assert result.last_page == 2
    assert dispatcher.futures == []
    assert redis_client.keys("*") == []


def test_new_filter_serves_first_page_and_populates(row_source, add_people, dispatcher, reader):
    may = add_people(45, date(2000, 5, 3))
    add_people(5, date(2000, 6, 3))

    result = row_source(5, 2000).get_rows(1, 20)

    assert result.source is RowSourceEnum.POPULATING
    assert result.records == may[:20]
    assert result.total == 45
    assert result.page == 1

    dispatcher.wait()
    assert len(dispatcher.futures) == 1
    page, total = reader.page(FilterContext(5, 2000).canonical_key(), 3, 20)
    assert page == may[40:]
    assert total == 45


def test_same_filter_is_served_from_cache(row_source, add_people, dispatcher, db):
    may = add_people(45, date(2000, 5, 3))
    row_source(5, 2000).get_rows(1, 20)
    dispatcher.wait()

    # rows added after population are not visible until the cache resets
    add_people(3, date(2000, 5, 4))
    result = row_source(5, 2000).get_rows(2, 20)

    assert result.source is RowSourceEnum.CACHE
    assert result.records == may[20:40]
    assert result.total == 45
    assert len(dispatcher.futures) == 1


def test_pending_population_falls_back_to_live_query(row_source, add_people, populator):
    may = add_people(30, date(2000, 5, 3))
    # population dispatched but never run
    idle = MagicMock()
    row_source(5, 2000, dispatcher=idle).get_rows(1, 20)
    idle.dispatch.assert_called_once()

    result = row_source(5, 2000, dispatcher=idle).get_rows(2, 20)

    assert result.source is RowSourceEnum.LIVE
    assert result.records == may[20:]
    assert result.total == 30


def test_filter_change_never_serves_previous_rows(row_source, add_people, dispatcher):
    add_people(10, date(2000, 5, 3))
    june = add_people(12, date(2000, 6, 3))

    row_source(5, 2000).get_rows(1, 20)
    dispatcher.wait()
    assert row_source(5, 2000).get_rows(1, 20).source is RowSourceEnum.CACHE

    changed = row_source(6, 2000).get_rows(1, 20)
    assert changed.source is RowSourceEnum.POPULATING
    assert changed.records == june

    dispatcher.wait()
    cached = row_source(6, 2000).get_rows(1, 20)
    assert cached.source is RowSourceEnum.CACHE
    assert cached.records == june
    assert all(r.birthday.month == 6 for r in cached.records)


def test_filter_with_no_matches(row_source, add_people, dispatcher):
    add_people(4, date(1999, 1, 1))

    first = row_source(5).get_rows(1, 20)
    assert first.records == [] and first.total == 0
    dispatcher.wait()

    for page in (1, 2):
        result = row_source(5).get_rows(page, 20)
        assert result.source is RowSourceEnum.CACHE
        assert result.records == []
        assert result.total == 0


def test_population_failure_does_not_reach_the_request(row_source, add_people):
    may = add_people(5, date(2000, 5, 3))
    failing = MagicMock()
    failing.populate.side_effect = CacheUnavailableError("populator.populate", "down")
    dispatcher = RecordingDispatcher(failing, max_workers=1, max_retries=0, retry_delay=0)
    try:
        result = row_source(5, 2000, dispatcher=dispatcher).get_rows(1, 20)
        assert result.records == may
        assert isinstance(dispatcher.futures[0].exception(timeout=5), CacheUnavailableError)
    finally:
        dispatcher.shutdown()


def test_invalid_pagination(row_source):
    with pytest.raises(InvalidPaginationError):
        row_source(5).get_rows(0, 20)


def test_late_population_of_previous_filter_does_not_leak(row_source, add_people, populator, reader):
    add_people(45, date(2000, 5, 3))
    june = add_people(3, date(2000, 6, 3))

    # both jobs are dispatched but neither has run yet
    idle = MagicMock()
    row_source(5, 2000, dispatcher=idle).get_rows(1, 20)
    row_source(6, 2000, dispatcher=idle).get_rows(1, 20)
    (may_rows, may_key), (june_rows, june_key) = [c.args for c in idle.dispatch.call_args_list]

    # the May job finishes after the filter moved to June
    populator.populate(may_rows, may_key)

    result = row_source(6, 2000, dispatcher=idle).get_rows(1, 20)
    assert result.source is RowSourceEnum.LIVE
    assert result.records == june
    assert result.total == 3
    assert reader.stored_total(may_key) is None

    populator.populate(june_rows, june_key)

    cached = row_source(6, 2000, dispatcher=idle).get_rows(1, 20)
    assert cached.source is RowSourceEnum.CACHE
    assert cached.records == june
    assert cached.total == 3
