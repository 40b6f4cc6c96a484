from typing import List, Optional
from sqlmodel import select
from sqlalchemy import extract, func
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.person import Person
from app.core.exceptions.exceptions import DatabaseConnectionError
from app.config.settings import settings


class PeopleQueryService:
    """Service encapsulating DB queries for the people table.

    Keeps ORM access out of the row source and the controller and centralizes
    the month/year predicates so the live path and the cache population path
    always select the same rows in the same order.
    """

    @staticmethod
    def _apply_filters(stmt, month: Optional[int], year: Optional[int]):
        if month is not None:
            stmt = stmt.where(extract("month", Person.birthday) == month)
        if year is not None:
            stmt = stmt.where(extract("year", Person.birthday) == year)
        return stmt

    @staticmethod
    def list_people(
        db: Session,
        month: Optional[int] = None,
        year: Optional[int] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> List[Person]:
        """List people matching the optional `month`/`year` birthday filters.

        If `page` (1-based) and `per_page` are provided, apply OFFSET/LIMIT
        pagination. Results are ordered by `id` for stable paging.
        """
        stmt = PeopleQueryService._apply_filters(select(Person), month, year).order_by(Person.id)

        if page is not None and per_page is not None:
            stmt = stmt.offset((page - 1) * per_page).limit(per_page)

        try:
            return db.execute(stmt).scalars().all()
        except OperationalError as e:
            raise DatabaseConnectionError(settings.DB_NAME or "people") from e

    @staticmethod
    def count_people(db: Session, month: Optional[int] = None, year: Optional[int] = None) -> int:
        """Return total number of people matching the filters."""
        stmt = PeopleQueryService._apply_filters(select(func.count()).select_from(Person), month, year)
        try:
            # scalar_one returns the single aggregated integer result
            return int(db.execute(stmt).scalar_one())
        except OperationalError as e:
            raise DatabaseConnectionError(settings.DB_NAME or "people") from e
