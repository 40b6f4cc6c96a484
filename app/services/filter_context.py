from dataclasses import dataclass
from typing import Optional

from app.core.exceptions.exceptions import InvalidFilterError


FILTER_DELIMITER = ":"


@dataclass(frozen=True)
class FilterKey:
    """Ordered (month, year) tuple of applied filter values.

    Equality follows the canonical string: absent values render as "" and the
    parts are joined with ":", which no integer filter value can contain.
    """
    month: Optional[int] = None
    year: Optional[int] = None

    @property
    def canonical(self) -> str:
        parts = ("" if v is None else str(v) for v in (self.month, self.year))
        return FILTER_DELIMITER.join(parts)

    @property
    def is_empty(self) -> bool:
        return self.canonical == NO_FILTER

    def __str__(self) -> str:
        return self.canonical


NO_FILTER = FilterKey(None, None).canonical


class FilterContext:
    """Month/year filters currently applied to the people table."""

    MONTH_RANGE = (1, 12)
    YEAR_RANGE = (1900, 2022)

    def __init__(self, month: Optional[int] = None, year: Optional[int] = None):
        self.month = self._checked("month", month, self.MONTH_RANGE)
        self.year = self._checked("year", year, self.YEAR_RANGE)

    @staticmethod
    def _checked(name: str, value: Optional[int], bounds) -> Optional[int]:
        if value is None:
            return None
        low, high = bounds
        if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
            raise InvalidFilterError(name, value)
        return value

    def canonical_key(self) -> FilterKey:
        return FilterKey(self.month, self.year)

    def has_active_filter(self) -> bool:
        return not self.canonical_key().is_empty
