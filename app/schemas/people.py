from typing import Dict, List, Optional
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PersonRecord(BaseModel):
    """Immutable snapshot of a `Person` row.

    This is the flat shape stored in the people cache and returned by the API.
    """
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    email: str
    full_name: str
    country: Optional[str] = None
    birthday: date
    phone: Optional[str] = None
    ip: Optional[str] = None


class RowSourceEnum(str, Enum):
    LIVE = "live"
    CACHE = "cache"
    POPULATING = "populating"


class PeopleMeta(BaseModel):
    count: int
    page: int
    per_page: int
    last_page: int
    source: RowSourceEnum


class PeopleResponse(BaseModel):
    """Response model for the people table endpoint."""
    data: List[PersonRecord]
    meta: PeopleMeta
    links: Dict[str, str] = Field(default_factory=dict)
