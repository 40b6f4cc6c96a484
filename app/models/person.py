from typing import Optional
from datetime import date

from sqlmodel import Field, SQLModel


class Person(SQLModel, table=True):
    __tablename__ = "people"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True, nullable=False)
    full_name: str = Field(nullable=False)
    country: Optional[str] = Field(default=None)
    # month/year filters run against this column
    birthday: date = Field(index=True, nullable=False)
    phone: Optional[str] = Field(default=None)
    ip: Optional[str] = Field(default=None)
