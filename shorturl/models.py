"""SQLAlchemy ORM model for the authoritative URL mapping table.

Data Model Layout
=================
::
    urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(8) UNIQUE, INDEXED)
    ├─ long_url (TEXT NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

Key Behaviours
===============
- short_code is the lookup key; its unique constraint is what makes
  concurrent creates for the same URL converge on one row.
- Rows are only ever inserted or deleted, never updated.
- created_at is assigned by PostgreSQL at insert time.

Classes:
    UrlMapping:  One short code -> long URL mapping.
"""

import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shorturl.codegen import SHORT_CODE_LENGTH
from shorturl.database import Base

__all__ = ["UrlMapping"]


class UrlMapping(Base):
    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(
        String(SHORT_CODE_LENGTH), unique=True, index=True, nullable=False
    )
    long_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<UrlMapping(id={self.id}, short_code='{self.short_code}')>"
