"""SQLAlchemy ORM models for the shortlinks service.

Data Model Layout
=================
::
    links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ caption (TEXT NOT NULL)
    ├─ target_url (TEXT NOT NULL)
    ├─ code (VARCHAR(32) UNIQUE, INDEXED)
    ├─ clicks (INTEGER NOT NULL DEFAULT 0)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Query links**::
    result = await session.execute(select(Link).where(Link.code == "abc123"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- ``code`` carries the unique constraint that backs code allocation.
- ``clicks`` is only ever changed by an in-place ``clicks + 1`` statement.
- ``created_at`` is assigned by the database at insert time.

Classes:
    Link:  A short code bound to its target URL and click count.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["Link", "LINKS_TABLE"]

LINKS_TABLE = "links"


class Link(Base):
    __tablename__ = LINKS_TABLE

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    caption: Mapped[str] = mapped_column(Text, nullable=False)
    target_url: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, code='{self.code}', clicks={self.clicks})>"
