"""Link store: persistence for link records over SQLAlchemy async sessions.

The store is the only component that talks to the database. It owns
uniqueness enforcement (through the ``code`` unique constraint) and exposes
point lookups, insert, update, atomic click increment and deletes. Every
operation runs in its own short transaction; the store keeps no state between
calls besides the session factory.

Operation Map
=============
::
    lookup_by_code(code)      ─► SELECT ... WHERE code = :code
    lookup_by_id(id)          ─► SELECT ... WHERE id = :id
    list_all()                ─► SELECT ... ORDER BY created_at DESC, id DESC
    insert(caption, url, code)─► INSERT ... (UniqueViolation on code clash)
    update(id, ...)           ─► field replace on caption / target_url
    increment_and_fetch(id)   ─► UPDATE links SET clicks = clicks + 1 ... RETURNING clicks
    delete_by_id(id)          ─► DELETE ... WHERE id = :id
    delete_by_code(code)      ─► DELETE ... WHERE code = :code

Key Behaviours
===============
- Unique-constraint failures on insert surface as ``UniqueViolation``.
- Any other ``SQLAlchemyError`` surfaces as ``StorageFault``, and so do the
  raw ``OSError`` and ``TimeoutError`` a driver raises when it cannot connect.
- The click increment is a single statement evaluated by the database; the
  application never reads, adds and writes back the counter itself.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import delete, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shortlinks.database import create_session_factory
from shortlinks.exceptions import StorageFault, UniqueViolation
from shortlinks.models import LINKS_TABLE, Link

__all__ = ["LinkStore"]

# Kept as raw SQL: the ORM flush would read-modify-write the counter.
INCREMENT_CLICKS_SQL = text(f"UPDATE {LINKS_TABLE} SET clicks = clicks + 1 WHERE id = :id RETURNING clicks")

_UNIQUE_VIOLATION_SQLSTATE = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "sqlstate", None) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    if getattr(orig, "pgcode", None) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(orig).lower()
    return "unique" in message or "duplicate key" in message


class LinkStore:
    """Persistent table of link records keyed by id and by unique code."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "LinkStore":
        return cls(create_session_factory(engine))

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            raise StorageFault(str(exc) or type(exc).__name__) from exc

    async def ping(self) -> None:
        async with self._transaction() as session:
            await session.execute(text("SELECT 1"))

    async def lookup_by_code(self, code: str) -> Link | None:
        async with self._transaction() as session:
            result = await session.execute(select(Link).where(Link.code == code))
            return result.scalar_one_or_none()

    async def lookup_by_id(self, link_id: int) -> Link | None:
        async with self._transaction() as session:
            return await session.get(Link, link_id)

    async def list_all(self) -> list[Link]:
        async with self._transaction() as session:
            result = await session.execute(select(Link).order_by(Link.created_at.desc(), Link.id.desc()))
            return list(result.scalars().all())

    async def insert(self, caption: str, target_url: str, code: str, clicks: int = 0) -> Link:
        """Insert a new link.

        Raises:
            UniqueViolation: if ``code`` is already stored.
            StorageFault: for any other database failure.
        """
        link = Link(caption=caption, target_url=target_url, code=code, clicks=clicks)
        try:
            async with self._session_factory() as session, session.begin():
                session.add(link)
                await session.flush()
                await session.refresh(link)
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise UniqueViolation(code) from exc
            raise StorageFault(str(exc)) from exc
        except (SQLAlchemyError, OSError, TimeoutError) as exc:
            raise StorageFault(str(exc) or type(exc).__name__) from exc
        return link

    async def update(self, link_id: int, *, caption: str | None = None, target_url: str | None = None) -> Link | None:
        async with self._transaction() as session:
            link = await session.get(Link, link_id)
            if link is None:
                return None
            if caption is not None:
                link.caption = caption
            if target_url is not None:
                link.target_url = target_url
            await session.flush()
            return link

    async def increment_and_fetch(self, link_id: int) -> int | None:
        """Atomically add one click and return the new count, or None if absent."""
        async with self._transaction() as session:
            result = await session.execute(INCREMENT_CLICKS_SQL, {"id": link_id})
            return result.scalar_one_or_none()

    async def delete_by_id(self, link_id: int) -> bool:
        async with self._transaction() as session:
            result = await session.execute(delete(Link).where(Link.id == link_id))
            return result.rowcount > 0

    async def delete_by_code(self, code: str) -> bool:
        async with self._transaction() as session:
            result = await session.execute(delete(Link).where(Link.code == code))
            return result.rowcount > 0
