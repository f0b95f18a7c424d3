"""Click counter: atomic per-link visit tally."""

from typing import Protocol

from shortlinks.exceptions import RecordNotFound

__all__ = ["ClickCounter", "ClickIncrementer"]


class ClickIncrementer(Protocol):
    async def increment_and_fetch(self, link_id: int) -> int | None: ...


class ClickCounter:
    """Increments ``clicks`` in place and reports the new value.

    The increment is delegated to one storage-side statement, so concurrent
    callers on the same link never lose updates and no lock is held here.
    """

    def __init__(self, store: ClickIncrementer):
        self._store = store

    async def increment(self, link_id: int) -> int:
        new_count = await self._store.increment_and_fetch(link_id)
        if new_count is None:
            raise RecordNotFound(link_id)
        return new_count
