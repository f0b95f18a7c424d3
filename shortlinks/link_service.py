"""Link service layer: creation, management, redirect resolution, click counting.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────┐
    │                      LinkService                        │
    │  ┌────────────────┐  ┌───────────────┐  ┌─────────────┐ │
    │  │ CodeAllocator  │  │ ClickCounter  │  │ CRUD / list │ │
    │  │ • sample code  │  │ • clicks + 1  │  │ • update    │ │
    │  │ • pre-check    │  │ • new value   │  │ • delete    │ │
    │  └───────┬────────┘  └──────┬────────┘  └──────┬──────┘ │
    └──────────┼──────────────────┼──────────────────┼────────┘
               ▼                  ▼                  ▼
    ┌─────────────────────────────────────────────────────────┐
    │                 LinkStore (PostgreSQL)                  │
    └─────────────────────────────────────────────────────────┘

Link Creation Flow
------------------
::
    ┌─────────────┐
    │ POST /links │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ allocate()  │◄─────────────┐
    └──────┬──────┘              │
           ▼                     │ UniqueViolation
    ┌─────────────┐              │ (budget left)
    │ insert()    ├──────────────┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ 201 + link  │
    └─────────────┘

Redirect Flow
-------------
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐   absent    ┌───────────┐
    │ resolve()   ├────────────►│ 404       │
    └──────┬──────┘             └───────────┘
           │ fault              ┌───────────┐
           ├───────────────────►│ 500       │
           ▼                    └───────────┘
    ┌─────────────┐
    │ 302 + Loc.  │
    └──────┬──────┘
           ▼ (background)
    ┌─────────────┐
    │record_click │  failures logged and swallowed
    └─────────────┘

Usage Examples
==============
```python
@router.post("/links")
async def create_link(payload: LinkCreate, service: LinkService = Depends(get_link_service)):
    link = await service.create_link(payload)
    return LinkResponse.from_model(link, service.settings.BASE_URL)
```
"""

import logging
import time
from contextlib import aclosing
from typing import TYPE_CHECKING

from prometheus_client import Counter, Histogram

from shortlinks.allocator import CodeAllocator
from shortlinks.config import Settings
from shortlinks.counter import ClickCounter
from shortlinks.enums import RedirectOutcome, RequestStatus
from shortlinks.exceptions import (
    AllocationExhausted,
    LinkValidationError,
    RecordNotFound,
    StorageFault,
    UniqueViolation,
)
from shortlinks.models import Link
from shortlinks.schemas import LinkCreate, LinkUpdate
from shortlinks.store import LinkStore

if TYPE_CHECKING:
    from shortlinks.dependencies import RequestContext

__all__ = ["LinkService"]


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortlinks_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "shortlinks_creation_duration_seconds",
    "Time taken to create links",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
CODE_COLLISIONS_TOTAL = Counter(
    "shortlinks_code_collisions_total",
    "Inserts rejected by the unique constraint on code",
)
REDIRECT_REQUESTS_TOTAL = Counter(
    "shortlinks_redirect_requests_total",
    "Total redirect resolutions",
    ["outcome"],
)
CLICK_INCREMENTS_TOTAL = Counter(
    "shortlinks_click_increments_total",
    "Click increments attempted after redirects",
    ["status"],
)


def _check_id(link_id: int) -> None:
    if link_id < 1:
        raise LinkValidationError(f"Invalid link id: {link_id}")


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class LinkService:
    """Business logic for links on top of a ``LinkStore``.

    Holds no state of its own between calls; a fresh instance is built for
    every request from the shared store handle.

    Example:
        >>> service = LinkService(store, settings, logger)
        >>> link = await service.create_link(LinkCreate(url="https://example.com"))
        >>> await service.record_click(link.id)
        1
    """

    def __init__(
        self,
        store: LinkStore,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self._store = store
        self._settings = settings
        self._logger = logger
        self._allocator = CodeAllocator(
            store,
            alphabet=settings.SHORT_CODE_ALPHABET,
            length=settings.SHORT_CODE_LENGTH,
            max_attempts=settings.CODE_ALLOCATION_MAX_ATTEMPTS,
            logger=logger,
        )
        self._counter = ClickCounter(store)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkService":
        return cls(ctx.store, ctx.settings, ctx.logger)

    @property
    def settings(self) -> Settings:
        return self._settings

    # ========================================================================
    # CREATION
    # ========================================================================

    async def create_link(self, payload: LinkCreate) -> Link:
        """Create a link under a freshly allocated code.

        A code that passes the allocator's pre-check can still lose an insert
        race. Such collisions draw the next candidate from the same
        allocator, so pre-check misses and insert collisions together make
        at most ``CODE_ALLOCATION_MAX_ATTEMPTS`` lookups per call.

        Raises:
            AllocationExhausted: no code could be allocated and inserted.
            StorageFault: the database could not be reached.
        """
        start_time = time.perf_counter()
        caption = payload.resolve_caption(self._settings.DEFAULT_CAPTION)
        try:
            async with aclosing(self._allocator.candidates()) as codes:
                async for code in codes:
                    try:
                        link = await self._store.insert(caption, payload.url, code)
                    except UniqueViolation:
                        CODE_COLLISIONS_TOTAL.inc()
                        self._logger.warning(f"Code {code} collided on insert, drawing another")
                        continue

                    LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
                    self._logger.info(
                        f"Link created: {link.code} -> {link.target_url}",
                        extra={"operation": "create_link", "code": link.code, "link_id": link.id},
                    )
                    return link

            raise AllocationExhausted(self._settings.CODE_ALLOCATION_MAX_ATTEMPTS)

        except (AllocationExhausted, StorageFault) as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed: {exc}")
            raise

        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

    # ========================================================================
    # MANAGEMENT
    # ========================================================================

    async def list_links(self) -> list[Link]:
        return await self._store.list_all()

    async def get_link(self, link_id: int) -> Link:
        _check_id(link_id)
        link = await self._store.lookup_by_id(link_id)
        if link is None:
            raise RecordNotFound(link_id)
        return link

    async def update_link(self, link_id: int, payload: LinkUpdate) -> Link:
        _check_id(link_id)
        link = await self._store.update(link_id, caption=payload.caption, target_url=payload.url)
        if link is None:
            raise RecordNotFound(link_id)
        self._logger.info(f"Link {link_id} updated", extra={"operation": "update_link", "link_id": link_id})
        return link

    async def delete_link_by_id(self, link_id: int) -> None:
        _check_id(link_id)
        if not await self._store.delete_by_id(link_id):
            raise RecordNotFound(link_id)
        self._logger.info(f"Link {link_id} deleted", extra={"operation": "delete_link", "link_id": link_id})

    async def delete_link_by_code(self, code: str) -> None:
        if not code or not code.strip():
            raise LinkValidationError("Short code must not be empty")
        if not await self._store.delete_by_code(code):
            raise RecordNotFound(code)
        self._logger.info(f"Link with code {code} deleted", extra={"operation": "delete_link", "code": code})

    # ========================================================================
    # REDIRECT + CLICKS
    # ========================================================================

    async def resolve(self, code: str) -> Link:
        """Find the link a short code redirects to.

        Raises:
            RecordNotFound: the code is unknown.
            StorageFault: the lookup itself failed.
        """
        try:
            link = await self._store.lookup_by_code(code)
        except StorageFault as exc:
            REDIRECT_REQUESTS_TOTAL.labels(outcome=RedirectOutcome.INTERNAL_ERROR).inc()
            self._logger.error(f"Redirect lookup failed for {code}: {exc}")
            raise

        if link is None:
            REDIRECT_REQUESTS_TOTAL.labels(outcome=RedirectOutcome.NOT_FOUND).inc()
            raise RecordNotFound(code)

        REDIRECT_REQUESTS_TOTAL.labels(outcome=RedirectOutcome.REDIRECT).inc()
        return link

    async def record_click(self, link_id: int) -> int | None:
        """Best-effort click increment; returns the new count or None on failure."""
        try:
            clicks = await self._counter.increment(link_id)
        except RecordNotFound:
            CLICK_INCREMENTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.warning(f"Click not counted, link {link_id} no longer exists")
            return None
        except StorageFault as exc:
            CLICK_INCREMENTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.warning(f"Click not counted for link {link_id}: {exc}")
            return None

        CLICK_INCREMENTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.debug(f"Link {link_id} now has {clicks} clicks")
        return clicks
