"""Dependency injection for the shortlinks API.

The application lifespan builds one ``LinkStore`` and one logger and parks
them on ``app.state``. The functions here pull them back out per request, so
handlers receive explicitly constructed collaborators instead of reaching for
module globals. Tests swap the store with ``app.dependency_overrides``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request

from shortlinks.config import Settings
from shortlinks.link_service import LinkService
from shortlinks.logger import bind_context, get_logger
from shortlinks.store import LinkStore

__all__ = [
    "RequestContext",
    "get_settings_dependency",
    "get_link_store",
    "get_request_context",
    "get_link_service",
]


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared resources.

    Attributes:
        store: Link store handle shared by all requests
        settings: Application settings
        request_id: Unique identifier for this request
        client_ip: Client IP address
        user_agent: Client user agent string
        start_time: Request start timestamp
    """

    store: LinkStore
    settings: Settings
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Service logger carrying this request's identifiers."""
        return bind_context(
            get_logger(self.settings.LOG_LEVEL),
            request_id=self.request_id,
            client_ip=self.client_ip,
            user_agent=self.user_agent,
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_link_store(request: Request) -> LinkStore:
    """Return the store opened by the application lifespan."""
    return request.app.state.link_store


async def get_request_context(
    request: Request,
    store: LinkStore = Depends(get_link_store),
    settings: Settings = Depends(get_settings_dependency),
) -> RequestContext:
    return RequestContext(
        store=store,
        settings=settings,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkService:
    return LinkService.from_context(ctx)
