"""Pydantic schemas for request/response validation in the shortlinks API.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ url: str (scheme added if missing, then validated)
    ├─ caption: str | None
    └─ title: str | None (used when caption is absent)

    LinkUpdate (Input)
    ├─ caption: str | None
    └─ url: str | None (validated like LinkCreate.url)

    LinkResponse (Output)
    ├─ id: int
    ├─ caption: str
    ├─ target_url: str
    ├─ code: str
    ├─ short_url: str (computed)
    ├─ clicks: int
    └─ created_at: datetime

    HealthResponse (Output)
    ├─ status: HealthStatus
    └─ database: HealthStatus

Key Behaviours
===============
- URLs without an ``http://`` or ``https://`` scheme get ``https://`` prepended.
- URL validation uses the validators library; the result must be absolute.
- Unknown request keys are ignored, so a client cannot pick its own code.
"""

import datetime
import re

import validators
from pydantic import BaseModel, field_validator

from shortlinks.enums import HealthStatus
from shortlinks.models import Link

__all__ = [
    "LinkCreate",
    "LinkUpdate",
    "LinkResponse",
    "HealthResponse",
    "normalize_url",
]

_SCHEME_RE = re.compile(r"^\s*https?://", re.IGNORECASE)


def normalize_url(value: str) -> str:
    """Add a default scheme and check the result is an absolute URL."""
    value = value.strip()
    if not _SCHEME_RE.match(value):
        value = f"https://{value}"
    if not validators.url(value):
        raise ValueError("Invalid URL provided")
    return value


class LinkCreate(BaseModel):
    url: str
    caption: str | None = None
    title: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return normalize_url(v)

    def resolve_caption(self, default: str) -> str:
        if self.caption is not None:
            return self.caption
        if self.title is not None:
            return self.title
        return default


class LinkUpdate(BaseModel):
    caption: str | None = None
    url: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return normalize_url(v)


class LinkResponse(BaseModel):
    id: int
    caption: str
    target_url: str
    code: str
    short_url: str
    clicks: int
    created_at: datetime.datetime

    @classmethod
    def from_model(cls, link: Link, base_url: str) -> "LinkResponse":
        return cls(
            id=link.id,
            caption=link.caption,
            target_url=link.target_url,
            code=link.code,
            short_url=f"{base_url.rstrip('/')}/{link.code}",
            clicks=link.clicks,
            created_at=link.created_at,
        )


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
