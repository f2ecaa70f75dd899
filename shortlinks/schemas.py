"""Pydantic schemas for records, request validation and response serialization.

This module defines the persisted record snapshot shared by the store, the cache
and the API, plus the request/response bodies of the HTTP boundary. All wire
shapes use camelCase keys; Python code uses snake_case attribute names.

Schema Hierarchy
=================
::
    LinkRecord (Persisted / cached / returned)
    ├─ shortPath: str
    ├─ originalUrl: str
    ├─ createdAt: int (epoch ms)
    └─ expiresAt: int | None (epoch ms, None = forever)

    LinkCreate (Input)
    ├─ url: str | None
    ├─ shortPath: str | None
    └─ expiration: str | None ("12h" | "7d" | "forever")

    LinkCreated (Output)
    ├─ success: bool
    ├─ shortPath: str
    ├─ originalUrl: str
    ├─ isExisting: bool
    └─ expiresAt: int | None

    ShareLinkCreate (Input) / ShareLinkCreated (Output)
    ExistsResponse, ErrorResponse, HealthResponse (Output)

Key Behaviours
===============
- Input fields are deliberately loose; semantic validation lives in the
  lifecycle manager so that it reports InvalidInput with a readable message.
- ``LinkRecord`` is immutable and is serialized to the cache with aliases.

Classes:
    LinkRecord:  The unit of persistence.
    LinkCreate:  Input schema for create requests.
    LinkCreated:  Output schema for create responses.
    ShareLinkCreate:  Input schema for share link requests.
    ShareLinkCreated:  Output schema for share link responses.
    ExistsResponse:  Output schema for existence checks.
    ErrorResponse:  Output schema for structured failures.
    HealthResponse:  Output schema for health checks.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from shortlinks.enums import HealthStatus

__all__ = [
    "LinkRecord",
    "LinkCreate",
    "LinkCreated",
    "ShareLinkCreate",
    "ShareLinkCreated",
    "ExistsResponse",
    "ErrorResponse",
    "HealthResponse",
]

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkRecord(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    short_path: str
    original_url: str
    created_at: int
    expires_at: int | None = None

    def is_live(self, now: int) -> bool:
        return self.expires_at is None or self.expires_at > now


class LinkCreate(BaseModel):
    model_config = _CAMEL

    url: str | None = None
    short_path: str | None = None
    expiration: str | None = None


class LinkCreated(BaseModel):
    model_config = _CAMEL

    success: bool = True
    short_path: str
    original_url: str
    is_existing: bool
    expires_at: int | None


class ShareLinkCreate(BaseModel):
    model_config = _CAMEL

    url: str | None = None
    expiration: str | None = None


class ShareLinkCreated(BaseModel):
    model_config = _CAMEL

    success: bool = True
    short_path: str
    share_url: str
    original_url: str
    expires_at: int


class ExistsResponse(BaseModel):
    exists: bool


class ErrorResponse(BaseModel):
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
