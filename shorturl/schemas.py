"""Pydantic schemas for request/response validation.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    └─ long_url: str            (checked by the service, not here)

    ShortenResponse (Output, POST /shorten)
    ├─ short_code: str
    ├─ short_url: str (computed)
    └─ long_url: str

    UrlDetailResponse (Output, GET /shorten and GET /:code/detail)
    ├─ short_code, short_url, long_url
    └─ created_at: datetime

    HealthResponse (Output)
    ├─ status, version
    └─ database, cache

    UrlMappingRecord (Internal)
    └─ what a MappingStore returns; built from ORM rows

Key Behaviours
===============
- ``long_url`` is a plain string so a malformed URL reaches the service and is
  reported as InvalidInput (400) rather than a schema failure.
- All datetime fields are timezone-aware.
"""

import datetime

from pydantic import BaseModel

from shorturl.enums import HealthStatus

__all__ = [
    "ShortenRequest",
    "ShortenResponse",
    "UrlDetailResponse",
    "MessageResponse",
    "ErrorResponse",
    "HealthResponse",
    "UrlMappingRecord",
]


class ShortenRequest(BaseModel):
    long_url: str


class ShortenResponse(BaseModel):
    short_code: str
    short_url: str
    long_url: str


class UrlDetailResponse(BaseModel):
    short_code: str
    short_url: str
    long_url: str
    created_at: datetime.datetime


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: HealthStatus
    version: str
    database: HealthStatus
    cache: HealthStatus


class UrlMappingRecord(BaseModel):
    """A durable mapping as seen by the service layer."""

    short_code: str
    long_url: str
    created_at: datetime.datetime

    model_config = {"from_attributes": True}
