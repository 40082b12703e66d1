"""Capability interfaces for the two storage backends.

The resolution service depends only on these two narrow contracts; the
PostgreSQL and Redis adapters (``shorturl.sql_store`` / ``shorturl.redis``)
implement them, and tests substitute in-memory versions.

::
    ResolutionService
        ├─ MappingStore  { create, find, delete, list_all, ping }
        └─ FastCache     { get, set_with_ttl, ping }          (optional)
"""

from abc import ABC, abstractmethod

from shorturl.enums import CreateOutcome
from shorturl.schemas import UrlMappingRecord

__all__ = ["FastCache", "MappingStore"]


class MappingStore(ABC):
    """Durable, authoritative short code -> long URL table.

    Every method raises ``StoreUnavailableError`` when the backend cannot be
    reached or the call exceeds its timeout.
    """

    @abstractmethod
    async def create(self, short_code: str, long_url: str) -> CreateOutcome:
        """Insert the mapping if ``short_code`` is absent, otherwise do nothing."""

    @abstractmethod
    async def find(self, short_code: str) -> UrlMappingRecord | None:
        """Return the mapping for ``short_code`` or None."""

    @abstractmethod
    async def delete(self, short_code: str) -> bool:
        """Delete the mapping; return False if there was nothing to delete."""

    @abstractmethod
    async def list_all(self) -> list[UrlMappingRecord]:
        """Return every mapping, newest first."""

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the backend; raise if it is unreachable."""

    async def close(self) -> None:
        return None


class FastCache(ABC):
    """Ephemeral, advisory key -> value store with expiry.

    Every method raises ``CacheUnavailableError`` on backend failure or
    timeout. Callers treat that as a miss.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def ping(self) -> None:
        ...

    async def close(self) -> None:
        return None
