"""Data provider protocol — source of the three raw event collections."""
from typing import Any, Protocol


class DataProvider(Protocol):
    """Abstract interface for fetching raw margin event records."""

    @property
    def source_name(self) -> str: ...

    async def fetch_payload(self) -> dict[str, list[dict[str, Any]]]: ...
