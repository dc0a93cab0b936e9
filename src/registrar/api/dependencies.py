"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

from collections.abc import Generator  # noqa: TC003
from typing import Annotated, Literal

from fastapi import Depends, Query

from registrar.config import Settings
from registrar.records import PageRequest, RecordStore
from registrar.records.queries import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

# Global RecordStore instance (initialized on app startup)
_record_store: RecordStore | None = None

# Settings the app was created with
_settings: Settings | None = None


def init_record_store(db_path: str = "registrar.db", write_retries: int = 3) -> RecordStore:
    """Initialize the global RecordStore instance."""
    global _record_store  # noqa: PLW0603
    _record_store = RecordStore(db_path, write_retries=write_retries)
    return _record_store


def close_record_store() -> None:
    """Close the global RecordStore instance."""
    global _record_store  # noqa: PLW0603
    if _record_store is not None:
        _record_store.close()
        _record_store = None


def get_record_store() -> Generator[RecordStore, None, None]:
    """Dependency that provides the RecordStore instance."""
    if _record_store is None:
        raise RuntimeError("RecordStore not initialized. Call init_record_store() first.")
    yield _record_store


# Type alias for dependency injection
RecordStoreDep = Annotated[RecordStore, Depends(get_record_store)]


def set_settings(settings: Settings) -> None:
    global _settings  # noqa: PLW0603
    _settings = settings


def get_settings() -> Settings:
    """Dependency that provides the active Settings."""
    return _settings if _settings is not None else Settings()


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_page_request(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[Literal["asc", "desc"] | None, Query(alias="sortOrder")] = None,
) -> PageRequest:
    """Dependency that reads paging and ordering query parameters."""
    return PageRequest(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


PageRequestDep = Annotated[PageRequest, Depends(get_page_request)]
