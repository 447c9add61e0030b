"""Data models for external event synchronization."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional


class SourceType(str, Enum):
    """Known origins of an event record."""
    CONNPASS = 'connpass'
    DOORKEEPER = 'doorkeeper'
    PEATIX = 'peatix'
    USER = 'user'


@dataclass
class CanonicalEvent:
    """Source-agnostic event produced by every adapter."""
    name: str
    source_type: str
    event_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class PersistedEvent:
    """Event as stored in the catalog, with its assigned identity."""
    event_id: str
    name: str
    source_type: Optional[str]
    event_type: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    description: Optional[str]
    location: Optional[str]
    url: Optional[str]
    image_url: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]
    created_at: str
    updated_at: str


class WriteOutcome(str, Enum):
    """Result of a deduplicating write."""
    INSERTED = 'inserted'
    SKIPPED = 'skipped'


@dataclass
class SourceReport:
    """Per-adapter outcome of one sync run."""
    source: str
    fetched: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class SyncResult:
    """Result of sync operation."""
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    sources: List[SourceReport] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class ErrorKind(str, Enum):
    """Closed set of failure kinds raised below the coordinator."""
    FETCH = 'fetch'
    ENRICH = 'enrich'
    STORE = 'store'


class SyncError(Exception):
    """Base class for contained sync failures."""

    kind: ErrorKind

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class FetchError(SyncError):
    """Transport or envelope failure for a whole source."""

    kind = ErrorKind.FETCH

    def __init__(self, source: str, cause: Optional[BaseException] = None,
                 detail: Optional[str] = None):
        self.source = source
        reason = detail or (str(cause) if cause else 'unknown error')
        super().__init__(f"Failed to fetch events from {source}: {reason}", cause)


class EnrichError(SyncError):
    """Failure or timeout of a single enrichment call."""

    kind = ErrorKind.ENRICH

    def __init__(self, operation: str, subject: str,
                 cause: Optional[BaseException] = None,
                 detail: Optional[str] = None):
        self.operation = operation
        self.subject = subject
        reason = detail or (str(cause) if cause else 'unknown error')
        super().__init__(f"{operation} failed for '{subject}': {reason}", cause)


class StoreError(SyncError):
    """Persistence failure for a single record."""

    kind = ErrorKind.STORE

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        super().__init__(f"Store operation '{operation}' failed: {cause}", cause)


class DuplicateEventError(StoreError):
    """Insert rejected because the catalog already holds this identity."""

    def __init__(self, event_id: str, cause: Optional[BaseException] = None):
        self.event_id = event_id
        super().__init__('insert', cause)
