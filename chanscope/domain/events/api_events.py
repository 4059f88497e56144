"""Domain Events related to upstream calls, pagination and caching.

Examples include events for when calls are retried, fail or succeed, when a
page is fetched, and when cache entries are hit, stored or evicted.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Upstream Call Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an upstream call is about to be made."""
    endpoint: str
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an upstream call succeeds."""
    endpoint: str
    latency_ms: float
    attempt_number: int = 1
    timestamp: float = field(default_factory=time.time)

@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an upstream call fails definitively."""
    endpoint: str
    status: Optional[int]
    error_message: str
    timestamp: float = field(default_factory=time.time)

@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a rate-limited call is scheduled for another attempt."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)

# --- Pagination Events ---

@dataclass
class PageFetched(DomainEvent):
    """Event triggered after each page of a paginated collection arrives."""
    subject_key: int
    page_number: int
    record_count: int
    has_next: bool
    timestamp: float = field(default_factory=time.time)

# --- Cache Events ---

@dataclass
class CacheHit(DomainEvent):
    key: Any
    age_seconds: float
    timestamp: float = field(default_factory=time.time)

@dataclass
class CacheMiss(DomainEvent):
    key: Any
    timestamp: float = field(default_factory=time.time)

@dataclass
class CacheEntryStored(DomainEvent):
    key: Any
    record_count: int
    timestamp: float = field(default_factory=time.time)

@dataclass
class CacheEntryEvicted(DomainEvent):
    key: Any
    reason: str # 'stale', 'invalidated', 'cleared'
    timestamp: float = field(default_factory=time.time)


def dispatch_event(event: DomainEvent) -> None:
    """Publishes a domain event. Events are currently only logged."""
    logger.debug(f"EVENT: {event}")
