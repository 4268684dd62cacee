"""Core modules for the scrapers.

Only leaf modules are re-exported here; import the service, orchestrator and
browser from their own modules.
"""

from taurobot.core.exceptions import (
    ConfigurationError,
    FetchError,
    HTTPStatusError,
    ParseError,
    RequestTimeoutError,
    SessionError,
    SourceNotFoundError,
    StorageError,
    TaurobotError,
)
from taurobot.core.models import (
    CalendarEvent,
    Chronicle,
    EventLink,
    RankingEntry,
    Record,
    RefreshOutcome,
    RefreshStatus,
    RegionalEvent,
    TelevisedEvent,
)
from taurobot.core.retry import RetryConfig, run_with_retry

__all__ = [
    # Exceptions
    "TaurobotError",
    "ConfigurationError",
    "SourceNotFoundError",
    "FetchError",
    "HTTPStatusError",
    "RequestTimeoutError",
    "SessionError",
    "ParseError",
    "StorageError",
    # Records
    "Record",
    "EventLink",
    "TelevisedEvent",
    "CalendarEvent",
    "RankingEntry",
    "Chronicle",
    "RegionalEvent",
    "RefreshOutcome",
    "RefreshStatus",
    # Retry
    "RetryConfig",
    "run_with_retry",
]
