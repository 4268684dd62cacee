"""Exception hierarchy for the taurobot scraping core.

Exception categories:
- Configuration errors (unknown source, invalid settings)
- Fetch errors (network, non-2xx, timeout on a plain HTTP fetch)
- Session errors (headless browser failed to launch or crashed)
- Parse errors (input is not markup at all)
- Storage errors (snapshot files)

An extraction that parses fine but yields nothing is not an exception: it is
reported as an ``empty``/``blocked`` refresh outcome.
"""


class TaurobotError(Exception):
    """Base exception for all taurobot errors."""

    def __init__(self, message: str, source: str | None = None, details: dict | None = None):
        self.source = source
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.source:
            msg = f"[{self.source}] {msg}"
        return msg


# ============================================================
# CONFIGURATION ERRORS
# ============================================================


class ConfigurationError(TaurobotError):
    """Base class for configuration-related errors."""
    pass


class SourceNotFoundError(ConfigurationError):
    """Raised when a source key is not registered."""

    def __init__(self, key: str, available: list[str] | None = None):
        self.key = key
        self.available = available
        msg = f"Unknown source: {key}"
        if available:
            msg += f". Available: {', '.join(available)}"
        super().__init__(msg)


# ============================================================
# FETCH ERRORS
# ============================================================


class FetchError(TaurobotError):
    """Raised when a plain HTTP fetch fails."""

    def __init__(self, message: str, url: str | None = None, source: str | None = None):
        self.url = url
        super().__init__(message, source=source, details={"url": url} if url else {})


class HTTPStatusError(FetchError):
    """Raised for non-2xx responses."""

    def __init__(self, status_code: int, url: str, source: str | None = None):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}", url=url, source=source)
        self.details["status_code"] = status_code


class RequestTimeoutError(FetchError):
    """Raised when a request times out."""

    def __init__(self, url: str, timeout: float, source: str | None = None):
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout}s", url=url, source=source)
        self.details["timeout"] = timeout


# ============================================================
# HEADLESS SESSION ERRORS
# ============================================================


class SessionError(TaurobotError):
    """Raised when the headless browser cannot be launched or dies mid-session."""
    pass


# ============================================================
# PARSE ERRORS
# ============================================================


class ParseError(TaurobotError):
    """Raised when the input cannot be treated as markup at all."""

    def __init__(self, message: str, raw_data: str | None = None, source: str | None = None):
        self.raw_data = raw_data[:200] if raw_data else None
        super().__init__(message, source=source, details={"raw_data_preview": self.raw_data})


# ============================================================
# STORAGE ERRORS
# ============================================================


class StorageError(TaurobotError):
    """Raised when a snapshot or marker file cannot be written."""

    def __init__(self, message: str, path: str | None = None, source: str | None = None):
        self.path = path
        super().__init__(message, source=source, details={"path": path})
