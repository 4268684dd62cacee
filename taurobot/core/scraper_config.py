"""Browser-like request headers shared by the HTTP fetcher and the headless browser.

Sites in this domain reject default client identifiers, so every request
carries a realistic desktop User-Agent and the headers a browser would send.
"""

import random
from dataclasses import dataclass, field

# Realistic User-Agent strings (Chrome, Firefox, Safari on Windows/Mac)
USER_AGENTS = [
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    # Chrome on Mac
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    # Safari on Mac
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]

DEFAULT_USER_AGENT = USER_AGENTS[0]


@dataclass
class HeadersConfig:
    """HTTP headers configuration with optional User-Agent rotation."""

    rotate_user_agent: bool = False
    custom_user_agent: str | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)

    def user_agent(self) -> str:
        if self.rotate_user_agent:
            return random.choice(USER_AGENTS)
        return self.custom_user_agent or DEFAULT_USER_AGENT

    def get_headers(self) -> dict[str, str]:
        """Get browser-like headers."""
        return {
            "User-Agent": self.user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            **self.extra_headers,
        }
