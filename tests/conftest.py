"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taurobot.config.settings import Settings
from taurobot.config.sources import FetchMode, SnapshotFailurePolicy, SourceConfig
from taurobot.core.retry import RetryConfig
from taurobot.core.snapshot_store import SnapshotStore

# Fix encoding for Windows
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated in a temporary directory, no retry delays."""
    return Settings(
        data_dir=tmp_path / "data",
        tmp_dir=tmp_path / "tmp",
        max_retries=1,
        retry_delay=0,
        debug_artifacts=False,
    )


@pytest.fixture
def store(settings: Settings) -> SnapshotStore:
    return SnapshotStore(settings.data_dir)


def make_source(
    key: str = "elmuletazo",
    fetch_mode: FetchMode = FetchMode.HTTP,
    failure_policy: SnapshotFailurePolicy = SnapshotFailurePolicy.WRITE_EMPTY,
    **kwargs,
) -> SourceConfig:
    """Source config for tests: no backoff between attempts."""
    kwargs.setdefault("retry", RetryConfig(max_attempts=1, initial_delay=0, jitter=0))
    return SourceConfig(
        key=key,
        name=f"Test {key}",
        url=f"https://{key}.example.com/listado",
        fetch_mode=fetch_mode,
        ttl=kwargs.pop("ttl", timedelta(minutes=60)),
        snapshot_name=kwargs.pop("snapshot_name", f"{key}-snapshot"),
        failure_policy=failure_policy,
        **kwargs,
    )


@pytest.fixture
def source_factory():
    return make_source


@pytest.fixture
def fixture_html():
    return load_fixture
