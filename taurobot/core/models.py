"""Pydantic models for scraped records.

Python attributes are English; the JSON snapshots keep the Spanish keys the
bot has always persisted (``fecha``, ``lidiador``...), so every model is
populated by name or alias and dumped by alias.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

DATE_NOT_SPECIFIED = "Fecha no especificada"
DESCRIPTION_NOT_AVAILABLE = "Descripción no disponible"
CITY_NOT_SPECIFIED = "Ciudad no especificada"
CATEGORY_NOT_SPECIFIED = "No especificada"


class Record(BaseModel):
    """Base for every scraped record: immutable, alias-aware."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_json(self) -> dict[str, Any]:
        """Dump with the persisted (Spanish) keys."""
        return self.model_dump(by_alias=True, mode="json")


class EventLink(Record):
    """A labelled link attached to an event."""

    label: str = Field(alias="texto")
    url: str


class TelevisedEvent(Record):
    """A bullfight broadcast on television (El Muletazo)."""

    date: str = Field(default=DATE_NOT_SPECIFIED, alias="fecha")
    description: str = Field(default=DESCRIPTION_NOT_AVAILABLE, alias="descripcion")
    links: tuple[EventLink, ...] = Field(default=(), alias="enlaces")


class CalendarEvent(Record):
    """An entry of the taurine calendar (Servitoro)."""

    date: str = Field(alias="fecha")
    city: str = Field(default=CITY_NOT_SPECIFIED, alias="ciudad")
    name: str = Field(alias="nombreEvento")
    category: str = Field(default=CATEGORY_NOT_SPECIFIED, alias="categoria")
    location: str = ""
    link: str | None = None


class RankingEntry(Record):
    """One row of the bullfighter ranking (escalafón).

    Numbers stay string-encoded to match the persisted schema.
    """

    position: str = Field(alias="posicion")
    name: str = Field(alias="lidiador")
    feats: str = Field(default="0", alias="festejos")
    ears: str = Field(default="0", alias="orejas")
    tails: str = Field(default="0", alias="rabos")


class Chronicle(Record):
    """A festival chronicle (Desde el Callejón)."""

    title: str = Field(alias="titulo")
    url: str = Field(alias="enlace")
    excerpt: str = Field(default="", alias="extracto")


class RegionalEvent(Record):
    """A hand-maintained regional event (América, Sevilla data files)."""

    date: str = Field(alias="fecha")
    description: str | None = Field(default=None, alias="descripcion")
    ranch: str | None = Field(default=None, alias="ganaderia")
    bullfighters: tuple[str, ...] = Field(default=(), alias="toreros")
    time: str | None = Field(default=None, alias="hora")


RecordT = TypeVar("RecordT", bound=Record)


class RefreshStatus(str, Enum):
    """Result of one refresh cycle."""

    OK = "ok"
    EMPTY = "empty"  # Parsed fine, nothing found
    BLOCKED = "blocked"  # Parsed fine, nothing found, anti-bot page detected
    FAILED = "failed"  # Fetch/session/parse error
    SKIPPED = "skipped"  # Another refresh for the source was in flight


@dataclass(frozen=True)
class CacheEntry(Generic[RecordT]):
    """In-memory result of the last successful refresh."""

    data: tuple[RecordT, ...]
    computed_at: datetime


@dataclass(frozen=True)
class RefreshOutcome(Generic[RecordT]):
    """What a refresh produced, returned instead of raising."""

    source: str
    status: RefreshStatus
    records: list[RecordT] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is RefreshStatus.OK
