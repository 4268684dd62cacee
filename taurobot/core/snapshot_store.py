"""JSON snapshot files and schedule markers.

Layout under the data directory:

    <snapshot_name>.json       JSON array of records, extraction order
    last_<key>_update.txt      ISO-8601 timestamp of the last scheduled refresh

Reads never raise: a missing, corrupt or wrongly shaped file is reported as
``None`` (not found). Writes replace the whole file atomically.
"""

import asyncio
import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from taurobot.core.exceptions import StorageError
from taurobot.core.models import RecordT
from taurobot.logging import get_logger

logger = get_logger(__name__)


class SnapshotStore:
    """Durable per-source snapshots in a data directory."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def snapshot_path(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def marker_path(self, key: str) -> Path:
        return self.data_dir / f"last_{key}_update.txt"

    # ==========================================
    # Snapshots
    # ==========================================

    async def load(self, name: str, model: type[RecordT]) -> list[RecordT] | None:
        """Records of snapshot ``name``, or None if it is missing or unusable."""
        raw = await self.load_raw(name)
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning("snapshot_wrong_shape", snapshot=name, type=type(raw).__name__)
            return None
        try:
            return [model.model_validate(item) for item in raw]
        except ValidationError as e:
            logger.warning("snapshot_invalid", snapshot=name, errors=e.error_count())
            return None

    async def load_raw(self, name: str) -> Any | None:
        """Decoded JSON of ``<name>.json``, or None if missing or corrupt."""
        path = self.snapshot_path(name)
        try:
            text = await asyncio.to_thread(path.read_text, "utf-8")
        except FileNotFoundError:
            logger.info("snapshot_not_found", path=str(path))
            return None
        except OSError as e:
            logger.warning("snapshot_read_failed", path=str(path), error=str(e))
            return None
        except UnicodeDecodeError as e:
            logger.warning("snapshot_bad_encoding", path=str(path), error=str(e))
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("snapshot_corrupt", path=str(path), error=str(e))
            return None

    async def save(self, name: str, records: list[BaseModel]) -> Path:
        """Replace snapshot ``name`` with ``records``.

        Raises:
            StorageError: the file could not be written
        """
        payload = [record.model_dump(by_alias=True, mode="json") for record in records]
        path = self.snapshot_path(name)
        text = json.dumps(payload, ensure_ascii=False, indent=2)
        await asyncio.to_thread(self._write_atomic, path, text)
        logger.info("snapshot_saved", path=str(path), count=len(records))
        return path

    # ==========================================
    # Schedule markers
    # ==========================================

    async def get_last_scheduled_run(self, key: str) -> datetime | None:
        path = self.marker_path(key)
        try:
            text = await asyncio.to_thread(path.read_text, "utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("marker_read_failed", path=str(path), error=str(e))
            return None
        except UnicodeDecodeError as e:
            logger.warning("marker_bad_encoding", path=str(path), error=str(e))
            return None

        try:
            when = datetime.fromisoformat(text.strip())
        except ValueError:
            logger.warning("marker_corrupt", path=str(path), content=text[:50])
            return None
        # Older markers were written without an offset
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return when

    async def mark_scheduled_run(self, key: str, when: datetime | None = None) -> None:
        when = when or datetime.now(timezone.utc)
        path = self.marker_path(key)
        await asyncio.to_thread(self._write_atomic, path, when.isoformat())
        logger.info("schedule_marker_updated", source=key, when=when.isoformat())

    # ==========================================
    # Internals
    # ==========================================

    @staticmethod
    def _write_atomic(path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {path.name}: {e}", path=str(path)) from e
