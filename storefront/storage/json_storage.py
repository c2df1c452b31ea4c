# storefront/storage/json_storage.py
from __future__ import annotations

import asyncio
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from .errors import PersistenceError
from .memory import COLLECTIONS, ID_COUNTERS, SESSION_TTL, MemoryStorage

logger = logging.getLogger(__name__)

DB_FILENAME = "database.json"


class JsonStorage(MemoryStorage):
    """
    MemoryStorage flushed to a single JSON document after every mutation.

    The whole state is rewritten in place on each save: there is no atomic
    rename, so a crash mid-write can leave a truncated file. An unreadable
    file at startup is left untouched and the store starts from sample data.
    With `strict_persistence`, a failed save puts memory back to the last
    saved state before raising.
    """

    def __init__(
        self,
        data_dir: str | Path = "./data",
        session_ttl: timedelta = SESSION_TTL,
        strict_persistence: bool = True,
    ) -> None:
        super().__init__(seed=False, session_ttl=session_ttl)
        self.data_dir = Path(data_dir)
        self.db_file = self.data_dir / DB_FILENAME
        self.strict_persistence = strict_persistence

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception("Error creating data directory %s", self.data_dir)

        self._load()
        # what the file holds (or would hold); strict saves roll back to it
        self._last_saved = self._dump()

    # -------------------
    # Load
    # -------------------
    def _load(self) -> None:
        if not self.db_file.exists():
            logger.info("No database at %s, writing sample data", self.db_file)
            self._seed()
            try:
                self._write(self._dump())
            except OSError:
                logger.exception("Error saving initial data to %s", self.db_file)
            return

        try:
            raw = json.loads(self.db_file.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("top-level JSON value is not an object")
        except (OSError, ValueError) as e:
            logger.error("Error loading %s (%s); starting from sample data", self.db_file, e)
            self._seed()
            return

        self._restore(raw)

    def _restore(self, raw: Dict[str, Any]) -> None:
        # Anything missing from an older file falls back to empty / initial values.
        for attr, key, model in COLLECTIONS:
            setattr(self, attr, _parse_rows(model, key, raw.get(key)))

        counters = raw.get("counters") or {}
        if not isinstance(counters, dict):
            counters = {}
        for name, attr in ID_COUNTERS.items():
            try:
                value = int(counters.get(name) or 1)
            except (TypeError, ValueError):
                value = 1
            highest = max((row.id for row in getattr(self, attr)), default=0)
            self.counters[name] = max(value, highest + 1)

    # -------------------
    # Save
    # -------------------
    def _dump(self) -> str:
        doc: Dict[str, Any] = {}
        for attr, key, _model in COLLECTIONS:
            doc[key] = [row.model_dump(mode="json", by_alias=True) for row in getattr(self, attr)]
        doc["counters"] = dict(self.counters)
        return json.dumps(doc, indent=2, ensure_ascii=False)

    def _write(self, payload: str) -> None:
        self.db_file.write_text(payload, encoding="utf-8")

    async def _save(self) -> None:
        payload = self._dump()
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as e:
            logger.exception("Error saving data to %s", self.db_file)
            if self.strict_persistence:
                self._restore(json.loads(self._last_saved))
                raise PersistenceError(f"Could not write {self.db_file}: {e}") from e
            return
        self._last_saved = payload


def _parse_rows(model: type, key: str, rows: Any) -> List[Any]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        logger.warning("Ignoring %r in database file: expected a list", key)
        return []

    out: List[Any] = []
    for row in rows:
        try:
            out.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping invalid %s record: %s", key, e)
    return out
