"""History store: the append-only, capped list of InteractionRecords.

Layout: ``<data_dir>/history.json`` holding a JSON array, newest first.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog
from pydantic import ValidationError

from src.saleslens.schemas.history import InteractionRecord
from src.saleslens.storage.files import read_json, write_json

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ENTRIES = 100


class HistoryStore:
    """JSON-file backed interaction history.

    Args:
        data_dir: Directory holding ``history.json`` (created on demand).
        max_entries: Cap applied on every append; oldest entries are evicted.
    """

    FILE_NAME = "history.json"

    def __init__(self, data_dir: Path | str, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._path = Path(data_dir) / self.FILE_NAME
        self._max_entries = max_entries

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_file(self) -> None:
        if not self._path.exists():
            write_json(self._path, [])

    def _load(self) -> list[InteractionRecord]:
        self._ensure_file()
        try:
            raw = read_json(self._path)
        except ValueError:
            logger.warning("history.file_corrupt", path=str(self._path))
            return []
        if not isinstance(raw, list):
            logger.warning("history.file_not_a_list", path=str(self._path))
            return []

        entries: list[InteractionRecord] = []
        for item in raw:
            try:
                entries.append(InteractionRecord.model_validate(item))
            except ValidationError as exc:
                logger.warning(
                    "history.entry_skipped",
                    entry_id=item.get("id") if isinstance(item, dict) else None,
                    errors=exc.error_count(),
                )
        return entries

    def _save(self, entries: list[InteractionRecord]) -> None:
        write_json(self._path, [e.model_dump(mode="json", by_alias=True, exclude_none=True) for e in entries])

    async def read_history(self) -> list[InteractionRecord]:
        """Return all stored records, newest first."""
        return await asyncio.to_thread(self._load)

    async def add_entry(self, entry: InteractionRecord) -> list[InteractionRecord]:
        """Prepend an entry, evict beyond the cap, and return the new list."""

        def _add() -> list[InteractionRecord]:
            entries = self._load()
            entries.insert(0, entry)
            capped = entries[: self._max_entries]
            self._save(capped)
            return capped

        entries = await asyncio.to_thread(_add)
        logger.info("history.entry_added", entry_id=entry.id, total=len(entries))
        return entries

    async def remove_entry(self, entry_id: str) -> list[InteractionRecord]:
        def _remove() -> list[InteractionRecord]:
            entries = [e for e in self._load() if e.id != entry_id]
            self._save(entries)
            return entries

        entries = await asyncio.to_thread(_remove)
        logger.info("history.entry_removed", entry_id=entry_id, total=len(entries))
        return entries

    async def clear(self) -> list[InteractionRecord]:
        await asyncio.to_thread(self._save, [])
        logger.info("history.cleared")
        return []
