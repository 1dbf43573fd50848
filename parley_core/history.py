"""
Append-only record of completed interviews, one JSON object per line.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import aiofiles
from pydantic import ValidationError

from .config import HISTORY_FILE
from .structs import HistoryEntry, HistoryStats

logger = logging.getLogger(__name__)


class HistoryStore:

    def __init__(self, path: Union[str, Path] = HISTORY_FILE):
        self.path = Path(path)

    async def append(self, entry: HistoryEntry) -> HistoryEntry:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
            await f.write(entry.model_dump_json(by_alias=True) + "\n")
        logger.info(f"History: recorded session {entry.id} ({entry.questions_answered} answers)")
        return entry

    async def list_entries(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Entries newest first."""
        if not self.path.exists():
            return []

        entries = []
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            async for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(HistoryEntry.model_validate_json(line))
                except ValidationError as e:
                    logger.warning(f"Skipping unreadable history line: {e.error_count()} errors")

        entries.reverse()
        return entries[:limit] if limit is not None else entries

    async def stats(self) -> HistoryStats:
        entries = await self.list_entries()
        if not entries:
            return HistoryStats()

        scores = [e.score for e in entries if e.score is not None]
        return HistoryStats(
            total_sessions=len(entries),
            average_score=round(sum(scores) / len(scores), 1) if scores else None,
            total_duration_seconds=sum(e.duration_seconds for e in entries),
            total_questions_answered=sum(e.questions_answered for e in entries),
        )
