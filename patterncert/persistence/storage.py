"""
History Storage

File system storage for assessment history: one JSON file per pattern,
optionally gzip-compressed.
"""

import json
import gzip
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote, unquote

from ..models import AssessmentRecord
from .history import AssessmentHistory

logger = logging.getLogger(__name__)


class FileHistoryStore:
    """
    File system storage for assessment history.

    Usage:
        store = FileHistoryStore("/var/lib/patterncert/history")
        await store.save(history)
        await store.load_into(history, mode="merge")
    """

    def __init__(self, base_path: str, compress: bool = False):
        """
        Initialize file storage.

        Args:
            base_path: Root directory for history files
            compress: Whether to gzip the JSON files
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.compress = compress

        logger.info(f"FileHistoryStore initialized at {self.base_path}")

    def _get_path(self, pattern_id: str) -> Path:
        """File path for a pattern, without suffix; the id is percent-encoded."""
        return self.base_path / quote(pattern_id, safe="")

    async def save_pattern(self, pattern_id: str, records: Sequence[AssessmentRecord]) -> str:
        """Write one pattern's records, replacing the previous file."""
        path = self._get_path(pattern_id)
        json_str = json.dumps(
            {"pattern_id": pattern_id, "records": [r.to_dict() for r in records]},
            indent=2,
        )

        if self.compress:
            path = path.with_name(path.name + ".json.gz")
            with gzip.open(path, "wt", encoding="utf-8") as f:
                f.write(json_str)
        else:
            path = path.with_name(path.name + ".json")
            with open(path, "w", encoding="utf-8") as f:
                f.write(json_str)

        logger.debug(f"Saved {len(records)} records to {path}")
        return str(path.relative_to(self.base_path))

    async def save(self, history: AssessmentHistory) -> List[str]:
        """Write every pattern in the history."""
        return [await self.save_pattern(pid, history.get(pid)) for pid in history.pattern_ids()]

    async def load_pattern(self, pattern_id: str) -> Optional[List[Dict]]:
        """Raw record dicts for a pattern; None when no file exists."""
        path = self._get_path(pattern_id)
        gz_path = path.with_name(path.name + ".json.gz")
        json_path = path.with_name(path.name + ".json")

        if gz_path.exists():
            with gzip.open(gz_path, "rt", encoding="utf-8") as f:
                return json.load(f)["records"]
        if json_path.exists():
            with open(json_path, "r", encoding="utf-8") as f:
                return json.load(f)["records"]
        return None

    async def list_pattern_ids(self) -> List[str]:
        ids = set()
        for path in self.base_path.iterdir():
            if path.name.endswith(".json.gz"):
                ids.add(unquote(path.name[: -len(".json.gz")]))
            elif path.name.endswith(".json"):
                ids.add(unquote(path.name[: -len(".json")]))
        return sorted(ids)

    async def load_into(self, history: AssessmentHistory, mode: str = "merge") -> int:
        """
        Import every stored pattern into a history.

        Returns:
            Number of records added
        """
        patterns = {}
        for pattern_id in await self.list_pattern_ids():
            records = await self.load_pattern(pattern_id)
            if records:
                patterns[records[0]["pattern_id"]] = records
        return history.import_snapshot({"patterns": patterns}, mode=mode)
