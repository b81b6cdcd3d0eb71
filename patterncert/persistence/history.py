"""
Assessment History

Append-only, per-pattern log of assessment records, oldest first.
Records are never modified or removed; import can replace a pattern's log
wholesale or merge into it.
"""

import json
import logging
import threading
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from ..models import AssessmentRecord

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
IMPORT_MODES = ("replace", "merge")


class AssessmentHistory:
    """
    In-memory assessment history.

    Usage:
        history = AssessmentHistory()
        history.append(record)
        prior = history.get("summarize")
        snapshot = history.export_snapshot()
    """

    def __init__(self):
        self._records: Dict[str, List[AssessmentRecord]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, pattern_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(pattern_id)
            if lock is None:
                lock = self._locks[pattern_id] = threading.Lock()
            return lock

    def append(self, record: AssessmentRecord):
        """
        Append a record to its pattern's log.

        Raises:
            ValueError: If the record is older than the pattern's latest record
        """
        with self._lock_for(record.pattern_id):
            records = self._records.setdefault(record.pattern_id, [])
            if records and record.timestamp < records[-1].timestamp:
                raise ValueError(
                    f"Record for {record.pattern_id} at {record.timestamp.isoformat()} "
                    f"is older than the latest at {records[-1].timestamp.isoformat()}"
                )
            records.append(record)
        logger.debug(f"History {record.pattern_id}: {len(records)} records")

    def get(self, pattern_id: str) -> Tuple[AssessmentRecord, ...]:
        """Records for a pattern, oldest first."""
        with self._lock_for(pattern_id):
            return tuple(self._records.get(pattern_id, ()))

    def latest(self, pattern_id: str) -> Optional[AssessmentRecord]:
        records = self.get(pattern_id)
        return records[-1] if records else None

    def latest_records(self) -> List[AssessmentRecord]:
        """Most recent record of every pattern."""
        return [r for r in (self.latest(pid) for pid in self.pattern_ids()) if r is not None]

    def pattern_ids(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._records)

    def __contains__(self, pattern_id: str) -> bool:
        return bool(self.get(pattern_id))

    def __iter__(self) -> Iterator[AssessmentRecord]:
        for pattern_id in self.pattern_ids():
            yield from self.get(pattern_id)

    def __len__(self) -> int:
        return sum(len(self.get(pid)) for pid in self.pattern_ids())

    # ========================================================================
    # EXPORT / IMPORT
    # ========================================================================

    def export_snapshot(self) -> Dict[str, Any]:
        """Whole history as a JSON-serialisable dict."""
        return {
            "version": SNAPSHOT_VERSION,
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "patterns": {
                pattern_id: [r.to_dict() for r in self.get(pattern_id)]
                for pattern_id in self.pattern_ids()
            },
        }

    def export_json(self, indent: int = 2) -> str:
        return json.dumps(self.export_snapshot(), indent=indent)

    def import_snapshot(self, data: Union[str, Dict[str, Any]], mode: str = "merge") -> int:
        """
        Load records from a snapshot.

        Args:
            data: Snapshot dict or its JSON text
            mode: "replace" swaps each imported pattern's log for the
                snapshot's; "merge" adds records whose timestamps are new.
                Patterns absent from the snapshot are untouched.

        Returns:
            Number of records added

        Raises:
            ValueError: On an unknown mode or malformed snapshot
        """
        if mode not in IMPORT_MODES:
            raise ValueError(f"Unknown import mode: {mode!r} (expected one of {', '.join(IMPORT_MODES)})")
        if isinstance(data, str):
            data = json.loads(data)

        patterns = data.get("patterns") if isinstance(data, dict) else None
        if not isinstance(patterns, dict):
            raise ValueError("Snapshot has no 'patterns' mapping")

        parsed: Dict[str, List[AssessmentRecord]] = {}
        for pattern_id, raw_records in patterns.items():
            try:
                parsed[pattern_id] = [AssessmentRecord.from_dict(r) for r in raw_records]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Malformed record for {pattern_id}: {e}") from e

        # Nothing is committed until every pattern has parsed
        added = 0
        with ExitStack() as stack:
            for pattern_id in sorted(parsed):
                stack.enter_context(self._lock_for(pattern_id))

            for pattern_id, incoming in parsed.items():
                if mode == "replace":
                    merged = sorted(incoming, key=lambda r: r.timestamp)
                    added += len(merged)
                else:
                    existing = self._records.get(pattern_id, [])
                    seen = {r.timestamp for r in existing}
                    new = [r for r in incoming if r.timestamp not in seen]
                    merged = sorted(existing + new, key=lambda r: r.timestamp)
                    added += len(new)
                self._records[pattern_id] = merged

        logger.info(f"Imported {added} records for {len(parsed)} patterns ({mode})")
        return added
