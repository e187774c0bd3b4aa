"""
Generic in-memory entity manager.

Each manager owns one collection of plain ``dict`` records keyed by a string
``id``.  Records are copied on the way in and on the way out so callers can
never mutate the stored state.  A short ``time.sleep`` before every operation
stands in for a network round trip; the delays are scaled by
``latency_scale`` and are disabled when it is ``0``.
"""
from __future__ import annotations

import copy
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

Record = Dict[str, Any]

# Simulated round-trip delays, in seconds.
LATENCY = {
    'list': 0.100,
    'get': 0.050,
    'create': 0.200,
    'update': 0.150,
    'delete': 0.100,
}

# Fields the caller may never set through create/update.
PROTECTED_FIELDS = ('id', 'created_at', 'updated_at')


def iso_timestamp(ms: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f'{ms % 1000:03d}Z'


def _matches(value: Any, expected: Any) -> bool:
    if value == expected:
        return True
    if value is None:
        return False
    if isinstance(value, bool):
        return str(value).lower() == str(expected).lower()
    return str(value) == str(expected)


class EntityManager:
    """Array-backed CRUD over one entity collection."""

    def __init__(self, name: str, initial: Iterable[Record] = (), latency_scale: float = 0.0) -> None:
        self.name = name
        self.latency_scale = latency_scale
        self._lock = threading.Lock()
        self._initial: List[Record] = [copy.deepcopy(r) for r in initial]
        self._records: List[Record] = copy.deepcopy(self._initial)
        self._last_ms = 0

    def __repr__(self) -> str:
        return f'<EntityManager {self.name} ({len(self._records)} records)>'

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _delay(self, op: str) -> None:
        if self.latency_scale > 0:
            time.sleep(LATENCY[op] * self.latency_scale)

    def _next_ms(self) -> int:
        """Millisecond clock that never repeats and never goes backwards."""
        now = int(time.time() * 1000)
        if now <= self._last_ms:
            now = self._last_ms + 1
        taken = {r.get('id') for r in self._records}
        while str(now) in taken:
            now += 1
        self._last_ms = now
        return now

    def _index(self, record_id: Any) -> int:
        key = str(record_id)
        for i, record in enumerate(self._records):
            if str(record.get('id')) == key:
                return i
        return -1

    @staticmethod
    def _clean(data: Optional[Record]) -> Record:
        return {k: copy.deepcopy(v) for k, v in (data or {}).items() if k not in PROTECTED_FIELDS}

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    def list(self) -> List[Record]:
        self._delay('list')
        with self._lock:
            return copy.deepcopy(self._records)

    def get(self, record_id: Any) -> Optional[Record]:
        self._delay('get')
        with self._lock:
            idx = self._index(record_id)
            if idx == -1:
                return None
            return copy.deepcopy(self._records[idx])

    def create(self, data: Record) -> Record:
        self._delay('create')
        with self._lock:
            ms = self._next_ms()
            record = self._clean(data)
            record['id'] = str(ms)
            record['created_at'] = iso_timestamp(ms)
            self._records.append(record)
            return copy.deepcopy(record)

    def update(self, record_id: Any, patch: Record) -> Optional[Record]:
        self._delay('update')
        with self._lock:
            idx = self._index(record_id)
            if idx == -1:
                return None
            record = dict(self._records[idx])
            record.update(self._clean(patch))
            record['updated_at'] = iso_timestamp(self._next_ms())
            self._records[idx] = record
            return copy.deepcopy(record)

    def delete(self, record_id: Any) -> bool:
        self._delay('delete')
        with self._lock:
            idx = self._index(record_id)
            if idx == -1:
                return False
            del self._records[idx]
            return True

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def filter(self, **fields: Any) -> List[Record]:
        """Records whose fields equal every given value (string-coerced)."""
        self._delay('list')
        with self._lock:
            return [
                copy.deepcopy(r) for r in self._records
                if all(_matches(r.get(k), v) for k, v in fields.items())
            ]

    def reset(self) -> None:
        """Restore the collection to its seed records."""
        with self._lock:
            self._records = copy.deepcopy(self._initial)
