"""
Status Store
============
Keyed storage for progress records (client_id → ProgressRecord).

Semantics:
    - put() is a full overwrite; the last write for a client_id wins
    - get() never creates entries; unknown ids return None
    - Entries expire ttl_seconds after their last write

Routes depend on the StatusStore interface through get_status_store(),
so a shared backend (Redis, a database table) can replace the in-memory
implementation without touching the callers.
"""
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from portal.core.config import STATUS_TTL_SECONDS
from portal.models.progress_record import ProgressRecord

logger = logging.getLogger(__name__)


class StatusStore(ABC):

    @abstractmethod
    def get(self, client_id: str) -> Optional[ProgressRecord]:
        ...

    @abstractmethod
    def put(self, record: ProgressRecord) -> None:
        ...


class InMemoryStatusStore(StatusStore):
    """
    Process-local store with per-entry TTL.

    Usage:
        store = InMemoryStatusStore(ttl_seconds=3600)
        store.put(record)
        store.get(record.client_id)
    """

    def __init__(
        self,
        ttl_seconds: int = STATUS_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # client_id → (record, written_at)
        self._records: Dict[str, Tuple[ProgressRecord, float]] = {}
        self._lock = threading.Lock()

    def _expired(self, written_at: float, now: float) -> bool:
        return self.ttl_seconds > 0 and now - written_at >= self.ttl_seconds

    def get(self, client_id: str) -> Optional[ProgressRecord]:
        with self._lock:
            entry = self._records.get(client_id)
            if entry is None:
                return None
            record, written_at = entry
            if self._expired(written_at, self._clock()):
                del self._records[client_id]
                logger.info("Status for %s expired", client_id)
                return None
            return record.model_copy(deep=True)

    def put(self, record: ProgressRecord) -> None:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._records[record.client_id] = (record.model_copy(deep=True), now)

    def delete(self, client_id: str) -> bool:
        with self._lock:
            return self._records.pop(client_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def _sweep(self, now: float) -> None:
        expired = [cid for cid, (_, ts) in self._records.items() if self._expired(ts, now)]
        for client_id in expired:
            del self._records[client_id]
        if expired:
            logger.info("Evicted %d expired status record(s)", len(expired))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


_store: StatusStore = InMemoryStatusStore()


def get_status_store() -> StatusStore:
    """FastAPI dependency returning the process-wide store."""
    return _store
