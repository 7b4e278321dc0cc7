"""Eventually-consistent view of machines and usage for any number of display surfaces.

Subscribers get a bare "something in <table> changed" signal after each
committed write and are expected to re-read. The machine listing is cached
and dropped on every machines notification, so the next read refetches.
"""
import logging
import threading
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from sudsify.core.machine_store import MACHINES_TABLE, MachineStore
from sudsify.models.machine import Machine
from sudsify.models.usage import UsageRecord

logger = logging.getLogger(__name__)

OnChange = Callable[[str], None]


class Subscription:
    """Handle returned by StateView.subscribe; call unsubscribe() on disposal."""

    def __init__(self, view: "StateView", key: int) -> None:
        self._view = view
        self._key = key
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Release the registration. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._view._remove(self._key)


class StateView:
    """Read-through cache over MachineStore with change fan-out."""

    def __init__(self, store: MachineStore) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._subscribers: Dict[int, OnChange] = {}
        self._next_key = 0
        self._machines: Optional[List[Machine]] = None
        self._generation = 0
        store.add_listener(self._on_store_change)

    def close(self) -> None:
        self._store.remove_listener(self._on_store_change)
        with self._lock:
            self._subscribers.clear()
            self._machines = None

    def subscribe(self, on_change: OnChange) -> Subscription:
        """Register a callback invoked at least once per committed write (table name only)."""
        with self._lock:
            key = self._next_key
            self._next_key += 1
            self._subscribers[key] = on_change
        return Subscription(self, key)

    def _remove(self, key: int) -> None:
        with self._lock:
            self._subscribers.pop(key, None)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _on_store_change(self, table: str) -> None:
        with self._lock:
            if table == MACHINES_TABLE:
                self._machines = None
                self._generation += 1
            callbacks = list(self._subscribers.values())
        for callback in callbacks:
            try:
                callback(table)
            except Exception:
                logger.exception("StateView: subscriber failed on %s change", table)

    def list_machines(self) -> List[Machine]:
        """Snapshot of all machines (cached until the next machines change). Callers get copies."""
        with self._lock:
            if self._machines is not None:
                return [replace(m) for m in self._machines]
            generation = self._generation
        machines = self._store.list_machines()
        with self._lock:
            # A write landed while we were reading; don't cache a stale listing.
            if generation == self._generation:
                self._machines = machines
        return [replace(m) for m in machines]

    def get_machine(self, machine_id: str) -> Optional[Machine]:
        """Fresh point-in-time read of one machine."""
        return self._store.get_machine(machine_id)

    def list_usage(self, limit: int, machine_id: Optional[str] = None) -> List[UsageRecord]:
        return self._store.list_usage(limit, machine_id=machine_id)
