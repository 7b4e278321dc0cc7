"""Deferred in-use -> done transition for each started cycle.

A firing only writes "done" if the machine is still in use on the cycle it
was armed for, so a timer left over from a stopped or restarted cycle is a
harmless no-op. Failed writes are logged and left to the expiry sweep.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from sudsify.core.clock import Clock, utcnow
from sudsify.core.errors import PersistenceError
from sudsify.core.machine_store import MachineStore

logger = logging.getLogger(__name__)

TimerFactory = Callable[..., threading.Timer]


class CompletionScheduler:
    """Arms one timer per machine cycle and flips the machine to done when it expires."""

    def __init__(
        self,
        store: MachineStore,
        clock: Clock = utcnow,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._store = store
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: Dict[str, Tuple[int, threading.Timer]] = {}

    def arm(self, machine_id: str, end_time: datetime, cycle: int) -> None:
        """Schedule completion of this cycle at end_time (immediately if already past).

        A late arm for an older cycle than the one already pending is ignored.
        """
        delay = max(0.0, (end_time - self._clock()).total_seconds())
        with self._lock:
            previous = self._pending.get(machine_id)
            if previous is not None and previous[0] > cycle:
                logger.debug(
                    "Scheduler: %s cycle %d is older than pending cycle %d, not arming",
                    machine_id,
                    cycle,
                    previous[0],
                )
                return
            timer = self._timer_factory(delay, self._fire, args=(machine_id, cycle))
            timer.daemon = True
            self._pending[machine_id] = (cycle, timer)
        if previous is not None:
            previous[1].cancel()
        timer.start()
        logger.info("Scheduler: armed %s cycle %d in %.0fs", machine_id, cycle, delay)

    def cancel(self, machine_id: str, cycle: Optional[int] = None) -> None:
        """Drop the pending timer for this machine (only if armed for `cycle`, when given)."""
        with self._lock:
            entry = self._pending.get(machine_id)
            if entry is None or (cycle is not None and entry[0] != cycle):
                return
            del self._pending[machine_id]
        entry[1].cancel()
        logger.debug("Scheduler: cancelled %s cycle %d", machine_id, entry[0])

    def pending_cycle(self, machine_id: str) -> Optional[int]:
        with self._lock:
            entry = self._pending.get(machine_id)
        return entry[0] if entry else None

    def _fire(self, machine_id: str, cycle: int) -> bool:
        with self._lock:
            entry = self._pending.get(machine_id)
            if entry is not None and entry[0] == cycle:
                del self._pending[machine_id]
        return self.complete(machine_id, cycle)

    def complete(self, machine_id: str, cycle: int) -> bool:
        """Write done for this cycle. Returns False if superseded or the write failed."""
        try:
            applied = self._store.complete_cycle(machine_id, cycle, self._clock())
        except PersistenceError as e:
            logger.warning("Scheduler: completing %s cycle %d failed: %s", machine_id, cycle, e)
            return False
        if applied:
            logger.info("Scheduler: %s cycle %d done", machine_id, cycle)
        else:
            logger.debug("Scheduler: %s cycle %d superseded, ignoring", machine_id, cycle)
        return applied

    def rearm_pending(self) -> int:
        """Arm timers for every machine persisted as in use (after a restart)."""
        count = 0
        for machine in self._store.list_in_use():
            if machine.end_time is None:
                continue
            self.arm(machine.id, machine.end_time, machine.cycle)
            count += 1
        return count

    def sweep_expired(self) -> int:
        """Complete every in-use cycle whose end time has passed. Returns number completed."""
        now = self._clock()
        completed = 0
        for machine in self._store.list_in_use():
            if machine.end_time is None or machine.end_time > now:
                continue
            if self.complete(machine.id, machine.cycle):
                completed += 1
        return completed

    def shutdown(self) -> None:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for _, timer in entries:
            timer.cancel()
