"""Shared application state (injected into routes)."""
import logging
import threading
from pathlib import Path
from typing import Optional, Union

from fastapi import Depends, Header

from sudsify.config import DB_PATH, SEED_MACHINES, STOP_POLICY, ensure_data_dir
from sudsify.core.clock import Clock, utcnow
from sudsify.core.completion_scheduler import CompletionScheduler, TimerFactory
from sudsify.core.lifecycle import LifecycleController
from sudsify.core.machine_store import MachineStore
from sudsify.core.state_view import StateView
from sudsify.models.session import Session

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class AppState:
    def __init__(
        self,
        db_path: Union[str, Path] = DB_PATH,
        *,
        clock: Clock = utcnow,
        timer_factory: TimerFactory = threading.Timer,
        stop_policy: str = STOP_POLICY,
        seed_machines: bool = SEED_MACHINES,
    ) -> None:
        self.clock = clock
        self._seed_machines = seed_machines
        self.store = MachineStore(db_path)
        self.store.init_schema()
        self.view = StateView(self.store)
        self.scheduler = CompletionScheduler(self.store, clock=clock, timer_factory=timer_factory)
        self.lifecycle = LifecycleController(
            self.store, self.scheduler, clock=clock, stop_policy=stop_policy
        )

    def start(self) -> None:
        """Seed the fleet, finish cycles that expired while down, re-arm the rest."""
        if self._seed_machines:
            self.store.seed_default_machines()
        completed = self.scheduler.sweep_expired()
        armed = self.scheduler.rearm_pending()
        logger.info("Startup: %d expired cycles completed, %d timers re-armed", completed, armed)

    def stop(self) -> None:
        self.scheduler.shutdown()

    def session_for(self, user_id: Optional[str]) -> Session:
        if not user_id:
            return Session()
        return Session(user_id=user_id, is_admin=self.store.has_role(user_id, ADMIN_ROLE))


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        ensure_data_dir()
        _state = AppState()
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Replace the process-wide state (tests, embedding)."""
    global _state
    _state = state


def get_session(
    x_user_id: Optional[str] = Header(None),
    state: AppState = Depends(get_state),
) -> Session:
    """Session for the caller identified by the X-User-Id header (anonymous if absent)."""
    return state.session_for(x_user_id)
