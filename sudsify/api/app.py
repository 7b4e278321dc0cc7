"""FastAPI app, CORS, and route registration."""
import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (so scheduler/lifecycle INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from sudsify.api.state import AppState, get_state
from sudsify.config import SWEEP_INTERVAL_SEC
from sudsify.core.errors import LaundryError

# Import routes after state to avoid circular imports
from sudsify.api.routes import admin, events, machines, programs

__all__ = ["app", "AppState", "get_state"]

logger = logging.getLogger(__name__)


def _expiry_sweep_loop(state: AppState, stop_event: threading.Event) -> None:
    """Background loop: complete in-use cycles whose end time passed without a timer write."""
    while not stop_event.wait(timeout=SWEEP_INTERVAL_SEC):
        try:
            completed = state.scheduler.sweep_expired()
            if completed:
                logger.info("Expiry sweep: %d cycles completed", completed)
        except LaundryError as e:
            logger.warning("Expiry sweep: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = get_state()
    state.start()

    _sweep_stop = threading.Event()
    _sweep_thread = threading.Thread(
        target=_expiry_sweep_loop,
        args=(state, _sweep_stop),
        daemon=True,
    )
    _sweep_thread.start()
    logger.info("Expiry sweep thread started (interval %.1fs)", SWEEP_INTERVAL_SEC)

    yield

    _sweep_stop.set()
    _sweep_thread.join(timeout=5.0)
    state.stop()


app = FastAPI(
    title="Sudsify API",
    description="Shared laundry room: machine status, program start/stop, usage history",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(machines.router, prefix="/api/machines", tags=["machines"])
app.include_router(programs.router, prefix="/api/programs", tags=["programs"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(events.router, prefix="/api/events", tags=["events"])
