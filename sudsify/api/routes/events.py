"""Server-Sent Events: push a full machine snapshot after every change."""
import asyncio
import json
import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from sudsify.api.routes.machines import machine_to_dict
from sudsify.api.state import AppState, get_state
from sudsify.config import SSE_KEEPALIVE_SEC
from sudsify.core.errors import LaundryError

logger = logging.getLogger(__name__)

router = APIRouter()


def snapshot_event(state: AppState, changed: List[str]) -> str:
    """One SSE message carrying every machine; `changed` lists the tables that triggered it."""
    now = state.clock()
    payload = {
        "changed": changed,
        "machines": [machine_to_dict(m, now) for m in state.view.list_machines()],
    }
    return f"data: {json.dumps(payload, sort_keys=True)}\n\n"


async def event_stream(request: Request, state: AppState, keepalive_sec: float = SSE_KEEPALIVE_SEC):
    """Yield SSE messages until the client goes away.

    Subscribes on first iteration, so a response that is never streamed
    leaves nothing registered.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(table: str) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, table)

    subscription = state.view.subscribe(on_change)
    try:
        yield await run_in_threadpool(snapshot_event, state, [])
        while True:
            if await request.is_disconnected():
                logger.debug("SSE: client disconnected")
                break
            try:
                table = await asyncio.wait_for(queue.get(), timeout=keepalive_sec)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            # Collapse a burst of notifications into one refetch
            tables = {table}
            while not queue.empty():
                tables.add(queue.get_nowait())
            try:
                yield await run_in_threadpool(snapshot_event, state, sorted(tables))
            except LaundryError as e:
                logger.warning("SSE: snapshot failed: %s", e)
    finally:
        subscription.unsubscribe()


@router.get("")
async def machine_events(request: Request, state: AppState = Depends(get_state)):
    """Stream machine snapshots; clients re-fetch usage when "machine_usage" is in changed."""
    return StreamingResponse(event_stream(request, state), media_type="text/event-stream")
