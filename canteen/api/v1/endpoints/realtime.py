"""WebSocket bridge from the realtime hub to browsers and API clients."""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, status

from canteen.services.realtime import ALL_EVENTS, ChangeEvent

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)

REALTIME_TABLES: tuple[str, ...] = ("menu_items", "menu_updates")


@router.websocket("/realtime")
async def realtime_feed(websocket: WebSocket, apikey: str | None = None, table: str | None = None) -> None:
    """Push ``{"table", "event", "committed_at"}`` for every committed change."""
    app_state = websocket.app.state
    if getattr(app_state, "config_error", None) is not None or apikey != app_state.connection.anon_key:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if table is not None and table not in REALTIME_TABLES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()

    def _forward(change: ChangeEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, change)

    channel = app_state.hub.channel(f"websocket-{id(websocket)}")
    for name in (table,) if table else REALTIME_TABLES:
        channel.on(name, ALL_EVENTS, _forward)
    channel.subscribe()
    await websocket.accept()
    logger.info("[REALTIME] WebSocket subscriber connected (table=%s)", table or "all")

    async def _push() -> None:
        while True:
            change = await queue.get()
            await websocket.send_json(change.as_dict())

    async def _wait_for_disconnect() -> None:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    tasks = {asyncio.create_task(_push()), asyncio.create_task(_wait_for_disconnect())}
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning("[REALTIME] WebSocket closed with error: %s", task.exception())
    finally:
        channel.unsubscribe()
        logger.info("[REALTIME] WebSocket subscriber disconnected")
