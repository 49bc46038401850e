from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class GameUpdateHub:
    """In-process WebSocket fan-out of game change notifications, keyed by game_id.

    Notifications are small JSON dicts such as
    `{"type": "time_advanced", "game_id": "...", "triggered_count": 2}`;
    subscribers re-fetch whatever they display.
    Single process only; several API replicas would need Redis pub/sub instead.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, game_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers[game_id].add(websocket)

    async def disconnect(self, game_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            subs = self._subscribers.get(game_id)
            if subs is None:
                return
            subs.discard(websocket)
            if not subs:
                del self._subscribers[game_id]

    def subscriber_count(self, game_id: str) -> int:
        return len(self._subscribers.get(game_id, ()))

    async def notify(self, game_id: str, kind: str, **fields: object) -> None:
        await self.broadcast(game_id, {"type": kind, "game_id": game_id, **fields})

    async def broadcast(self, game_id: str, payload: dict[str, object]) -> None:
        async with self._lock:
            subs = list(self._subscribers.get(game_id, ()))

        stale: list[WebSocket] = []
        for ws in subs:
            try:
                await ws.send_json(payload)
            except Exception:
                logger.debug("dropping dead websocket for game %s", game_id)
                stale.append(ws)

        for ws in stale:
            await self.disconnect(game_id, ws)


hub = GameUpdateHub()
