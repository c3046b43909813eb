import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger("vibecheck.broadcast")


class Broadcaster:
    """Connected presenter websockets and fan-out of JSON messages to them."""

    def __init__(self) -> None:
        self.websockets: list[WebSocket] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def has_clients(self) -> bool:
        return bool(self.websockets)

    def add(self, websocket: WebSocket) -> None:
        self.websockets.append(websocket)

    def remove(self, websocket: WebSocket) -> None:
        if websocket in self.websockets:
            self.websockets.remove(websocket)

    async def send_to_all(self, message: dict) -> None:
        """Broadcast *message* to every client, dropping the ones that fail."""
        for ws in list(self.websockets):
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.debug("event=ws_send_failed error=%s", exc)
                self.remove(ws)

    def publish(self, message: dict) -> None:
        """Schedule :meth:`send_to_all` without waiting for it."""
        if not self.websockets:
            return
        task = asyncio.get_running_loop().create_task(self.send_to_all(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
