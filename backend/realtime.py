"""
Per-user registry of realtime WebSocket connections.

Chat streams run in worker threads, so `send_to_user` hands each send over
to the event loop that owns the socket.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass

from fastapi import WebSocket

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 10.0


@dataclass(eq=False)
class Connection:
    websocket: WebSocket
    loop: asyncio.AbstractEventLoop


class ConnectionHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._connections: dict[str, list[Connection]] = {}

    def register(self, user_id: str, websocket: WebSocket) -> Connection:
        connection = Connection(websocket=websocket, loop=asyncio.get_running_loop())
        with self._lock:
            self._connections.setdefault(user_id, []).append(connection)
        logger.info("Realtime connection registered for %s", user_id)
        return connection

    def unregister(self, user_id: str, connection: Connection) -> None:
        with self._lock:
            connections = self._connections.get(user_id, [])
            if connection in connections:
                connections.remove(connection)
            if not connections:
                self._connections.pop(user_id, None)

    def connection_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._connections.get(user_id, []))

    def send_to_user(self, user_id: str, event: str, payload: dict) -> int:
        """
        Sends `{"event": event, "data": payload}` to every connection of the
        user and drops the ones that fail. Returns the number delivered.
        """
        with self._lock:
            connections = list(self._connections.get(user_id, []))

        message = {"event": event, "data": payload}
        delivered = 0
        for connection in connections:
            try:
                self._send(user_id, connection, message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping realtime connection for %s: %s", user_id, e)
                self.unregister(user_id, connection)
        return delivered

    def _send(self, user_id: str, connection: Connection, message: dict) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is connection.loop:
            task = connection.loop.create_task(connection.websocket.send_json(message))
            task.add_done_callback(
                lambda done: self._drop_on_failure(user_id, connection, done)
            )
            return
        future = asyncio.run_coroutine_threadsafe(
            connection.websocket.send_json(message), connection.loop
        )
        future.result(timeout=SEND_TIMEOUT_SECONDS)

    def _drop_on_failure(
        self, user_id: str, connection: Connection, task: asyncio.Task
    ) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Dropping realtime connection for %s: %s", user_id, error)
            self.unregister(user_id, connection)
