"""
Plugin Bridge

Loopback WebSocket server that multiplexes concurrent commands over the single
connection opened by the sandbox plugin.

- One live connection at most; a newer connection evicts the older one
- Every command gets a correlation id and a pending entry with its own timer
- A pending entry is settled exactly once: by its response, its timeout, or the
  loss of the connection it was sent on
"""

import asyncio
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import websockets
from pydantic import ValidationError

from forage.app.models.protocol import BridgeStatus, Command, Response
from forage.app.shared.config import REQUEST_TIMEOUT_SECONDS, WS_PORT
from forage.app.shared.error_handler import (
    ForageError,
    InvalidParamsError,
    PluginDisconnectedError,
    PluginNotConnectedError,
    RequestTimeoutError,
    error_from_payload,
)

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "Not connected to Figma plugin. Is the Forage plugin running in Figma?"


@dataclass
class _PendingRequest:
    id: str
    method: str
    future: asyncio.Future
    timer: asyncio.TimerHandle
    connection: Any


class PluginBridge:
    """
    Correlation bridge to the sandbox plugin

    Example:
        bridge = PluginBridge(port=0)
        await bridge.start()
        pages = await bridge.send("getPages")
        await bridge.close()
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = WS_PORT,
        request_timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.host = host
        self.requested_port = port
        self.request_timeout = request_timeout

        self._server = None
        self._connection = None
        self._pending_requests: Dict[str, _PendingRequest] = {}
        self._request_counter = 0
        self._lock = threading.Lock()
        self._connected_event = asyncio.Event()
        self._background_tasks: set = set()

    # ============================================================
    #  Lifecycle
    # ============================================================

    async def start(self) -> None:
        """Bind the loopback server; port 0 picks a free port"""
        if self._server is not None:
            logger.warning("Plugin bridge already started")
            return

        self._server = await websockets.serve(self._handle_connection, self.host, self.requested_port)
        logger.info(f"Plugin bridge listening on ws://{self.host}:{self.port}")

    async def close(self) -> None:
        """Reject everything pending and stop the server"""
        self._reject_pending(PluginDisconnectedError("Plugin bridge closed"))
        self._connection = None
        self._connected_event.clear()

        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Plugin bridge closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def port(self) -> Optional[int]:
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending_requests)

    def status(self) -> BridgeStatus:
        return BridgeStatus(
            connected=self.connected,
            port=self.port,
            pending_requests=self.pending_count,
        )

    async def wait_until_connected(self, timeout: Optional[float] = None) -> bool:
        """Wait for a sandbox connection; False if the timeout elapses first"""
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ============================================================
    #  Sending
    # ============================================================

    def _next_request_id(self) -> str:
        self._request_counter += 1
        return str(self._request_counter)

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send one command and wait for its response

        Args:
            method: command method name
            params: optional command parameters

        Returns:
            The response's result value

        Raises:
            PluginNotConnectedError: no live connection (nothing is queued)
            RequestTimeoutError: no response within request_timeout
            PluginDisconnectedError: connection lost while waiting
            ForageError: the sandbox answered with an error
        """
        connection = self._connection
        if connection is None:
            raise PluginNotConnectedError(NOT_CONNECTED_MESSAGE)

        loop = asyncio.get_running_loop()
        request_id = self._next_request_id()
        command = Command(id=request_id, method=str(method), params=params)
        try:
            raw = json.dumps(command.to_wire())
        except (TypeError, ValueError) as e:
            raise InvalidParamsError(f"Params for {command.method} are not JSON-serializable: {e}")

        future = loop.create_future()
        timer = loop.call_later(self.request_timeout, self._on_timeout, request_id)
        with self._lock:
            self._pending_requests[request_id] = _PendingRequest(
                id=request_id,
                method=command.method,
                future=future,
                timer=timer,
                connection=connection,
            )

        try:
            await connection.send(raw)
        except (websockets.ConnectionClosed, OSError) as e:
            logger.warning(f"Failed to send {command.method} (id={request_id}): {e}")
            self._settle(request_id, error=PluginDisconnectedError(f"Figma plugin disconnected: {e}"))

        return await future

    # ============================================================
    #  Settlement
    # ============================================================

    def _settle(self, request_id: str, result: Any = None, error: Optional[ForageError] = None) -> bool:
        """Remove a pending entry and resolve or reject it; False if already gone"""
        with self._lock:
            entry = self._pending_requests.pop(request_id, None)
        if entry is None:
            return False

        entry.timer.cancel()
        if not entry.future.done():
            if error is not None:
                entry.future.set_exception(error)
            else:
                entry.future.set_result(result)
        return True

    def _on_timeout(self, request_id: str) -> None:
        entry = self._pending_requests.get(request_id)
        if entry is None:
            return
        logger.warning(f"Request {request_id} ({entry.method}) timed out")
        self._settle(
            request_id,
            error=RequestTimeoutError(f"Request timed out after {self.request_timeout:g}s: {entry.method}"),
        )

    def _reject_pending(self, error: ForageError, connection: Any = None) -> int:
        """Reject entries sent on connection (all entries if None)"""
        with self._lock:
            request_ids: List[str] = [
                entry.id
                for entry in self._pending_requests.values()
                if connection is None or entry.connection is connection
            ]
        rejected = sum(1 for request_id in request_ids if self._settle(request_id, error=error))
        if rejected:
            logger.info(f"Rejected {rejected} pending request(s): {error.message}")
        return rejected

    # ============================================================
    #  Connection events
    # ============================================================

    async def _handle_connection(self, connection) -> None:
        """Single connection lifecycle"""
        self._on_connection_open(connection)
        try:
            async for raw_msg in connection:
                self._on_message(raw_msg)
        except websockets.ConnectionClosed as e:
            logger.warning(f"Plugin connection error: {e}")
        finally:
            self._on_connection_closed(connection)

    def _on_connection_open(self, connection) -> None:
        previous = self._connection
        if previous is not None and previous is not connection:
            logger.info("New plugin connection replacing existing one")
            self._reject_pending(PluginDisconnectedError("Figma plugin disconnected"), connection=previous)
            task = asyncio.get_running_loop().create_task(previous.close())
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        self._connection = connection
        self._connected_event.set()
        logger.info("Figma plugin connected")

    def _on_connection_closed(self, connection) -> None:
        self._reject_pending(PluginDisconnectedError("Figma plugin disconnected"), connection=connection)
        if self._connection is connection:
            self._connection = None
            self._connected_event.clear()
            logger.info("Figma plugin disconnected")

    def _on_message(self, raw_msg: Any) -> None:
        """Match an inbound frame to its pending request; stray frames are dropped"""
        if isinstance(raw_msg, bytes):
            raw_msg = raw_msg.decode("utf-8", errors="replace")

        try:
            response = Response.model_validate(json.loads(raw_msg))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to parse plugin response: {e}")
            return

        if response.id not in self._pending_requests:
            logger.debug(f"Dropping response for unknown request id {response.id}")
            return

        if response.error is not None:
            self._settle(response.id, error=error_from_payload(response.error.model_dump()))
        else:
            self._settle(response.id, result=response.result)
