"""
Sandbox WebSocket Client

Plays the plugin side of the bridge: connects to the bridge's loopback
server, receives commands, runs them against a scene document and writes
back one Response per command.

Usage:
    forage sandbox --document design.json [--url ws://127.0.0.1:18412]

Environment Variables:
    FORAGE_DOCUMENT              Scene document to serve
    FORAGE_WS_HOST/FORAGE_WS_PORT Bridge address
    FORAGE_RECONNECT_MAX_DELAY   Backoff cap in seconds (default: 30)
"""

import asyncio
import json
import logging
import random
from typing import Any, Dict, Optional

import websockets

from forage.app.services.sandbox.dispatcher import CommandDispatcher
from forage.app.services.sandbox.handlers import SceneCommandHandlers
from forage.app.services.scene.document import SceneDocument

logger = logging.getLogger(__name__)


class SandboxClient:
    """
    Reconnecting sandbox-side client

    Each inbound command runs in its own task, so responses may be written
    out of order; the bridge matches them by id.
    """

    # Reconnect settings
    RECONNECT_BASE_DELAY: float = 1.0
    RECONNECT_MAX_DELAY: float = 30.0

    def __init__(
        self,
        document: SceneDocument,
        url: str,
        reconnect_max_delay: Optional[float] = None,
    ):
        self.document = document
        self.url = url
        self.dispatcher = CommandDispatcher(SceneCommandHandlers(document))
        if reconnect_max_delay is not None:
            self.RECONNECT_MAX_DELAY = reconnect_max_delay

        self._ws = None
        self._running = False
        self._reconnect_attempt = 0
        self._tasks: set = set()
        self._connected = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def wait_until_connected(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._connected.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ============================================================
    #  Main lifecycle
    # ============================================================

    async def run(self) -> None:
        """Main entry point -- connect with auto-reconnect."""
        self._running = True
        logger.info(f"Starting sandbox client for {self.document.name!r} -> {self.url}")

        while self._running:
            try:
                await self._connect_and_listen()
            except (OSError, websockets.WebSocketException) as e:
                if not self._running:
                    break
                delay = self._backoff_delay()
                logger.warning(
                    f"Connection lost: {e}. "
                    f"Reconnecting in {delay:.1f}s "
                    f"(attempt {self._reconnect_attempt})..."
                )
                await asyncio.sleep(delay)
            else:
                if self._running:
                    delay = self._backoff_delay()
                    logger.warning(f"Bridge closed the connection. Reconnecting in {delay:.1f}s...")
                    await asyncio.sleep(delay)

    async def stop(self) -> None:
        """Graceful shutdown."""
        self._running = False
        if self._ws is not None:
            await self._ws.close()
        for task in list(self._tasks):
            task.cancel()
        logger.info("Sandbox client stopped")

    # ============================================================
    #  Connection
    # ============================================================

    async def _connect_and_listen(self) -> None:
        """Single connection lifecycle."""
        logger.info(f"Connecting to {self.url}")

        async with websockets.connect(self.url) as ws:
            self._ws = ws
            self._reconnect_attempt = 0
            self._connected.set()
            logger.info("Connected to bridge")

            try:
                async for raw_msg in ws:
                    try:
                        msg = json.loads(raw_msg)
                    except json.JSONDecodeError:
                        logger.warning(f"Invalid JSON: {str(raw_msg)[:100]}")
                        continue
                    self._spawn(msg)
            except websockets.ConnectionClosed as e:
                logger.warning(f"Bridge connection closed: {e}")
            finally:
                self._ws = None
                self._connected.clear()

    def _backoff_delay(self) -> float:
        """Exponential backoff with jitter."""
        self._reconnect_attempt += 1
        delay = min(
            self.RECONNECT_BASE_DELAY * (2 ** (self._reconnect_attempt - 1)),
            self.RECONNECT_MAX_DELAY,
        )
        return delay + random.uniform(0, delay * 0.1)

    # ============================================================
    #  Message handling
    # ============================================================

    def _spawn(self, msg: Any) -> None:
        task = asyncio.create_task(self._handle_message(msg))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_message(self, msg: Any) -> None:
        """Run one command and write back its Response."""
        if not isinstance(msg, dict):
            logger.warning(f"Ignoring non-object frame: {type(msg).__name__}")
            return

        response = await self.dispatcher.handle_raw(msg)
        if response is not None:
            await self._send(response)

    # ============================================================
    #  Send helpers
    # ============================================================

    async def _send(self, msg: Dict[str, Any]) -> None:
        """Send a JSON message over WebSocket."""
        if self._ws is None:
            logger.warning(f"Dropping response {msg.get('id')}: not connected")
            return
        try:
            await self._ws.send(json.dumps(msg, ensure_ascii=False))
        except websockets.ConnectionClosed:
            logger.warning(f"Dropping response {msg.get('id')}: connection closed")
