"""
Session controller for the heat-pump websocket protocol.

Drives one transport session through three states::

    DISCONNECTED --open--> CONNECTED --navigation--> SUBSCRIBED
         ^                     |                         |
         +-------close/error---+-------------------------+

- On open the controller sends ``LOGIN;<password>`` and is CONNECTED.
- The first message carrying a navigation tree is scanned for the
  ``Informationen`` entry; its ``id`` becomes the request id.  The
  controller sends ``GET;<id>`` at once and starts a timer that repeats
  the request every ``update_interval_s`` seconds.  Later navigation
  payloads are ignored.
- Any message carrying content is filtered, flattened and saved,
  whatever the handshake state.
- Close/error cancel the timer synchronously and return to DISCONNECTED.
  A new open resets the handshake.

Everything runs on one asyncio loop; message handling and timer firings
never overlap in a way that needs locking.

CHANGELOG:
- 2026-10-17: Reset handshake on reopen so reconnects resubscribe
- 2026-10-16: Throttle snapshot save logging to once per 30 seconds
- 2026-10-14: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from heatpump.src.filters import apply_filters
from heatpump.src.flattener import flatten_category_tree
from heatpump.src.health import HealthWriter
from heatpump.src.markup import parse_message
from heatpump.src.models import SaveResult

if TYPE_CHECKING:
    from heatpump.src.config import FilterRule
    from heatpump.src.models import Node
    from heatpump.src.store import SnapshotStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

REQUEST_LABEL: str = "Informationen"
"""Navigation entry whose id is used for data requests."""

SAVE_LOG_INTERVAL_S: float = 30.0
"""Minimum seconds between snapshot save log lines."""


class SessionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"


class Transport(Protocol):
    """The part of a websocket connection the controller uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...


def login_command(password: str = "0") -> str:
    return f"LOGIN;{password}"


def request_command(request_id: str) -> str:
    return f"GET;{request_id}"


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class SessionController:
    """Handshake, polling timer and content ingestion for one heat pump.

    Args:
        store: Opened snapshot store.
        import_values: Category name -> filter rule.
        update_interval_s: Seconds between periodic data requests.
        password: Login PIN.
        health: HealthWriter instance, or None to skip health writes.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        import_values: Mapping[str, FilterRule],
        update_interval_s: float = 5,
        password: str = "0",
        health: HealthWriter | None = None,
    ) -> None:
        self._store = store
        self._import_values = import_values
        self._update_interval_s = update_interval_s
        self._password = password
        self._health = health

        self._state = SessionState.DISCONNECTED
        self._transport: Transport | None = None
        self._request_id: str | None = None
        self._handshake_done = False
        self._timer_task: asyncio.Task[None] | None = None

        self._total_saved = 0
        self._last_save_log = 0.0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def request_id(self) -> str | None:
        return self._request_id

    @property
    def handshake_done(self) -> bool:
        return self._handshake_done

    @property
    def total_saved(self) -> int:
        """Category rows saved since the controller was created."""
        return self._total_saved

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    async def on_open(self, transport: Transport) -> None:
        """Handle a successful connect: log in and await navigation."""
        self._cancel_timer()
        self._transport = transport
        self._request_id = None
        self._handshake_done = False
        self._set_state(SessionState.CONNECTED)
        await transport.send(login_command(self._password))

    async def on_message(self, payload: str | bytes) -> None:
        """Handle one received payload.

        Malformed payloads are dropped.  Content is ingested before the
        navigation handshake is looked at.
        """
        self._write_health(HealthWriter.record_message)

        message = parse_message(payload)
        if message is None:
            return

        if message.content is not None:
            try:
                await self.ingest_content(message.content)
            except Exception:
                logger.error("Content ingestion error", exc_info=True)

        if not self._handshake_done and message.navigation:
            await self._setup_request(message.navigation)

    def on_close(self) -> None:
        """Handle transport close: stop polling and drop the transport."""
        self._cancel_timer()
        self._transport = None
        if self._state is not SessionState.DISCONNECTED:
            logger.info("Connection closed")
            self._set_state(SessionState.DISCONNECTED)

    def on_error(self, exc: BaseException) -> None:
        """Handle a transport fault the same way as a close, after logging it."""
        logger.warning("Websocket error: %s", exc)
        self.on_close()

    async def shutdown(self) -> None:
        """Stop the timer, close the transport and the store.

        Safe to call more than once.
        """
        task = self._timer_task
        self._cancel_timer()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                await transport.close()
            except Exception:
                logger.warning("Error closing transport", exc_info=True)

        if self._state is not SessionState.DISCONNECTED:
            self._set_state(SessionState.DISCONNECTED)

        await self._store.close()
        logger.info("Total category snapshots saved: %d", self._total_saved)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_content(self, nodes: Sequence[Node]) -> SaveResult:
        """Filter, flatten and save one content tree."""
        filtered = apply_filters(nodes, self._import_values)
        categories = flatten_category_tree(filtered)
        result = await self._store.save_snapshot(categories)

        if result.categories > 0:
            self._total_saved += result.categories
            self._write_health(HealthWriter.record_save, result.categories)
            now = time.monotonic()
            if now - self._last_save_log > SAVE_LOG_INTERVAL_S:
                logger.info(
                    "Database: %d category snapshots saved (total: %d)",
                    result.categories,
                    self._total_saved,
                )
                self._last_save_log = now
        return result

    # ------------------------------------------------------------------
    # Handshake and polling
    # ------------------------------------------------------------------

    async def _setup_request(self, navigation: Sequence[Node]) -> None:
        for node in navigation:
            if node.name == REQUEST_LABEL and node.node_id:
                self._request_id = node.node_id
                self._handshake_done = True
                self._set_state(SessionState.SUBSCRIBED)
                await self._send_request()
                self._start_timer()
                logger.info("Updates every %s seconds", self._update_interval_s)
                return
        logger.debug("Navigation without '%s' entry, still waiting", REQUEST_LABEL)

    async def _send_request(self) -> None:
        if self._transport is None or self._request_id is None:
            return
        await self._transport.send(request_command(self._request_id))

    def _start_timer(self) -> None:
        self._cancel_timer()
        self._timer_task = asyncio.create_task(self._poll_timer())

    def _cancel_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _poll_timer(self) -> None:
        """Re-send the data request every update interval while subscribed."""
        while True:
            await asyncio.sleep(self._update_interval_s)
            if self._state is not SessionState.SUBSCRIBED:
                continue
            try:
                await self._send_request()
            except Exception:
                logger.warning("Periodic data request failed", exc_info=True)

    def _set_state(self, state: SessionState) -> None:
        logger.debug("Session state %s -> %s", self._state, state)
        self._state = state
        self._write_health(HealthWriter.set_state, state.value)

    def _write_health(self, action: Callable[..., None], *args: object) -> None:
        if self._health is None:
            return
        try:
            action(self._health, *args)
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)
