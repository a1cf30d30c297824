"""
Daemon main loop for the heat-pump snapshot logger.

Runs two concurrent asyncio loops:
1. **Session loop**: connects to the heat-pump websocket, hands the
   connection to the SessionController (login, handshake, periodic data
   requests, snapshot saves) and reconnects with exponential backoff after
   the connection drops.
2. **Retention loop**: purges snapshot rows older than the retention
   horizon once at startup and then every retention check interval.

Both loops are resilient: an exception in one iteration is logged and does not
crash the loop or affect the other loop. Graceful shutdown on SIGTERM/SIGINT
sets a shared asyncio.Event, closing the websocket and letting both loops
exit before the controller shuts down the store.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-17: Reconnect with exponential backoff after session loss
- 2026-10-16: Add retention loop
- 2026-10-15: Initial creation (STORY-011)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import websockets
from websockets.exceptions import ConnectionClosed

if TYPE_CHECKING:
    from heatpump.src.session import SessionController
    from heatpump.src.store import SnapshotStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

LUX_SUBPROTOCOL: str = "Lux_WS"
"""Websocket subprotocol spoken by the heat-pump controller."""

BASE_BACKOFF_S: float = 1.0
"""Initial reconnect delay in seconds after the first failed session."""

MAX_BACKOFF_S: float = 60.0
"""Maximum reconnect delay in seconds (cap for exponential growth)."""


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging() -> None:
    """Configure structured JSON logging for the logger daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry, ensure_ascii=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, excluding secrets.

    Logs host, port, intervals, paths and the configured categories but
    only a fingerprint of heatpump_password.

    Args:
        settings: A HeatPumpSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Heat-pump logger starting with config: "
        "heatpump_host=%s, heatpump_port=%s, update_interval_s=%s, "
        "connection_timeout_s=%s, db_path=%s, health_path=%s, "
        "retention_days=%s, categories=%s, password_masked=%s",
        settings.heatpump_host,  # type: ignore[attr-defined]
        settings.heatpump_port,  # type: ignore[attr-defined]
        settings.update_interval_s,  # type: ignore[attr-defined]
        settings.connection_timeout_s,  # type: ignore[attr-defined]
        settings.db_path,  # type: ignore[attr-defined]
        settings.health_path,  # type: ignore[attr-defined]
        settings.retention_days,  # type: ignore[attr-defined]
        sorted(settings.import_values),  # type: ignore[attr-defined]
        _masked_token(settings.heatpump_password),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


async def _connect(url: str, open_timeout_s: float) -> websockets.ClientConnection:
    """Open the websocket with the controller's subprotocol, pings disabled."""
    return await websockets.connect(
        url,
        subprotocols=[LUX_SUBPROTOCOL],
        ping_interval=None,
        open_timeout=open_timeout_s,
    )


async def _close_on_shutdown(
    websocket: websockets.ClientConnection,
    shutdown_event: asyncio.Event,
) -> None:
    await shutdown_event.wait()
    await websocket.close()


async def _run_session_once(
    *,
    url: str,
    controller: SessionController,
    open_timeout_s: float,
    shutdown_event: asyncio.Event,
) -> bool:
    """Connect once and feed every received message to the controller.

    Returns when the connection closes, fails, or shutdown is requested.
    Catches transport faults so that the caller's loop is never broken.

    Args:
        url: Websocket URL of the heat pump.
        controller: The session controller.
        open_timeout_s: Connection establishment timeout.
        shutdown_event: Event to signal graceful shutdown.

    Returns:
        True if a connection was established, False if connecting failed.
    """
    logger.info("Connecting to %s", url)
    try:
        websocket = await _connect(url, open_timeout_s)
    except Exception:
        logger.warning("Failed to connect to heat pump at %s", url, exc_info=True)
        return False

    logger.info("Connected to heat pump")
    closer = asyncio.create_task(_close_on_shutdown(websocket, shutdown_event))
    try:
        await controller.on_open(websocket)
        async for payload in websocket:
            await controller.on_message(payload)
    except ConnectionClosed as exc:
        controller.on_error(exc)
    except Exception as exc:
        logger.error("Session error", exc_info=True)
        controller.on_error(exc)
        with contextlib.suppress(Exception):
            await websocket.close()
    else:
        controller.on_close()
    finally:
        closer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await closer
    return True


async def _purge_once(*, store: SnapshotStore, retention_s: int) -> int:
    """Execute a single retention sweep.

    Catches all exceptions so that the caller's loop is never broken.

    Returns:
        Rows deleted, or 0 on error.
    """
    try:
        deleted = await store.purge_older_than(retention_s)
        logger.info("Retention sweep deleted %d rows", deleted)
        return deleted
    except Exception:
        logger.error("Retention sweep error", exc_info=True)
        return 0


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def _session_loop(
    *,
    url: str,
    controller: SessionController,
    open_timeout_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run sessions until shutdown_event is set, backing off between them.

    Consecutive failed connects grow the delay exponentially up to
    MAX_BACKOFF_S; a session that connected resets it.
    """
    logger.info("Session loop started")
    consecutive_failures = 0
    while not shutdown_event.is_set():
        connected = await _run_session_once(
            url=url,
            controller=controller,
            open_timeout_s=open_timeout_s,
            shutdown_event=shutdown_event,
        )
        if shutdown_event.is_set():
            break

        consecutive_failures = 0 if connected else consecutive_failures + 1
        delay = min(
            BASE_BACKOFF_S * (2 ** max(consecutive_failures - 1, 0)),
            MAX_BACKOFF_S,
        )
        logger.warning(
            "Reconnecting in %.1fs (consecutive failures: %d)",
            delay,
            consecutive_failures,
        )
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(shutdown_event.wait(), timeout=delay)
    logger.info("Session loop stopped")


async def _retention_loop(
    *,
    store: SnapshotStore,
    retention_s: int,
    check_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run retention sweeps until shutdown_event is set."""
    logger.info("Retention loop started (interval=%ss)", check_interval_s)
    while not shutdown_event.is_set():
        await _purge_once(store=store, retention_s=retention_s)
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(shutdown_event.wait(), timeout=check_interval_s)
    logger.info("Retention loop stopped")


# ---------------------------------------------------------------------------
# Concurrent runner with graceful shutdown
# ---------------------------------------------------------------------------


async def run_loops(
    *,
    url: str,
    controller: SessionController,
    store: SnapshotStore,
    open_timeout_s: float,
    retention_s: int,
    retention_check_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    """Run session and retention loops concurrently until shutdown.

    When the shutdown_event is set, both loops exit and the controller is
    shut down (timer stopped, transport and store closed).
    """
    logger.info("Starting session and retention loops")
    try:
        await asyncio.gather(
            _session_loop(
                url=url,
                controller=controller,
                open_timeout_s=open_timeout_s,
                shutdown_event=shutdown_event,
            ),
            _retention_loop(
                store=store,
                retention_s=retention_s,
                check_interval_s=retention_check_interval_s,
                shutdown_event=shutdown_event,
            ),
        )
    finally:
        await controller.shutdown()
    logger.info("Shutdown complete")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run loops.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    configure_logging()

    from heatpump.src.config import HeatPumpSettings
    from heatpump.src.health import HealthWriter
    from heatpump.src.session import SessionController
    from heatpump.src.store import SnapshotStore

    settings = HeatPumpSettings()
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    health = HealthWriter(settings.health_path)

    async with SnapshotStore(settings.db_path) as store:
        controller = SessionController(
            store=store,
            import_values=settings.import_values,
            update_interval_s=settings.update_interval_s,
            password=settings.heatpump_password,
            health=health,
        )
        await run_loops(
            url=settings.ws_url,
            controller=controller,
            store=store,
            open_timeout_s=settings.connection_timeout_s,
            retention_s=settings.retention_s,
            retention_check_interval_s=settings.retention_check_interval_s,
            shutdown_event=shutdown_event,
        )


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the logger daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
