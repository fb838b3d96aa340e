"""Reconnection engine for the push connection.

The engine owns the connection lifecycle:

    Disconnected -> Connecting -> Open -> Closing (stop) | Disconnected (error)

It keeps at most one connection alive, authenticates every fresh connection
with the current session token, feeds each received frame to the decoder,
and retries after any failure with a growing delay. Failures are logged and
never raised; the visible effect is simply "not connected".

The loop runs on its own thread with its own asyncio event loop (``start``),
or directly on the caller's loop (``await run()``). A stop request closes the
socket, cancels any pending delay and leaves the engine permanently inert.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import threading
from collections.abc import Callable

import structlog

from messenger_sync.config.schema import ReconnectConfig
from messenger_sync.core.decoder import PushMessageDecoder
from messenger_sync.core.session import SessionGate
from messenger_sync.interfaces.transport import PushConnection, PushTransport
from messenger_sync.models.events import ConnectionState
from messenger_sync.utils.async_helpers import TransportClosed, TransportError
from messenger_sync.utils.logging import LogEventNames

log = structlog.get_logger()

StateListener = Callable[[ConnectionState], None]


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    growth_attempts: int = 6,
    steady_delay: float = 30.0,
) -> float:
    """Seconds to wait before retry ``attempt``.

    Doubles from ``base_delay`` for the first ``growth_attempts`` attempts,
    then stays at ``steady_delay``. With the defaults the sequence is
    1, 2, 4, 8, 16, 32, 30, 30, ...

    Args:
        attempt: Number of consecutive failures so far (0 means no wait).
    """
    if attempt < 1:
        return 0.0
    if attempt <= growth_attempts:
        return float(base_delay * 2 ** (attempt - 1))
    return float(steady_delay)


class ReconnectionEngine:
    """Keeps one push connection alive and authenticated.

    Example:
        engine = ReconnectionEngine(transport, decoder, gate)
        engine.start()   # background thread
        ...
        engine.stop()    # closes the socket, engine is now inert
    """

    def __init__(
        self,
        transport: PushTransport,
        decoder: PushMessageDecoder,
        gate: SessionGate,
        config: ReconnectConfig | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            transport: Factory for push connections.
            decoder: Receives every complete inbound frame.
            gate: Session gate providing the token and admission flags.
            config: Backoff schedule.
            on_state_change: Called on the engine thread after every state change.
        """
        self._transport = transport
        self._decoder = decoder
        self._gate = gate
        self._config = config or ReconnectConfig()
        self._on_state_change = on_state_change

        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._attempt = 0
        self._stop_requested = False
        self._finished = False
        self._running = False

        # Only touched on the engine's event loop
        self._connection: PushConnection | None = None
        self._session_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event | None = None
        self._auth_tasks: set[asyncio.Task[bool]] = set()

        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

        gate.add_credential_listener(self._on_credential_changed)

    # =========================================================================
    # Observability
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def attempt(self) -> int:
        with self._lock:
            return self._attempt

    @property
    def is_stopped(self) -> bool:
        with self._lock:
            return self._stop_requested or self._finished

    @property
    def pending_auth_sends(self) -> int:
        """Authenticate frames scheduled but not yet written."""
        return len(self._auth_tasks)

    def _set_state(self, state: ConnectionState) -> None:
        with self._lock:
            if self._state is state:
                return
            self._state = state

        if self._on_state_change is not None:
            try:
                self._on_state_change(state)
            except Exception as e:
                log.warning("state_listener_failed", state=state.value, error=str(e))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Run the engine on a dedicated background thread."""
        with self._lock:
            if self._thread is not None or self._running or self._finished or self._stop_requested:
                log.warning("push_engine_start_ignored", finished=self._finished)
                return
            self._thread = threading.Thread(
                target=self._thread_main,
                name="push-connection",
                daemon=True,
            )
        self._thread.start()

    def _thread_main(self) -> None:
        asyncio.run(self.run())

    def stop(self, timeout: float | None = 5.0) -> None:
        """Request a cooperative stop and wait for the engine thread.

        Safe to call from any thread and more than once.
        """
        with self._lock:
            self._stop_requested = True
            loop = self._loop
            thread = self._thread

        if loop is not None:
            with contextlib.suppress(RuntimeError):  # loop already closed
                loop.call_soon_threadsafe(self._on_stop_requested)

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                log.warning("push_engine_stop_timeout", timeout=timeout)

    def _on_stop_requested(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._connection is not None:
            self._set_state(ConnectionState.CLOSING)
        if self._session_task is not None and not self._session_task.done():
            self._session_task.cancel()
        for task in list(self._auth_tasks):
            task.cancel()

    async def run(self) -> None:
        """Run the connect/receive/backoff loop on the current event loop.

        Returns once stop was requested or an admission flag is set.
        """
        with self._lock:
            if self._running or self._finished:
                log.warning("push_engine_run_ignored", finished=self._finished)
                return
            self._running = True
            self._loop = asyncio.get_running_loop()
            self._stop_event = asyncio.Event()
            if self._stop_requested:
                self._stop_event.set()

        stop_event = self._stop_event
        try:
            while not stop_event.is_set():
                if self._gate.suppressed:
                    log.warning(
                        LogEventNames.PUSH_RECONNECT_SUPPRESSED,
                        banned=self._gate.banned,
                        outdated=self._gate.outdated,
                    )
                    break

                attempt = self.attempt
                if attempt > 0:
                    delay = backoff_delay(
                        attempt,
                        base_delay=self._config.base_delay,
                        growth_attempts=self._config.growth_attempts,
                        steady_delay=self._config.steady_delay,
                    )
                    log.info(LogEventNames.PUSH_RECONNECT_SCHEDULED, attempt=attempt, delay=delay)
                    if await self._wait_for_stop(delay):
                        break
                    if self._gate.suppressed:
                        continue

                self._session_task = asyncio.create_task(self._connect_and_receive())
                try:
                    await self._session_task
                except asyncio.CancelledError:
                    if not stop_event.is_set():
                        raise
                finally:
                    self._session_task = None
        finally:
            with self._lock:
                self._finished = True
                self._running = False
                self._loop = None
            self._set_state(ConnectionState.DISCONNECTED)
            log.info("push_engine_finished")

    async def _wait_for_stop(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds. Returns True if stop arrived first."""
        assert self._stop_event is not None
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except TimeoutError:
            # Re-check after the wait so a failure landing right after a stop
            # never produces a new connect
            return self._stop_event.is_set()
        return True

    def _record_failure(self) -> None:
        with self._lock:
            self._attempt += 1

    # =========================================================================
    # Connection session
    # =========================================================================

    async def _connect_and_receive(self) -> None:
        self._set_state(ConnectionState.CONNECTING)
        log.info(LogEventNames.PUSH_CONNECTING, attempt=self.attempt)

        try:
            connection = await self._transport.connect()
        except TransportError as e:
            log.warning(LogEventNames.PUSH_CONNECTION_ERROR, error=str(e))
            self._record_failure()
            self._set_state(ConnectionState.DISCONNECTED)
            return
        except Exception as e:
            log.exception(LogEventNames.PUSH_CONNECTION_ERROR, error=str(e))
            self._record_failure()
            self._set_state(ConnectionState.DISCONNECTED)
            return

        self._connection = connection
        with self._lock:
            self._attempt = 0
        self._set_state(ConnectionState.OPEN)
        log.info(LogEventNames.PUSH_CONNECTED)

        try:
            token = self._gate.token
            if token:
                await self._send_auth(token)

            while True:
                frame = await connection.recv()
                self._decoder.handle(frame)

        except TransportClosed as e:
            log.info(LogEventNames.PUSH_DISCONNECTED, reason=str(e))
            self._record_failure()
        except TransportError as e:
            log.warning(LogEventNames.PUSH_CONNECTION_ERROR, error=str(e))
            self._record_failure()
        except Exception as e:
            log.exception(LogEventNames.PUSH_CONNECTION_ERROR, error=str(e))
            self._record_failure()
        finally:
            self._connection = None
            if self.is_stopped:
                self._set_state(ConnectionState.CLOSING)
            with contextlib.suppress(Exception):
                await connection.close()
            self._set_state(ConnectionState.DISCONNECTED)

    # =========================================================================
    # Outbound
    # =========================================================================

    async def send(self, text: str) -> bool:
        """Send one text frame on the engine loop.

        A send while not Open is a silent no-op.

        Returns:
            True if the frame was written.
        """
        connection = self._connection
        if connection is None or self.state is not ConnectionState.OPEN:
            return False

        try:
            await connection.send(text)
        except TransportError as e:
            log.warning(LogEventNames.PUSH_SEND_FAILED, error=str(e))
            return False
        return True

    async def _send_auth(self, token: str) -> bool:
        sent = await self.send(json.dumps({"token": token}))
        if sent:
            log.info(LogEventNames.PUSH_AUTH_SENT)
        return sent

    def authenticate(self, token: str) -> None:
        """Authenticate the open connection now. Callable from any thread.

        When no connection is open this does nothing; the next successful
        connect reads the token from the gate.
        """
        with self._lock:
            loop = self._loop
            is_open = self._state is ConnectionState.OPEN

        if loop is None or not is_open:
            return

        def _schedule() -> None:
            if self.state is ConnectionState.OPEN:
                task = loop.create_task(self._send_auth(token))
                self._auth_tasks.add(task)
                task.add_done_callback(self._auth_tasks.discard)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            _schedule()
        else:
            with contextlib.suppress(RuntimeError):  # loop already closed
                loop.call_soon_threadsafe(_schedule)

    def _on_credential_changed(self, token: str | None) -> None:
        if token is not None:
            self.authenticate(token)
