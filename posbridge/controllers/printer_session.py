"""Connection state machine for one raw-TCP ESC/POS printer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from posbridge.config import Settings, get_settings
from posbridge.exceptions import (
    NotConnectedError,
    SessionBusyError,
    TimedOutError,
    TransportFailureError,
)
from posbridge.models.printer import SessionState, SessionStatusResponse
from posbridge.utils.escpos import CUT_PAPER


Connector = Callable[[str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]]
StateListener = Callable[[SessionState, Exception | None], None]

_PendingSend = tuple[bytes, asyncio.Future[None]]


class PrinterSession:
    """Owns one TCP connection to a printer and serializes writes to it.

    States: idle -> connecting -> ready | failed; ready, failed and closed
    may reconnect; any state may be closed with :meth:`disconnect`.

    Payloads passed to :meth:`send` go through a FIFO queue drained by a
    single task, so concurrent senders reach the socket in call order.
    Nothing is retried: every failure is raised to the caller.
    """

    def __init__(
        self,
        *,
        connect_timeout: float | None = 10.0,
        send_timeout: float | None = 30.0,
        connector: Connector | None = None,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._send_timeout = send_timeout
        self._connector: Connector = connector or asyncio.open_connection
        self._state = SessionState.IDLE
        self._failure: Exception | None = None
        self._host: str | None = None
        self._port: int | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._queue: asyncio.Queue[_PendingSend] | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._attempt = 0
        self._listeners: list[StateListener] = []
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> PrinterSession:
        """Create a session with timeouts taken from the application settings."""
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "connect_timeout": settings.connect_timeout,
            "send_timeout": settings.send_timeout,
        }
        options.update(overrides)
        return cls(**options)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def failure(self) -> Exception | None:
        """The error that moved the session to ``failed``, if any."""
        return self._failure

    @property
    def host(self) -> str | None:
        return self._host

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    def status(self) -> SessionStatusResponse:
        return SessionStatusResponse(
            state=self._state,
            host=self._host,
            port=self._port,
            error=str(self._failure) if self._failure else None,
        )

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback invoked with (state, error) on every transition."""
        self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def connect(self, host: str, port: int) -> None:
        """Open the TCP connection and wait until it is ready.

        Raises:
            SessionBusyError: If a connection is already pending or live
            TimedOutError: If the printer does not accept within connect_timeout
            TransportFailureError: If the socket cannot be opened
            NotConnectedError: If the session was closed while connecting
        """
        if self._state in (SessionState.CONNECTING, SessionState.READY):
            raise SessionBusyError(
                f"Session is already {self._state.value} to {self._host}:{self._port}"
            )

        self._host = host
        self._port = port
        self._failure = None
        self._attempt += 1
        attempt = self._attempt
        self._set_state(SessionState.CONNECTING)

        try:
            _reader, writer = await asyncio.wait_for(
                self._connector(host, port), timeout=self._connect_timeout
            )
        except TimeoutError as exc:
            error = TimedOutError("connect", self._connect_timeout or 0)
            self._fail_connect(attempt, error)
            raise error from exc
        except OSError as exc:
            error = TransportFailureError(f"Failed to connect to {host}:{port}: {exc}", cause=exc)
            self._fail_connect(attempt, error)
            raise error from exc
        except asyncio.CancelledError:
            if attempt == self._attempt and self._state is SessionState.CONNECTING:
                self._set_state(SessionState.CLOSED)
            raise
        except Exception as exc:
            # Resolver and connector errors that are not OSError (UnicodeError for bad hostnames)
            error = TransportFailureError(f"Failed to connect to {host}:{port}: {exc}", cause=exc)
            self._fail_connect(attempt, error)
            raise error from exc

        if attempt != self._attempt or self._state is not SessionState.CONNECTING:
            writer.close()
            raise NotConnectedError(f"Session to {host}:{port} was closed while connecting")

        queue: asyncio.Queue[_PendingSend] = asyncio.Queue()
        self._writer = writer
        self._queue = queue
        self._drain_task = asyncio.create_task(
            self._drain(writer, queue), name=f"printer-session-{host}:{port}"
        )
        self._set_state(SessionState.READY)

    async def send(self, data: bytes) -> None:
        """Queue raw bytes for the printer and wait until they are flushed.

        Raises:
            NotConnectedError: If the session is not ready, or closes first
            TimedOutError: If the socket does not drain within send_timeout
            TransportFailureError: If the socket fails while sending
        """
        if self._state is not SessionState.READY or self._queue is None:
            raise NotConnectedError(f"Printer session is {self._state.value}, not ready")

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((bytes(data), future))
        await future

    async def cut_paper(self) -> None:
        """Send the full-cut command (GS V 66 0)."""
        await self.send(CUT_PAPER)

    async def disconnect(self) -> None:
        """Close the connection. Calling it on an idle or closed session is a no-op."""
        if self._state in (SessionState.IDLE, SessionState.CLOSED):
            return

        writer, queue, task = self._writer, self._queue, self._drain_task
        self._writer = None
        self._queue = None
        self._drain_task = None
        self._set_state(SessionState.CLOSED)

        if task is not None:
            task.cancel()
            await asyncio.wait([task])

        if queue is not None:
            self._reject_pending(queue, NotConnectedError("Session closed before payload was sent"))

        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                self._logger.warning(f"Error while closing printer connection: {exc}")

    async def __aenter__(self) -> PrinterSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def _drain(self, writer: asyncio.StreamWriter, queue: asyncio.Queue[_PendingSend]) -> None:
        while True:
            payload, future = await queue.get()
            if future.done():
                # Sender gave up before its turn
                continue

            try:
                writer.write(payload)
                await asyncio.wait_for(writer.drain(), timeout=self._send_timeout)
            except asyncio.CancelledError:
                if not future.done():
                    future.set_exception(NotConnectedError("Session closed while sending"))
                raise
            except TimeoutError:
                self._fail_transport(TimedOutError("send", self._send_timeout or 0), future, queue)
                return
            except Exception as exc:
                error = TransportFailureError(f"Failed to send {len(payload)} bytes: {exc}", cause=exc)
                self._fail_transport(error, future, queue)
                return

            self._logger.debug(f"Flushed {len(payload)} bytes to {self._host}:{self._port}")
            if not future.done():
                future.set_result(None)

    def _fail_connect(self, attempt: int, error: Exception) -> None:
        if attempt != self._attempt or self._state is not SessionState.CONNECTING:
            return
        self._failure = error
        self._logger.warning(f"Connection to {self._host}:{self._port} failed: {error}")
        self._set_state(SessionState.FAILED, error)

    def _fail_transport(
        self,
        error: Exception,
        future: asyncio.Future[None],
        queue: asyncio.Queue[_PendingSend],
    ) -> None:
        if not future.done():
            future.set_exception(error)
        self._reject_pending(queue, error)

        writer = self._writer
        self._writer = None
        self._queue = None
        self._drain_task = None
        if writer is not None:
            writer.close()

        self._failure = error
        self._logger.warning(f"Send to {self._host}:{self._port} failed: {error}")
        self._set_state(SessionState.FAILED, error)

    @staticmethod
    def _reject_pending(queue: asyncio.Queue[_PendingSend], error: Exception) -> None:
        while not queue.empty():
            _payload, future = queue.get_nowait()
            if not future.done():
                future.set_exception(error)

    def _set_state(self, state: SessionState, error: Exception | None = None) -> None:
        previous = self._state
        self._state = state
        self._logger.info(
            f"Printer session {self._host}:{self._port} {previous.value} -> {state.value}"
        )
        for listener in list(self._listeners):
            try:
                listener(state, error)
            except Exception:
                self._logger.exception("Printer session state listener failed")
