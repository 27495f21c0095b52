"""Pytest configuration for the posbridge tests."""

from __future__ import annotations

import socket
import socketserver
import sys
import threading
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from posbridge.controllers.printer_session import PrinterSession  # noqa: E402
from posbridge.main import create_app  # noqa: E402


class _RecordingHandler(socketserver.BaseRequestHandler):
    """Reads until the client closes, recording every byte."""

    def handle(self) -> None:
        self.server.opened()
        try:
            while True:
                chunk = self.request.recv(65536)
                if not chunk:
                    break
                self.server.record(chunk)
        finally:
            self.server.closed()


class FakePrinter(socketserver.ThreadingTCPServer):
    """A raw TCP 'printer' on localhost that keeps what it is sent."""

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _RecordingHandler)
        self._received = bytearray()
        self._condition = threading.Condition()
        self.connections = 0
        self.disconnections = 0

    @property
    def host(self) -> str:
        return self.server_address[0]

    @property
    def port(self) -> int:
        return self.server_address[1]

    @property
    def received(self) -> bytes:
        with self._condition:
            return bytes(self._received)

    def opened(self) -> None:
        with self._condition:
            self.connections += 1
            self._condition.notify_all()

    def closed(self) -> None:
        with self._condition:
            self.disconnections += 1
            self._condition.notify_all()

    def record(self, chunk: bytes) -> None:
        with self._condition:
            self._received.extend(chunk)
            self._condition.notify_all()

    def wait_for(self, length: int, timeout: float = 5.0) -> bytes:
        """Block until at least ``length`` bytes arrived, then return them all."""
        with self._condition:
            self._condition.wait_for(lambda: len(self._received) >= length, timeout)
            return bytes(self._received)

    def wait_for_disconnects(self, count: int = 1, timeout: float = 5.0) -> int:
        with self._condition:
            self._condition.wait_for(lambda: self.disconnections >= count, timeout)
            return self.disconnections


@pytest.fixture()
def fake_printer() -> Generator[FakePrinter, None, None]:
    server = FakePrinter()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture()
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    session = PrinterSession(connect_timeout=2.0, send_timeout=2.0)
    app = create_app(session=session)
    with TestClient(app) as test_client:
        yield test_client
