"""Shared fixtures: an in-process stub plug speaking the local protocol."""

import json
import socket
import threading

import pytest

from devices.smart_plug import SmartPlug, decrypt, encrypt

SYSINFO_REPLY = {"system": {"get_sysinfo": {"relay_state": 1, "alias": "Lamp"}}}
RELAY_REPLY = {"system": {"set_relay_state": {"err_code": 0}}}


class StubPlug:
    """Accepts connections on 127.0.0.1 and answers each decoded request.

    `reply` is either a dict (JSON-encoded and encrypted), raw bytes (sent
    as-is), or None (route by method: get_sysinfo / set_relay_state).
    Every decoded request is recorded in `requests`.
    """

    def __init__(self):
        self.reply = None
        self.requests = []
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(5)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _read_request(self, conn):
        data = b""
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                return decrypt(data).decode("utf-8")
            data += chunk
            text = decrypt(data).decode("utf-8", errors="replace")
            try:
                json.loads(text)
                return text
            except ValueError:
                continue

    def _response_for(self, request):
        if isinstance(self.reply, bytes):
            return self.reply
        if self.reply is not None:
            body = self.reply
        elif "get_sysinfo" in request:
            body = SYSINFO_REPLY
        else:
            body = RELAY_REPLY
        return encrypt(json.dumps(body).encode("utf-8"))

    def _serve(self):
        while True:
            try:
                conn, _ = self._sock.accept()
            except OSError:
                return
            with conn:
                request = self._read_request(conn)
                self.requests.append(request)
                try:
                    conn.sendall(self._response_for(request))
                except OSError:
                    # client hung up early (truncated read)
                    pass

    def close(self):
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()


@pytest.fixture
def stub_plug():
    stub = StubPlug()
    yield stub
    stub.close()


@pytest.fixture
def plug(stub_plug):
    """SmartPlug pointed at the stub, with a timeout so failures don't hang."""
    return SmartPlug("127.0.0.1", stub_plug.port, timeout=5)
