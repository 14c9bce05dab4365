"""TP-Link HS100-family smart plug control over the local protocol (port 9999).

Each command is a compact JSON envelope, XOR-autokey encrypted and prefixed
with 4 zero bytes, sent over a fresh TCP connection. The reply uses the same
framing; its 4-byte prefix is dropped without being checked.
"""

import json
import logging
import os
import socket
from dataclasses import dataclass
from enum import Enum

import config

log = logging.getLogger(__name__)

_HEADER = b"\0" * config.HEADER_SIZE

_TURN_ON = {"system": {"set_relay_state": {"state": 1}}}
_TURN_OFF = {"system": {"set_relay_state": {"state": 0}}}
_GET_SYSINFO = {"system": {"get_sysinfo": {}}}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ErrorKind(Enum):
    """Every way a plug operation can fail."""
    INVALID_HOST = "invalid_host"
    INVALID_PORT = "invalid_port"
    INVALID_TIMEOUT = "invalid_timeout"
    CANNOT_CREATE_SOCKET = "cannot_create_socket"
    CANNOT_CONNECT = "cannot_connect"
    CANNOT_SEND = "cannot_send"
    CANNOT_RECEIVE = "cannot_receive"
    INVALID_DATA = "invalid_data"


class PlugError(Exception):
    """Base class for smart plug failures. `kind` is always set."""
    kind: ErrorKind = None

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidHost(PlugError, ValueError):
    kind = ErrorKind.INVALID_HOST


class InvalidPort(PlugError, ValueError):
    kind = ErrorKind.INVALID_PORT


class InvalidTimeout(PlugError, ValueError):
    kind = ErrorKind.INVALID_TIMEOUT


class CannotCreateSocket(PlugError):
    kind = ErrorKind.CANNOT_CREATE_SOCKET


class CannotConnect(PlugError):
    kind = ErrorKind.CANNOT_CONNECT


class CannotSend(PlugError):
    kind = ErrorKind.CANNOT_SEND


class CannotReceive(PlugError):
    kind = ErrorKind.CANNOT_RECEIVE


class InvalidData(PlugError):
    kind = ErrorKind.INVALID_DATA


# ---------------------------------------------------------------------------
# XOR autokey cipher
# ---------------------------------------------------------------------------

def encrypt(data: bytes) -> bytes:
    """Encrypt bytes for the plug: 4 zero bytes, then the XOR autokey stream."""
    key = config.XOR_KEY
    encrypted = bytearray()
    for b in data:
        key ^= b
        encrypted.append(key)
    return _HEADER + bytes(encrypted)


def decrypt(data: bytes) -> bytes:
    """Strip the 4-byte prefix and undo the XOR autokey stream."""
    key = config.XOR_KEY
    result = bytearray()
    for b in data[config.HEADER_SIZE:]:
        result.append(key ^ b)
        key = b
    return bytes(result)


# ---------------------------------------------------------------------------
# Endpoint validation
# ---------------------------------------------------------------------------

def validate_host(host):
    if not isinstance(host, str) or not host or any(c.isspace() for c in host):
        raise InvalidHost("Host must be a valid string: hostname or IP.")
    return host


def validate_port(port):
    # bool is an int subclass; True is not a port
    if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
        raise InvalidPort("Port must be integer between 1 and 65535.")
    return port


@dataclass(frozen=True)
class Endpoint:
    """Validated (host, port) of one plug."""
    host: str
    port: int = config.DEFAULT_PORT

    def __post_init__(self):
        validate_host(self.host)
        validate_port(self.port)


# ---------------------------------------------------------------------------
# One request/response exchange
# ---------------------------------------------------------------------------

def _receive(sock) -> bytes:
    """Read until RECV_BUFFER_SIZE bytes have arrived or the peer closes.

    Replies larger than the buffer are truncated.
    """
    data = bytearray()
    while len(data) < config.RECV_BUFFER_SIZE:
        chunk = sock.recv(config.RECV_BUFFER_SIZE - len(data))
        if not chunk:
            break
        data += chunk
    return bytes(data)


def exchange(endpoint: Endpoint, payload: str, timeout=None) -> str:
    """Send one plaintext command to the plug and return the plaintext reply.

    Opens a new connection, which is closed again on every exit path.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise CannotCreateSocket("Cannot create socket.") from e

    with sock:
        sock.settimeout(timeout)

        try:
            sock.connect((endpoint.host, endpoint.port))
        except OSError as e:
            raise CannotConnect(
                f"Cannot connect to {endpoint.host}:{endpoint.port}: {e}"
            ) from e

        request = encrypt(payload.encode("utf-8"))
        try:
            sock.sendall(request)
        except OSError as e:
            raise CannotSend(f"Cannot send data: {e}") from e

        try:
            response = _receive(sock)
        except OSError as e:
            raise CannotReceive(f"Cannot receive data: {e}") from e

    if not response:
        raise CannotReceive("Cannot receive data: connection closed without a reply.")

    log.debug("%s:%d: sent %d bytes, received %d bytes",
              endpoint.host, endpoint.port, len(request), len(response))

    try:
        return decrypt(response).decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidData("Invalid data.") from e


def _dumps(envelope) -> str:
    return json.dumps(envelope, separators=(",", ":"))


class SmartPlug:
    """Controls an HS100-family smart plug via the local protocol (port 9999).

    Every call opens and closes its own connection; nothing is kept between
    calls except the configured host and port.
    """

    def __init__(self, host=None, port=config.DEFAULT_PORT, timeout=None):
        self._host = None
        self._port = config.DEFAULT_PORT
        self.timeout = timeout
        if host is not None:
            self.set_host(host)
        self.set_port(port)

    def __repr__(self):
        return f"SmartPlug(host={self._host!r}, port={self._port!r})"

    def get_host(self):
        return self._host

    def set_host(self, host):
        self._host = validate_host(host)
        return self

    def get_port(self):
        return self._port

    def set_port(self, port):
        self._port = validate_port(port)
        return self

    @property
    def name(self):
        return f"{self._host}:{self._port}"

    def endpoint(self) -> Endpoint:
        """Snapshot the current host and port. Raises if either is invalid."""
        if self._host is None:
            raise InvalidHost("Invalid host.")
        return Endpoint(self._host, self._port)

    def exchange(self, payload: str) -> str:
        return exchange(self.endpoint(), payload, timeout=self.timeout)

    def process_command(self, payload: str) -> dict:
        """Send a JSON command and return the parsed reply envelope.

        Raises InvalidData if the reply is not a non-empty JSON object.
        """
        reply = self.exchange(payload)
        try:
            data = json.loads(reply)
        except (ValueError, RecursionError) as e:
            raise InvalidData("Invalid data.") from e
        if not data or not isinstance(data, dict):
            raise InvalidData("Invalid data.")
        return data

    def _sysinfo_field(self, field):
        """Fetch get_sysinfo and return system.get_sysinfo.<field>."""
        data = self.process_command(_dumps(_GET_SYSINFO))
        try:
            value = data["system"]["get_sysinfo"][field]
        except (KeyError, TypeError) as e:
            raise InvalidData("Invalid data.") from e
        if value is None:
            raise InvalidData("Invalid data.")
        return value

    def turn_on(self):
        """Turn the relay on. Raises on failure."""
        self.process_command(_dumps(_TURN_ON))
        log.info("%s: turned ON", self.name)
        return self

    def turn_off(self):
        """Turn the relay off. Raises on failure."""
        self.process_command(_dumps(_TURN_OFF))
        log.info("%s: turned OFF", self.name)
        return self

    def is_on(self) -> bool:
        state = self._sysinfo_field("relay_state")
        # strict: JSON true or 1.0 is not "on"
        return type(state) is int and state == 1

    def retrieve_alias(self) -> str:
        alias = self._sysinfo_field("alias")
        if not isinstance(alias, str):
            raise InvalidData("Invalid data.")
        return alias


def plug_from_env():
    """Build a SmartPlug from PLUG_HOST, PLUG_PORT and PLUG_TIMEOUT.

    PLUG_HOST may be unset; operations then fail with InvalidHost.
    """
    host = os.getenv("PLUG_HOST") or None
    port_str = os.getenv("PLUG_PORT", str(config.DEFAULT_PORT))
    try:
        port = int(port_str)
    except ValueError as e:
        raise InvalidPort(f"PLUG_PORT must be an integer, got {port_str!r}") from e

    timeout_str = os.getenv("PLUG_TIMEOUT")
    try:
        timeout = float(timeout_str) if timeout_str else None
    except ValueError as e:
        raise InvalidTimeout(f"PLUG_TIMEOUT must be a number, got {timeout_str!r}") from e

    return SmartPlug(host, port, timeout=timeout)
