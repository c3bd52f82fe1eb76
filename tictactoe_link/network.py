import logging
import socket
import struct
import threading
from enum import Enum

from .config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_HOST, DEFAULT_PORT
from .errors import ConnectionFailed, EndOfStream, ReadFailure, WriteFailure

log = logging.getLogger("network")

# one move = row, col as big-endian int32, no prefix or tag
MOVE_FORMAT = struct.Struct(">ii")
MOVE_SIZE = MOVE_FORMAT.size


class Role(Enum):
    """
    initiator listens and moves first, responder dials
    """
    INITIATOR = "initiator"
    RESPONDER = "responder"

    @property
    def moves_first(self):
        return self is Role.INITIATOR


class ConnectionState(Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"  # terminal


def encode_move(row, col):
    try:
        return MOVE_FORMAT.pack(row, col)
    except struct.error as e:
        raise ValueError(f"move ({row},{col}) does not fit the wire format") from e


def decode_move(data):
    return MOVE_FORMAT.unpack(data)


class Transport:
    """
    one tcp stream between the two peers, carrying move records
    """
    def __init__(self, role, host=DEFAULT_HOST, port=DEFAULT_PORT,
                 bind_host="", connect_timeout=DEFAULT_CONNECT_TIMEOUT):
        """
        init sockets and connection state
        """
        self.role = role
        self.host = host                  # where the responder dials
        self.port = port                  # 0 = pick ephemeral (initiator)
        self.bind_host = bind_host
        self.connect_timeout = connect_timeout
        self.socket = None
        self.server_socket = None
        self.peer = None                  # (ip, port) of the other side
        self.state = ConnectionState.UNCONNECTED
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, role, config):
        return cls(role, host=config.host, port=config.port,
                   bind_host=config.bind_host,
                   connect_timeout=config.connect_timeout)

    @property
    def is_connected(self):
        return self.state is ConnectionState.CONNECTED

    def open(self):
        """
        listen+accept or connect, depending on role
        """
        if self.role is Role.INITIATOR:
            self.listen()
            self.accept()
        else:
            self.connect()
        return self

    def listen(self):
        """
        bind listening socket, returns the bound port
        """
        with self._lock:
            if self.state is ConnectionState.CLOSED:
                raise ConnectionFailed("transport already closed")
            if self.server_socket is not None:
                return self.port
            serv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                serv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                serv.bind((self.bind_host, self.port))
                serv.listen(1)
            except OSError as e:
                serv.close()
                raise ConnectionFailed(f"cannot listen on port {self.port}: {e}") from e
            self.server_socket = serv
            self.port = serv.getsockname()[1]
        log.info("listening on %s:%d, waiting for opponent...", self.bind_host or "*", self.port)
        return self.port

    def accept(self):
        """
        accept exactly one opponent, then stop listening
        """
        serv = self.server_socket
        if serv is None:
            self.listen()
            serv = self.server_socket
        try:
            client_socket, addr = serv.accept()
        except OSError as e:
            raise ConnectionFailed(f"accept error: {e}") from e
        finally:
            self._close_server()
        self._attach(client_socket, addr)
        log.info("opponent connected from %s:%d", addr[0], addr[1])

    def connect(self):
        """
        single connect attempt to host:port
        """
        client_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        with self._lock:
            if self.state is ConnectionState.CLOSED:
                client_socket.close()
                raise ConnectionFailed("transport already closed")
            self.socket = client_socket   # visible to close() while dialing
        log.info("connecting to %s:%d...", self.host, self.port)
        try:
            client_socket.settimeout(self.connect_timeout)
            client_socket.connect((self.host, self.port))
            client_socket.settimeout(None)
        except socket.timeout as e:
            self.close()
            raise ConnectionFailed(f"connection timed out to {self.host}:{self.port}") from e
        except socket.gaierror as e:
            self.close()
            raise ConnectionFailed(f"address error connecting to {self.host}: {e}") from e
        except OSError as e:
            self.close()
            raise ConnectionFailed(f"connection error: {e}") from e
        self._attach(client_socket, client_socket.getpeername())
        log.info("connected to host %s:%d", self.host, self.port)

    def _attach(self, sock, addr):
        with self._lock:
            if self.state is ConnectionState.CLOSED:
                sock.close()
                raise ConnectionFailed("connection stopped")
            self.socket = sock
            self.peer = addr
            self.state = ConnectionState.CONNECTED

    def _close_server(self):
        with self._lock:
            serv, self.server_socket = self.server_socket, None
        if serv is not None:
            serv.close()

    def send_move(self, row, col):
        """
        write one 8 byte move record
        """
        sock = self.socket
        if sock is None or not self.is_connected:
            raise WriteFailure("not connected")
        data = encode_move(row, col)
        try:
            sock.sendall(data)
        except OSError as e:
            raise WriteFailure(f"send error: {e}") from e
        log.debug("sent move (%d,%d)", row, col)

    def recv_move(self):
        """
        block until a full move record arrives, returns (row, col)
        """
        row, col = decode_move(self._recv_exact(MOVE_SIZE))
        log.debug("received move (%d,%d)", row, col)
        return row, col

    def _recv_exact(self, size):
        sock = self.socket
        if sock is None or not self.is_connected:
            raise ReadFailure("not connected")
        buf = bytearray()
        while len(buf) < size:
            try:
                chunk = sock.recv(size - len(buf))
            except OSError as e:
                raise ReadFailure(f"recv error: {e}") from e
            if not chunk:
                if buf:
                    raise EndOfStream(f"stream closed mid-move after {len(buf)} bytes")
                raise EndOfStream("opponent disconnected")
            buf.extend(chunk)
        return bytes(buf)

    def close(self):
        """
        tear down sockets once, wakes any thread blocked in accept/recv
        returns True only for the call that actually closed
        """
        with self._lock:
            if self.state is ConnectionState.CLOSED:
                return False
            self.state = ConnectionState.CLOSED
            sock, self.socket = self.socket, None
            serv, self.server_socket = self.server_socket, None
        for s in (sock, serv):
            if s is None:
                continue
            try:
                s.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # never connected or already reset
            s.close()
        log.info("connection closed")
        return True
