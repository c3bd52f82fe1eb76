import logging
import threading

from PySide6.QtCore import QObject, Signal, Slot

from .board import Board
from .config import SessionConfig
from .coordinator import TurnCoordinator, TurnListener, TurnState
from .errors import (
    ConnectionFailed, EndOfStream, ProtocolViolation, ReadFailure,
    SessionCancelled, TransportError, WriteFailure,
)
from .network import Transport

log = logging.getLogger("session")


def describe_error(err):
    """
    short human text for a terminal error
    """
    if isinstance(err, SessionCancelled): return "session stopped"
    if isinstance(err, EndOfStream): return f"opponent disconnected: {err}"
    if isinstance(err, ReadFailure): return f"connection lost: {err}"
    if isinstance(err, WriteFailure): return f"could not send move: {err}"
    if isinstance(err, ConnectionFailed): return f"could not connect: {err}"
    if isinstance(err, ProtocolViolation): return f"opponent broke protocol: {err}"
    return str(err)


class _SignalListener(TurnListener):
    """
    forwards turn loop callbacks to the session's qt signals
    """
    def __init__(self, session):
        self.session = session

    def on_turn_changed(self, my_turn):
        self.session.turn_changed.emit(my_turn)

    def on_local_move(self, row, col, outcome):
        self.session.local_move_applied.emit(row, col, outcome)

    def on_move_rejected(self, row, col, reason):
        self.session.move_rejected.emit(reason)

    def on_opponent_move(self, row, col, outcome):
        self.session.opponent_moved.emit(row, col, outcome)

    def on_game_over(self, verdict):
        pass  # reported by the session after teardown


class Session(QObject):
    """
    one game between two peers: owns board, coordinator and transport,
    runs the turn loop on a worker thread and reports through signals
    """
    connected = Signal(str)                  # role
    status_update = Signal(str)
    turn_changed = Signal(bool)              # True = local turn
    local_move_applied = Signal(int, int, str)
    opponent_moved = Signal(int, int, str)   # row, col, outcome
    move_rejected = Signal(str)
    game_over = Signal(str)                  # win / lose / draw
    disconnected = Signal(str)               # reason
    finished = Signal()

    def __init__(self, role, config=None, transport=None, board=None):
        """
        wire board + coordinator + transport, nothing opened yet
        """
        super().__init__()
        self.role = role
        self.config = config or SessionConfig()
        self.transport = transport or Transport.from_config(role, self.config)
        self.coordinator = TurnCoordinator(role, self.transport,
                                           board=board if board is not None else Board(),
                                           listener=_SignalListener(self))
        self.error = None
        self._stop_requested = False
        self._thread = None
        self._done = threading.Event()
        self._run_lock = threading.Lock()

    @property
    def state(self):
        return self.coordinator.state

    @property
    def verdict(self):
        return self.coordinator.verdict

    def board_snapshot(self):
        return self.coordinator.snapshot()

    def start(self):
        """
        run the session on a daemon thread
        """
        # only one thread at a time
        if self._thread and self._thread.is_alive(): return
        self._thread = threading.Thread(target=self.run, name=f"session-{self.role.value}", daemon=True)
        self._thread.start()

    def wait(self, timeout=None):
        """
        block until the session finished, True if it did
        """
        return self._done.wait(timeout)

    def run(self):
        """
        open -> play -> close once -> report; returns the Verdict or None
        """
        if not self._run_lock.acquire(blocking=False):
            raise RuntimeError("session can only run once")
        try:
            return self._run()
        finally:
            self.finished.emit()
            self._done.set()

    def _run(self):
        try:
            if not self.transport.is_connected:
                self.status_update.emit(self._opening_text())
                self.transport.open()
            self.connected.emit(self.role.value)
            self.status_update.emit(f"connected, you are the {self.role.value}")
            verdict = self.coordinator.run()
        except (TransportError, ProtocolViolation, SessionCancelled) as e:
            if self._stop_requested and not isinstance(e, SessionCancelled):
                # our own close() woke the blocked read/accept
                e = SessionCancelled(f"session stopped ({e})")
            self.error = e
            self.coordinator.state = TurnState.DISCONNECTED
            self._teardown()
            log.warning("session ended: %s", describe_error(e))
            self.disconnected.emit(describe_error(e))
            return None
        except Exception:
            self.coordinator.state = TurnState.DISCONNECTED
            self._teardown()
            log.exception("unexpected session error")
            raise
        self._teardown()
        self.game_over.emit(verdict.value)
        return verdict

    def _opening_text(self):
        if self.role.moves_first:
            return f"waiting for opponent on port {self.transport.port}..."
        return f"connecting to {self.transport.host}:{self.transport.port}..."

    def _teardown(self):
        self.transport.close()

    @Slot(int, int)
    def submit_local_move(self, row, col):
        """
        queue a local move, raises InvalidMove if it can't be played now
        """
        self.coordinator.submit(row, col)

    @Slot()
    def stop(self):
        """
        interrupt whatever the loop waits on, safe to call repeatedly
        """
        if self._stop_requested: return
        self._stop_requested = True
        log.info("stop requested")
        self.coordinator.cancel()
        self.transport.close()
