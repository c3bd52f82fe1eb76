"""
Turn state machine shared by both roles.

The coordinator owns the board. Local moves arrive through a blocking queue
fed by ``submit``; remote moves come from the transport. Exactly one of the
two is awaited at a time, so board mutations never race.
"""
import logging
import queue
import threading
from enum import Enum

from .board import Board, Mark, Outcome
from .errors import InvalidMove, ProtocolViolation, SessionCancelled, TransportError

log = logging.getLogger("coordinator")

_CANCEL = object()  # queue sentinel from cancel()


class TurnState(Enum):
    AWAITING_CONNECTION = "awaiting_connection"
    LOCAL_TURN = "local_turn"
    REMOTE_TURN = "remote_turn"
    GAME_OVER = "game_over"
    DISCONNECTED = "disconnected"

    @property
    def is_terminal(self):
        return self in (TurnState.GAME_OVER, TurnState.DISCONNECTED)


class Verdict(Enum):
    """
    final result from this peer's point of view
    """
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


class TurnListener:
    """
    callbacks from the turn loop, all run on the loop's thread
    """
    def on_turn_changed(self, my_turn): pass
    def on_local_move(self, row, col, outcome): pass
    def on_move_rejected(self, row, col, reason): pass
    def on_opponent_move(self, row, col, outcome): pass
    def on_game_over(self, verdict): pass


class TurnCoordinator:
    def __init__(self, role, transport, board=None, listener=None):
        self.role = role
        self.transport = transport
        self.board = board if board is not None else Board()
        self.listener = listener or TurnListener()
        self.state = TurnState.AWAITING_CONNECTION
        self.verdict = None
        self.turn = 0                     # 1-based once the game starts
        self.local_moves = 0
        self.remote_moves = 0
        self._moves = queue.Queue()
        self._pending = False             # a submitted move not yet taken
        self._lock = threading.RLock()

    def snapshot(self):
        with self._lock:
            return self.board.snapshot()

    def begin(self):
        """
        leave AWAITING_CONNECTION, the initiator moves first
        """
        with self._lock:
            if self.state is not TurnState.AWAITING_CONNECTION:
                return
            self.turn = 1
            self._set_turn(TurnState.LOCAL_TURN if self.role.moves_first
                           else TurnState.REMOTE_TURN)

    def _set_turn(self, state):
        self.state = state
        self.listener.on_turn_changed(state is TurnState.LOCAL_TURN)

    def submit(self, row, col):
        """
        hand a local move to the turn loop, raises InvalidMove if refused
        """
        with self._lock:
            if self.state is not TurnState.LOCAL_TURN:
                raise InvalidMove(f"not your turn ({self.state.value})")
            if self._pending:
                raise InvalidMove("a move is already pending")
            if not self.board.in_bounds(row, col):
                raise InvalidMove(f"({row},{col}) is off the board")
            if not self.board.is_cell_empty(row, col):
                raise InvalidMove(f"({row},{col}) is already taken")
            self._pending = True
        self._moves.put((row, col))

    def cancel(self):
        """
        wake a pending local-move wait, the loop ends with SessionCancelled
        """
        self._moves.put(_CANCEL)

    def run(self):
        """
        drive turns until win/draw, returns the Verdict
        transport errors, ProtocolViolation and SessionCancelled propagate
        after the state is set to DISCONNECTED
        """
        self.begin()
        try:
            while not self.state.is_terminal:
                if self.state is TurnState.LOCAL_TURN:
                    self._local_turn()
                else:
                    self._remote_turn()
        except (TransportError, ProtocolViolation, SessionCancelled) as e:
            with self._lock:
                self.state = TurnState.DISCONNECTED
            log.warning("turn loop stopped: %s", e)
            raise
        return self.verdict

    def _local_turn(self):
        item = self._moves.get()  # blocks until submit() or cancel()
        if item is _CANCEL:
            raise SessionCancelled("session stopped")
        row, col = item
        with self._lock:
            self._pending = False
            try:
                self.board.place(Mark.SELF, row, col)
            except InvalidMove as e:
                # stay on our turn, nothing was sent
                log.info("rejected local move (%d,%d): %s", row, col, e)
                self.listener.on_move_rejected(row, col, str(e))
                return
            self.local_moves += 1
        self.transport.send_move(row, col)
        outcome = self._after_move(Mark.SELF)
        self.listener.on_local_move(row, col, outcome.value)
        self._advance(outcome, Mark.SELF, TurnState.REMOTE_TURN)

    def _remote_turn(self):
        row, col = self.transport.recv_move()
        with self._lock:
            if not self.board.in_bounds(row, col):
                raise ProtocolViolation(f"opponent sent off-board move ({row},{col})")
            if not self.board.is_cell_empty(row, col):
                raise ProtocolViolation(f"opponent played taken cell ({row},{col})")
            self.board.place(Mark.OPPONENT, row, col)
            self.remote_moves += 1
        outcome = self._after_move(Mark.OPPONENT)
        self.listener.on_opponent_move(row, col, outcome.value)
        self._advance(outcome, Mark.OPPONENT, TurnState.LOCAL_TURN)

    def _after_move(self, mark):
        # only the mover can have completed a line
        if self.board.has_won(mark):
            return Outcome.WIN
        if self.board.is_full():
            return Outcome.DRAW
        return Outcome.ONGOING

    def _advance(self, outcome, mover, next_state):
        if outcome is Outcome.ONGOING:
            with self._lock:
                self.turn += 1
                self._set_turn(next_state)
            return
        if outcome is Outcome.DRAW:
            verdict = Verdict.DRAW
        else:
            verdict = Verdict.WIN if mover is Mark.SELF else Verdict.LOSE
        with self._lock:
            self.verdict = verdict
            self.state = TurnState.GAME_OVER
        log.info("game over after %d moves: %s", self.board.move_count, verdict.value)
        self.listener.on_game_over(verdict)
