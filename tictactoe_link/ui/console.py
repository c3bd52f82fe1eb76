import queue

from PySide6.QtCore import Qt

from ..board import render
from ..errors import InvalidMove

_TURN = "turn"
_DONE = "done"

VERDICT_TEXT = {
    "win": "You won!!!",
    "lose": "You lost!!!",
    "draw": "It's a Tie!",
}


def parse_move(text):
    """
    'row,col' or 'row col' -> (row, col), ValueError otherwise
    """
    parts = text.replace(',', ' ').split()
    if len(parts) != 2:
        raise ValueError("use row,col (e.g. 0,0 or 1,2)")
    return int(parts[0]), int(parts[1])


class ConsolePlayer:
    """
    terminal front end: prints board + status, reads local moves from stdin
    """
    def __init__(self, session, input_func=input, output=print):
        self.session = session
        self._input = input_func
        self._print = output
        self._events = queue.Queue()    # turn / done, fed from the session thread
        direct = Qt.ConnectionType.DirectConnection
        session.status_update.connect(self._on_status, type=direct)
        session.turn_changed.connect(self._on_turn_changed, type=direct)
        session.local_move_applied.connect(self._on_local_move, type=direct)
        session.opponent_moved.connect(self._on_opponent_move, type=direct)
        session.move_rejected.connect(self._on_move_rejected, type=direct)
        session.game_over.connect(self._on_game_over, type=direct)
        session.disconnected.connect(self._on_disconnected, type=direct)
        session.finished.connect(self._on_finished, type=direct)

    def play(self):
        """
        run one game to the end, returns the session verdict (None on disconnect)
        """
        self.session.start()
        while True:
            try:
                event = self._events.get()
                if event == _DONE:
                    break
                self._prompt_move()
            except (KeyboardInterrupt, EOFError):
                self._print("\n[!] Game interrupted by user.")
                self.session.stop()
        self.session.wait()
        return self.session.verdict

    def _prompt_move(self):
        # keep asking until a move is queued or the game is gone
        while True:
            text = self._input("Your turn. Enter move (row,col): ").strip()
            try:
                row, col = parse_move(text)
                self.session.submit_local_move(row, col)
                return
            except InvalidMove as e:
                if self.session.state.is_terminal:
                    return
                self._print(f"!! {e}. Try again.")
            except ValueError as e:
                self._print(f"!! Invalid input: {e}")

    def _show_board(self):
        self._print(render(self.session.board_snapshot()))

    def _on_status(self, text):
        self._print(f"[*] {text}")

    def _on_turn_changed(self, my_turn):
        if my_turn:
            self._events.put(_TURN)
        else:
            self._print("Waiting for opponent's move...")

    def _on_local_move(self, row, col, outcome):
        self._show_board()

    def _on_opponent_move(self, row, col, outcome):
        self._print(f"Opponent played: {row},{col}")
        self._show_board()

    def _on_move_rejected(self, reason):
        self._print(f"!! {reason}")
        self._events.put(_TURN)  # still our turn, ask again

    def _on_game_over(self, verdict):
        self._print("\n--- Game Over ---")
        self._print(VERDICT_TEXT.get(verdict, verdict))

    def _on_disconnected(self, reason):
        self._print(f"\n[!] Game ended: {reason}")

    def _on_finished(self):
        self._events.put(_DONE)
