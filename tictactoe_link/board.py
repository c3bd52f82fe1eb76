from enum import Enum

from .errors import InvalidMove

BOARD_SIZE = 3  # fixed 3x3 grid on the wire


class Mark(Enum):
    """
    cell occupancy, relative to the peer owning the board
    """
    EMPTY = 0
    SELF = 1
    OPPONENT = 2

    @property
    def opponent(self):
        # same cell as seen from the other peer
        if self is Mark.SELF: return Mark.OPPONENT
        if self is Mark.OPPONENT: return Mark.SELF
        return Mark.EMPTY


class Outcome(Enum):
    ONGOING = "ongoing"
    WIN = "win"
    DRAW = "draw"


class Board:
    """
    NxN tic-tac-toe grid, rules and win/draw checks
    """
    def __init__(self, size=BOARD_SIZE):
        """
        init empty cells and history
        """
        if size < 1:
            raise ValueError(f"board size must be positive, got {size}")
        self.board_size = size
        self.grid = [[Mark.EMPTY for _ in range(size)] for _ in range(size)]
        self.history = []               # (mark, row, col) in play order

    @property
    def move_count(self):
        return len(self.history)

    def in_bounds(self, row, col):
        return 0 <= row < self.board_size and 0 <= col < self.board_size

    def is_cell_empty(self, row, col):
        """
        true if coords valid and cell blank
        """
        return self.in_bounds(row, col) and self.grid[row][col] is Mark.EMPTY

    def place(self, mark, row, col):
        """
        put mark on one empty cell
        returns the new snapshot, raises InvalidMove otherwise
        """
        if mark is Mark.EMPTY:
            raise InvalidMove("cannot place an empty mark")
        if not self.in_bounds(row, col):
            raise InvalidMove(f"({row},{col}) is off the board")
        if self.grid[row][col] is not Mark.EMPTY:
            raise InvalidMove(f"({row},{col}) is already taken")
        self.grid[row][col] = mark
        self.history.append((mark, row, col))
        return self.snapshot()

    def lines(self):
        """
        yield every row, column and both diagonals (2N+2 lines)
        """
        b = self.grid; n = self.board_size
        for i in range(n):
            yield [b[i][j] for j in range(n)]
            yield [b[j][i] for j in range(n)]
        yield [b[i][i] for i in range(n)]
        yield [b[i][n - 1 - i] for i in range(n)]

    def has_won(self, mark):
        """
        true iff some full line holds only this mark
        """
        if mark is Mark.EMPTY:
            return False
        return any(all(cell is mark for cell in line) for line in self.lines())

    def is_full(self):
        return all(cell is not Mark.EMPTY for row in self.grid for cell in row)

    def outcome(self):
        if self.has_won(Mark.SELF) or self.has_won(Mark.OPPONENT):
            return Outcome.WIN
        if self.is_full():
            return Outcome.DRAW
        return Outcome.ONGOING

    def snapshot(self):
        # tuples so callers can't reach back into the grid
        return tuple(tuple(row) for row in self.grid)


def mirror(snapshot):
    """
    the same board as the other peer sees it (SELF <-> OPPONENT)
    """
    return tuple(tuple(cell.opponent for cell in row) for row in snapshot)


SYMBOLS = {Mark.EMPTY: ' ', Mark.SELF: 'X', Mark.OPPONENT: 'O'}


def render(snapshot, symbols=SYMBOLS):
    """
    text board with row/col indices, empty cells show their col number
    """
    n = len(snapshot)
    sep = "  " + "-" * (4 * n - 1)
    out = []
    for i, row in enumerate(snapshot):
        cells = (symbols[cell] if cell is not Mark.EMPTY else str(j)
                 for j, cell in enumerate(row))
        out.append(f"{i}  {' | '.join(cells)}")
        if i < n - 1: out.append(sep)
    out.append("   " + "   ".join(str(j) for j in range(n)))  # column indices
    return "\n".join(out)
