class TicTacToeError(Exception):
    """
    base for everything the game raises
    """


class InvalidMove(TicTacToeError, ValueError):
    """
    local move refused (bad coords, taken cell, not your turn)
    recoverable: board and turn are left untouched
    """


class ProtocolViolation(TicTacToeError):
    """
    remote peer sent a move that cannot exist on our board
    """


class SessionCancelled(TicTacToeError):
    """
    session stopped from outside while waiting
    """


class TransportError(TicTacToeError):
    """
    base for connection / stream failures, always terminal
    """


class ConnectionFailed(TransportError):
    pass  # listen/accept/connect failed, game never started


class WriteFailure(TransportError):
    pass


class ReadFailure(TransportError):
    pass


class EndOfStream(TransportError):
    pass  # peer closed the stream
