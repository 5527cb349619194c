"""Exception types raised by the board, the opponent model store, and the session."""


class TicTacToeError(Exception):
    """Base class for every error this package raises on purpose."""


class InvalidMove(TicTacToeError):
    """A move that cannot be applied to the current board."""


class CellOccupied(InvalidMove):
    def __init__(self, index: int) -> None:
        super().__init__(f"Cell {index} is already taken.")
        self.index = index


class GameEnded(InvalidMove):
    def __init__(self, message: str = "The game is not running.") -> None:
        super().__init__(message)


class PersistenceUnavailable(TicTacToeError):
    """The opponent model could not be read from or written to disk."""


class CorruptModel(TicTacToeError):
    """Stored opponent model data failed schema or integrity checks."""
