"""Turn order, scoring, and the learning hook for one player's sitting.

The automated reply is handed to a scheduler so a GUI can delay it for
pacing; ``ImmediateScheduler`` runs it straight away for the CLI and tests.
"""

import logging
import random
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .board import O, X, Board, opponent
from .errors import GameEnded, InvalidMove, TicTacToeError
from .memory import OpponentModel, outcome_for, record_outcome
from .policy import ADAPTIVE, DEFAULT_DIFFICULTY, choose_policy, difficulty_display_label, normalize_difficulty

logger = logging.getLogger(__name__)

AUTOMATED_MARK = O
DEFAULT_AI_DELAY_MS = 300


class SessionState(Enum):
    MENU = "menu"
    RUNNING = "running"
    WON = "won"
    DRAWN = "drawn"


class ImmediateScheduler:
    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        callback()
        return None

    def cancel(self, handle) -> None:
        return None


class TkScheduler:
    """Defers callbacks on a Tk event loop; handles are ``after`` ids."""

    def __init__(self, root) -> None:
        self.root = root

    def schedule(self, delay_ms: int, callback: Callable[[], None]) -> str:
        return self.root.after(delay_ms, callback)

    def cancel(self, handle) -> None:
        if handle:
            self.root.after_cancel(handle)


class GameSession:
    def __init__(
        self,
        model: Optional[OpponentModel] = None,
        store=None,
        scheduler=None,
        delay_ms: int = DEFAULT_AI_DELAY_MS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.model = model if model is not None else OpponentModel()
        self.store = store
        self.scheduler = scheduler or ImmediateScheduler()
        self.delay_ms = max(0, int(delay_ms))
        self.rng = rng or random.Random()
        self.board = Board(running=False)
        self.state = SessionState.MENU
        self.difficulty = DEFAULT_DIFFICULTY
        self.vs_cpu = True
        self.current = X
        self.sequence: List[int] = []
        self.scores: Dict[str, int] = {X: 0, O: 0}
        self.total_games = 0
        self.draws = 0
        self.last_winner: Optional[str] = None
        self.final_line: Optional[Tuple[int, int, int]] = None
        self.last_save_ok: Optional[bool] = None
        self.pending = None
        self._listeners: List[Callable[["GameSession"], None]] = []

    # -- display collaborator hooks --------------------------------------

    def subscribe(self, callback: Callable[["GameSession"], None]) -> None:
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)

    @property
    def running(self) -> bool:
        return self.state is SessionState.RUNNING

    def label(self) -> str:
        if not self.vs_cpu:
            return "Two players"
        return difficulty_display_label(self.difficulty)

    def status_text(self) -> str:
        if self.state is SessionState.MENU:
            return "Choose a mode to start."
        if self.state is SessionState.WON:
            return f"Player {self.last_winner} wins!"
        if self.state is SessionState.DRAWN:
            return "It's a draw!"
        return f"Player {self.current}'s turn"

    def winning_endpoints(self) -> Optional[Tuple[int, int]]:
        if self.final_line is None:
            return None
        return self.final_line[0], self.final_line[2]

    def awaiting_automated_move(self) -> bool:
        return self.running and self.vs_cpu and self.current == AUTOMATED_MARK

    # -- lifecycle -------------------------------------------------------

    def start(self, difficulty: Optional[str] = None, vs_cpu: bool = True) -> None:
        if self.state is not SessionState.MENU:
            raise TicTacToeError("Return to the menu before choosing a new mode.")
        self.difficulty = normalize_difficulty(difficulty)
        self.vs_cpu = vs_cpu
        logger.info("Session started: %s", self.label())
        self._new_game()

    def restart(self) -> None:
        if self.state is SessionState.MENU:
            raise TicTacToeError("Pick a mode from the menu first.")
        self._new_game()

    def exit_to_menu(self) -> None:
        """Abandon the current game and the sitting's scores; the model is untouched."""
        self._cancel_pending()
        self.board.reset()
        self.board.running = False
        self.sequence = []
        self.current = X
        self.scores = {X: 0, O: 0}
        self.total_games = 0
        self.draws = 0
        self.last_winner = None
        self.final_line = None
        self.state = SessionState.MENU
        self._notify()

    def _new_game(self) -> None:
        self._cancel_pending()
        self.board.reset()
        self.sequence = []
        self.current = X
        self.last_winner = None
        self.final_line = None
        self.state = SessionState.RUNNING
        self._notify()

    def _cancel_pending(self) -> None:
        if self.pending is not None:
            self.scheduler.cancel(self.pending)
            self.pending = None

    # -- moves -----------------------------------------------------------

    def handle_cell(self, index: int) -> bool:
        """Entry point for "cell N activated"; illegal clicks are ignored."""
        try:
            self.play(index)
        except InvalidMove as exc:
            logger.debug("Ignored move at %r: %s", index, exc)
            return False
        return True

    def play(self, index: int) -> None:
        if not self.running:
            raise GameEnded()
        if self.awaiting_automated_move():
            raise InvalidMove("Wait for the computer to move.")
        self._apply(index)

    def _apply(self, index: int) -> None:
        self.board.place(index, self.current)
        self.sequence.append(index)

        winner = self.board.winner()
        if winner is not None or self.board.is_full():
            self._finish(winner)
            return

        self.current = opponent(self.current)
        self._notify()
        if self.awaiting_automated_move():
            self.pending = self.scheduler.schedule(self.delay_ms, self._automated_move)

    def _automated_move(self) -> None:
        self.pending = None
        if not self.awaiting_automated_move():
            return
        move_fn = choose_policy(self.difficulty)
        idx = move_fn(
            list(self.board.cells),
            mark=AUTOMATED_MARK,
            model=self.model,
            sequence=list(self.sequence),
            rng=self.rng,
        )
        self._apply(idx)

    def _finish(self, winner: Optional[str]) -> None:
        self.board.running = False
        self.final_line = self.board.winning_line()
        self.last_winner = winner
        self.total_games += 1
        if winner is None:
            self.state = SessionState.DRAWN
            self.draws += 1
        else:
            self.state = SessionState.WON
            self.scores[winner] += 1
        logger.info("Game over (%s): %s, sequence=%s", self.label(), winner or "Draw", self.sequence)

        if self.vs_cpu and self.difficulty == ADAPTIVE:
            outcome = outcome_for(winner, AUTOMATED_MARK)
            self.last_save_ok = record_outcome(self.model, self.sequence, outcome, self.store)
        self._notify()
