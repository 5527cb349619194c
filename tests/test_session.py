import random
import unittest

from tictactoe_ai.board import EMPTY, O, X
from tictactoe_ai.errors import GameEnded, InvalidMove, TicTacToeError
from tictactoe_ai.memory import OpponentModel
from tictactoe_ai.policy import ADAPTIVE, OPTIMAL
from tictactoe_ai.session import GameSession, SessionState


class ManualScheduler:
    """Holds scheduled callbacks until the test runs them."""

    def __init__(self) -> None:
        self.tasks = {}
        self.delays = []
        self.cancelled = []
        self._next = 0

    def schedule(self, delay_ms, callback):
        self._next += 1
        self.tasks[self._next] = callback
        self.delays.append(delay_ms)
        return self._next

    def cancel(self, handle) -> None:
        self.cancelled.append(handle)
        self.tasks.pop(handle, None)

    def run_all(self) -> None:
        while self.tasks:
            handle = min(self.tasks)
            self.tasks.pop(handle)()


class RecordingStore:
    def __init__(self) -> None:
        self.saves = 0

    def save(self, model) -> bool:
        self.saves += 1
        return True


def _play_out(session: GameSession) -> None:
    while session.running:
        session.handle_cell(session.board.empty_cells()[0])


class TestTwoPlayerSession(unittest.TestCase):
    def setUp(self) -> None:
        self.model = OpponentModel()
        self.session = GameSession(model=self.model)
        self.session.start(vs_cpu=False)

    def test_status_and_turns(self) -> None:
        self.assertEqual(self.session.status_text(), "Player X's turn")
        self.assertTrue(self.session.handle_cell(4))
        self.assertEqual(self.session.current, O)
        self.assertEqual(self.session.status_text(), "Player O's turn")

    def test_win_updates_scores_and_line(self) -> None:
        for idx in (0, 3, 1, 4, 2):
            self.session.play(idx)
        self.assertIs(self.session.state, SessionState.WON)
        self.assertEqual(self.session.status_text(), "Player X wins!")
        self.assertEqual(self.session.scores, {X: 1, O: 0})
        self.assertEqual(self.session.winning_endpoints(), (0, 2))
        self.assertEqual(self.model.games_learned, 0)

    def test_draw(self) -> None:
        for idx in (0, 1, 2, 4, 3, 5, 7, 6, 8):
            self.session.play(idx)
        self.assertIs(self.session.state, SessionState.DRAWN)
        self.assertEqual(self.session.status_text(), "It's a draw!")
        self.assertIsNone(self.session.winning_endpoints())
        self.assertEqual((self.session.draws, self.session.total_games), (1, 1))

    def test_invalid_clicks_are_ignored(self) -> None:
        self.session.play(0)
        self.assertFalse(self.session.handle_cell(0))
        self.assertFalse(self.session.handle_cell(12))
        self.assertEqual(self.session.sequence, [0])
        with self.assertRaises(InvalidMove):
            self.session.play(0)

    def test_no_moves_after_game_ends(self) -> None:
        for idx in (0, 3, 1, 4, 2):
            self.session.play(idx)
        with self.assertRaises(GameEnded):
            self.session.play(8)
        self.assertFalse(self.session.handle_cell(8))

    def test_restart_keeps_scores_exit_clears_them(self) -> None:
        for idx in (0, 3, 1, 4, 2):
            self.session.play(idx)
        self.session.restart()
        self.assertEqual(self.session.board.cells, [EMPTY] * 9)
        self.assertEqual(self.session.sequence, [])
        self.assertEqual(self.session.scores[X], 1)

        self.session.exit_to_menu()
        self.assertIs(self.session.state, SessionState.MENU)
        self.assertEqual(self.session.scores, {X: 0, O: 0})
        self.assertEqual(self.session.total_games, 0)

    def test_mode_only_chosen_from_menu(self) -> None:
        with self.assertRaises(TicTacToeError):
            self.session.start(OPTIMAL)
        self.session.exit_to_menu()
        with self.assertRaises(TicTacToeError):
            self.session.restart()


class TestCpuSession(unittest.TestCase):
    def test_automated_reply_is_scheduled_with_delay(self) -> None:
        scheduler = ManualScheduler()
        session = GameSession(scheduler=scheduler, delay_ms=300)
        session.start(OPTIMAL)
        session.play(0)
        self.assertEqual(scheduler.delays, [300])
        self.assertTrue(session.awaiting_automated_move())
        self.assertFalse(session.handle_cell(1))

        scheduler.run_all()
        self.assertEqual(session.board.cells[4], O)
        self.assertEqual(session.current, X)

    def test_exit_to_menu_cancels_pending_move_and_keeps_model(self) -> None:
        scheduler = ManualScheduler()
        model = OpponentModel(opening_counts={0: 2}, games_learned=2)
        session = GameSession(model=model, scheduler=scheduler)
        session.start(ADAPTIVE)
        session.play(0)
        handle = session.pending

        session.exit_to_menu()
        self.assertEqual(scheduler.cancelled, [handle])
        self.assertIsNone(session.pending)
        scheduler.run_all()
        self.assertEqual(session.board.cells, [EMPTY] * 9)
        self.assertEqual(model.games_learned, 2)
        self.assertEqual(model.opening_counts, {0: 2})

    def test_restart_cancels_pending_move(self) -> None:
        scheduler = ManualScheduler()
        session = GameSession(scheduler=scheduler)
        session.start(OPTIMAL)
        session.play(4)
        session.restart()
        self.assertEqual(len(scheduler.cancelled), 1)
        self.assertEqual(session.board.cells, [EMPTY] * 9)

    def test_adaptive_game_teaches_model_once(self) -> None:
        store = RecordingStore()
        model = OpponentModel()
        session = GameSession(model=model, store=store, rng=random.Random(1))
        session.start(ADAPTIVE)
        _play_out(session)
        self.assertEqual(model.games_learned, 1)
        self.assertEqual(store.saves, 1)
        self.assertTrue(session.last_save_ok)
        self.assertEqual(model.opening_counts, {0: 1})

    def test_other_difficulties_do_not_learn(self) -> None:
        model = OpponentModel()
        session = GameSession(model=model)
        session.start("reactive")
        _play_out(session)
        session.restart()
        session.exit_to_menu()
        session.start(OPTIMAL)
        _play_out(session)
        self.assertEqual(model.games_learned, 0)

    def test_optimal_never_loses_in_session(self) -> None:
        session = GameSession(rng=random.Random(5))
        session.start(OPTIMAL)
        for _i in range(3):
            _play_out(session)
            self.assertNotEqual(session.last_winner, X)
            session.restart()
        self.assertEqual(session.scores[X], 0)

    def test_listeners_see_every_change(self) -> None:
        seen = []
        session = GameSession()
        session.subscribe(lambda s: seen.append(s.status_text()))
        session.start(OPTIMAL)
        session.play(0)
        self.assertEqual(seen[0], "Player X's turn")
        self.assertIn("Player O's turn", seen)
        self.assertEqual(seen[-1], "Player X's turn")


if __name__ == "__main__":
    unittest.main()
