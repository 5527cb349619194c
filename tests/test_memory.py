import random
import unittest

from tictactoe_ai.board import EMPTY, O, X
from tictactoe_ai.memory import (
    OUTCOME_DRAW,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    PATTERN_CAPACITY,
    SEQUENCE_CAPACITY,
    STYLE_MIXED,
    STYLE_UNKNOWN,
    OpponentModel,
    classify,
    outcome_for,
    predict_counter,
    recommend,
    record_outcome,
)

_ = EMPTY


class RecordingStore:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.saved = []

    def save(self, model: OpponentModel) -> bool:
        self.saved.append(model.games_learned)
        return self.result


class TestRecordOutcome(unittest.TestCase):
    def test_win_is_remembered_with_human_moves(self) -> None:
        model = OpponentModel()
        durable = record_outcome(model, [0, 4, 8, 2, 6, 3, 1], OUTCOME_WIN)
        self.assertFalse(durable)
        self.assertEqual(model.winning_sequences, [[0, 4, 8, 2, 6, 3, 1]])
        self.assertEqual(model.losing_sequences, [])
        self.assertEqual(model.player_patterns, [[0, 8, 6, 1]])
        self.assertEqual(model.opening_counts, {0: 1})
        self.assertEqual(model.games_learned, 1)

    def test_draw_touches_neither_sequence_list(self) -> None:
        model = OpponentModel()
        record_outcome(model, [4, 0, 8, 2, 1, 7, 6, 3, 5], OUTCOME_DRAW)
        self.assertEqual(model.winning_sequences, [])
        self.assertEqual(model.losing_sequences, [])
        self.assertEqual(model.opening_counts, {4: 1})
        self.assertEqual(model.games_learned, 1)

    def test_lists_are_bounded_oldest_first(self) -> None:
        model = OpponentModel()
        for i in range(SEQUENCE_CAPACITY + 5):
            record_outcome(model, [i % 9], OUTCOME_LOSS)
        self.assertEqual(len(model.losing_sequences), SEQUENCE_CAPACITY)
        self.assertEqual(model.losing_sequences[0], [5 % 9])
        for i in range(PATTERN_CAPACITY):
            record_outcome(model, [i % 9], OUTCOME_DRAW)
        self.assertEqual(len(model.player_patterns), PATTERN_CAPACITY)
        self.assertEqual(model.games_learned, SEQUENCE_CAPACITY + 5 + PATTERN_CAPACITY)

    def test_store_result_is_returned(self) -> None:
        store = RecordingStore(result=True)
        self.assertTrue(record_outcome(OpponentModel(), [0, 4], OUTCOME_LOSS, store))
        self.assertEqual(store.saved, [1])
        self.assertFalse(record_outcome(OpponentModel(), [0, 4], OUTCOME_LOSS, RecordingStore(result=False)))

    def test_unknown_outcome_rejected(self) -> None:
        with self.assertRaises(ValueError):
            record_outcome(OpponentModel(), [0], "victory")

    def test_outcome_for_automated_side(self) -> None:
        self.assertEqual(outcome_for(O), OUTCOME_WIN)
        self.assertEqual(outcome_for(X), OUTCOME_LOSS)
        self.assertEqual(outcome_for(None), OUTCOME_DRAW)


class TestRecommend(unittest.TestCase):
    def test_avoids_third_move_of_a_lost_game(self) -> None:
        model = OpponentModel(losing_sequences=[[2, 4, 0, 1, 6]])
        empty = [0, 1, 3, 5, 6, 7, 8]
        rng = random.Random(3)
        picks = {recommend(model, empty, [2, 4], rng) for _i in range(200)}
        self.assertNotIn(0, picks)
        self.assertTrue(picks.issubset(set(empty)))
        self.assertGreater(len(picks), 1)

    def test_needs_two_moves(self) -> None:
        model = OpponentModel(losing_sequences=[[2, 4, 0]], winning_sequences=[[2, 4, 0]])
        self.assertIsNone(recommend(model, [0, 1, 3], [2]))
        self.assertIsNone(recommend(model, [0, 1, 3], []))

    def test_only_trap_left_falls_through(self) -> None:
        model = OpponentModel(losing_sequences=[[2, 4, 0]])
        self.assertIsNone(recommend(model, [0], [2, 4]))

    def test_replays_winning_continuation(self) -> None:
        model = OpponentModel(winning_sequences=[[0, 4, 8, 2, 6]])
        self.assertEqual(recommend(model, [1, 2, 3, 5, 6, 7], [0, 4, 8]), 2)
        # Continuation already taken: nothing to suggest.
        self.assertIsNone(recommend(model, [1, 3, 5, 6, 7], [0, 4, 8]))
        # Stored game no longer than the current one.
        self.assertIsNone(recommend(model, [1, 3, 7], [0, 4, 8, 2, 6, 5]))

    def test_different_prefix_never_matches(self) -> None:
        model = OpponentModel(losing_sequences=[[2, 4, 0]], winning_sequences=[[4, 2, 0, 1]])
        self.assertIsNone(recommend(model, [0, 1, 3], [4, 0]))


class TestPredictCounter(unittest.TestCase):
    def test_center_answers_corner_habit(self) -> None:
        model = OpponentModel(opening_counts={2: 4, 4: 1})
        self.assertEqual(predict_counter(model, [_, _, X, _, _, _, _, _, _]), 4)

    def test_opposite_corner_when_center_taken(self) -> None:
        model = OpponentModel(opening_counts={0: 3})
        self.assertEqual(predict_counter(model, [_, _, _, _, X, _, _, _, _]), 8)

    def test_tie_goes_to_lower_index(self) -> None:
        model = OpponentModel(opening_counts={6: 2, 1: 2})
        self.assertEqual(model.preferred_opening(), 1)
        self.assertIsNone(predict_counter(model, [_, X, _, _, _, _, _, _, _]))

    def test_only_before_first_reply(self) -> None:
        model = OpponentModel(opening_counts={0: 3})
        self.assertIsNone(predict_counter(model, [X, _, _, _, O, _, _, _, X]))
        self.assertIsNone(predict_counter(OpponentModel(), [X, _, _, _, _, _, _, _, _]))


class TestClassify(unittest.TestCase):
    def test_unknown_without_patterns(self) -> None:
        style = classify(OpponentModel())
        self.assertEqual(style.label, STYLE_UNKNOWN)
        self.assertEqual(style.samples, 0)
        self.assertIn("unknown", style.describe())

    def test_corner_preferring(self) -> None:
        model = OpponentModel(player_patterns=[[0, 4], [2], [8, 1], [4]])
        style = classify(model)
        self.assertEqual(style.label, "corner-preferring")
        self.assertAlmostEqual(style.percentages["corner"], 75.0)
        self.assertAlmostEqual(style.percentages["center"], 25.0)

    def test_tie_is_mixed(self) -> None:
        model = OpponentModel(player_patterns=[[1], [4]])
        self.assertEqual(classify(model).label, STYLE_MIXED)


if __name__ == "__main__":
    unittest.main()
