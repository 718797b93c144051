import unittest
import numpy as np
import sys
import os

# --- Path Setup ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

# --- Project Imports ---
from config import config
from dataset import enumerate_states
from game import EMPTY_BOARD, board_mask
from oracle import MinimaxOracle


class TestMinimaxOracle(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.oracle = MinimaxOracle()
        cls.states = enumerate_states()

    def test_mask_matches_empty_cells_everywhere(self):
        for board, turn in self.states:
            result = self.oracle.minimax_policy(board, turn)
            np.testing.assert_array_equal(result.mask, board_mask(board))

    def test_policy_is_distribution_over_legal_moves(self):
        for board, turn in self.states:
            result = self.oracle.minimax_policy(board, turn)
            self.assertAlmostEqual(float(result.policy.sum()), 1.0, places=9)
            self.assertTrue(np.all(result.policy[result.mask == 0] == 0))
            self.assertGreaterEqual(result.value, -1.0)
            self.assertLessEqual(result.value, 1.0)

    def test_repeated_queries_are_identical(self):
        first = self.oracle.minimax_policy('X___O____', 'X')
        second = self.oracle.minimax_policy('X___O____', 'X')
        np.testing.assert_array_equal(first.policy, second.policy)
        self.assertEqual(first.value, second.value)
        # Callers mutating a result must not corrupt the cache.
        first.policy[:] = 0
        third = self.oracle.minimax_policy('X___O____', 'X')
        np.testing.assert_array_equal(third.policy, second.policy)

    def test_cached_value_does_not_depend_on_query_order(self):
        board = 'XX_OO____'
        fresh = MinimaxOracle()
        direct = fresh.minimax_policy(board, 'X')
        warmed = MinimaxOracle()
        warmed.minimax_policy(EMPTY_BOARD, 'X')
        via_root = warmed.minimax_policy(board, 'X')
        np.testing.assert_array_equal(direct.policy, via_root.policy)
        self.assertEqual(direct.value, via_root.value)

    def test_forced_win_gets_all_the_mass(self):
        result = self.oracle.minimax_policy('XX_OO____', 'X')
        expected = np.zeros(9)
        expected[2] = 1.0
        np.testing.assert_array_equal(result.policy, expected)
        self.assertAlmostEqual(result.value, (config.SCORE_WIN - 1) / config.SCORE_WIN)

    def test_must_block_immediate_threat(self):
        # O to move; X threatens 0-1-2.
        result = self.oracle.minimax_policy('XX__O____', 'O')
        self.assertEqual(result.policy[2], 1.0)

    def test_lost_position_has_negative_value(self):
        # X has two open lines (fork); O cannot stop both.
        result = self.oracle.minimax_policy('X_X_O_O_X', 'O')
        self.assertLess(result.value, 0)

    def test_empty_board_is_a_draw_with_uniform_openings(self):
        result = self.oracle.minimax_policy(EMPTY_BOARD, 'X')
        self.assertEqual(result.value, 0.0)
        np.testing.assert_allclose(result.policy, np.full(9, 1 / 9))

    def test_terminal_states_return_zero_policy(self):
        for board in ['XOXXOOOXX', 'XXXOO____']:
            result = self.oracle.minimax_policy(board, 'O')
            np.testing.assert_array_equal(result.policy, np.zeros(9))
            self.assertEqual(result.value, 0.0)

    def test_cache_is_owned_by_instance(self):
        oracle = MinimaxOracle()
        self.assertEqual(oracle.cache_size, 0)
        oracle.minimax_policy('XX_OO____', 'X')
        self.assertGreater(oracle.cache_size, 0)
        self.assertEqual(MinimaxOracle().cache_size, 0)
        oracle.clear_cache()
        self.assertEqual(oracle.cache_size, 0)

if __name__ == '__main__':
    unittest.main(verbosity=2)
