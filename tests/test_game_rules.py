import unittest
import numpy as np
import sys
import os

# Allow direct imports from the project root
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

from game import (EMPTY_BOARD, TicTacToeGame, apply_move, board_mask, board_to_input, compute_winner,
                  format_board, is_move_valid, is_terminal, legal_moves, next_turn)


class TestGameRules(unittest.TestCase):

    def test_winner_on_every_line(self):
        lines = [(0, 1, 2), (3, 4, 5), (6, 7, 8), (0, 3, 6), (1, 4, 7), (2, 5, 8), (0, 4, 8), (2, 4, 6)]
        for line in lines:
            board = ''.join('O' if i in line else '_' for i in range(9))
            self.assertEqual(compute_winner(board), 'O', f"line {line}")

    def test_no_winner(self):
        self.assertIsNone(compute_winner(EMPTY_BOARD))
        self.assertIsNone(compute_winner('XOXXOOOXX'))  # full board, draw
        self.assertIsNone(compute_winner('XX_OO____'))

    def test_move_validity(self):
        board = 'X___O____'
        self.assertFalse(is_move_valid(board, 0))
        self.assertFalse(is_move_valid(board, 4))
        self.assertTrue(is_move_valid(board, 8))
        self.assertFalse(is_move_valid(board, 9))
        self.assertFalse(is_move_valid(board, -1))

    def test_turn_alternation(self):
        self.assertEqual(next_turn('X'), 'O')
        self.assertEqual(next_turn('O'), 'X')

    def test_apply_move_returns_new_board(self):
        board = EMPTY_BOARD
        after = apply_move(board, 4, 'X')
        self.assertEqual(board, EMPTY_BOARD)
        self.assertEqual(after, '____X____')

    def test_mask_and_input_encoding(self):
        board = 'XO_______'
        np.testing.assert_array_equal(board_mask(board), [0, 0, 1, 1, 1, 1, 1, 1, 1])
        np.testing.assert_array_equal(board_to_input(board, 'O'), [1, -1, 0, 0, 0, 0, 0, 0, 0, -1])
        np.testing.assert_array_equal(board_to_input(board, 'X')[-1], 1)
        self.assertEqual(legal_moves(board), [2, 3, 4, 5, 6, 7, 8])

    def test_format_board_numbers_empty_cells(self):
        self.assertEqual(format_board('X___O___X'), 'X 1 2\n3 O 5\n6 7 X')

    def test_terminal_detection(self):
        self.assertTrue(is_terminal('XXX_OO___'))
        self.assertTrue(is_terminal('XOXXOOOXX'))
        self.assertFalse(is_terminal(EMPTY_BOARD))


class TestTicTacToeGame(unittest.TestCase):

    def test_full_game_to_draw(self):
        game = TicTacToeGame()
        for move in [0, 1, 2, 4, 3, 5, 7, 6, 8]:
            self.assertIsNone(game.get_game_ended())
            game.do_move(move)
        self.assertEqual(game.board, 'XOXXOOOXX')
        self.assertEqual(game.get_game_ended(), 'draw')
        self.assertEqual(game.move_count, 9)
        self.assertEqual(len(game.history), 9)

    def test_win_is_reported(self):
        game = TicTacToeGame()
        for move in [0, 3, 1, 4, 2]:
            game.do_move(move)
        self.assertEqual(game.get_game_ended(), 'X')

    def test_illegal_move_raises(self):
        game = TicTacToeGame()
        game.do_move(4)
        with self.assertRaises(ValueError):
            game.do_move(4)
        self.assertEqual(game.current_player, 'O')

    def test_reset_and_valid_moves(self):
        game = TicTacToeGame()
        game.do_move(0)
        game.do_move(8)
        self.assertEqual(game.get_valid_moves(), [1, 2, 3, 4, 5, 6, 7])
        self.assertEqual(game.last_move, 8)
        game.reset()
        self.assertEqual(game.board, EMPTY_BOARD)
        self.assertEqual(game.current_player, 'X')
        self.assertEqual(game.history, [])
        self.assertEqual(len(game.get_valid_moves()), 9)

if __name__ == '__main__':
    unittest.main(verbosity=2)
