# oracle.py

import logging
import numpy as np

from config import config
from data_structures import TeacherState
from game import compute_winner, is_full, apply_move, board_mask, legal_moves, next_turn

class MinimaxOracle:
    """
    Exhaustive negamax teacher. For any (board, turn) it returns the set of
    game-theoretically optimal moves as a uniform distribution, the legal-move
    mask and the position value for the side to move.

    Scores are depth-aware: a win reached `d` plies below the queried state is
    worth `win_score - d`, so quicker wins and slower losses are preferred.
    The memo stores every score relative to its own node (depth 0), and a
    score is moved one ply toward zero each time it is handed to the parent.
    A cached entry is therefore a pure function of (board, turn) and never
    depends on which query reached the state first.
    """
    def __init__(self, win_score=config.SCORE_WIN, tolerance=config.SCORE_TOLERANCE):
        self.win_score = win_score
        self.tolerance = tolerance
        self._score_cache = {}
        self._policy_cache = {}
        self.logger = logging.getLogger("Oracle")

    @property
    def cache_size(self) -> int:
        return len(self._score_cache)

    def clear_cache(self):
        self._score_cache.clear()
        self._policy_cache.clear()

    def _terminal_score(self, board):
        # A winner on the board means the opponent just completed a line.
        if compute_winner(board) is not None:
            return -self.win_score
        if is_full(board):
            return 0
        return None

    @staticmethod
    def _one_ply_deeper(score):
        if score > 0: return score - 1
        if score < 0: return score + 1
        return 0

    def _child_score(self, board, move, turn):
        child = apply_move(board, move, turn)
        return -self._one_ply_deeper(self._negamax(child, next_turn(turn)))

    def _negamax(self, board, turn):
        key = (board, turn)
        cached = self._score_cache.get(key)
        if cached is not None:
            return cached

        best = self._terminal_score(board)
        if best is None:
            best = max(self._child_score(board, move, turn) for move in legal_moves(board))

        self._score_cache[key] = best
        return best

    def minimax_policy(self, board, turn) -> TeacherState:
        key = (board, turn)
        mask = board_mask(board)
        cached = self._policy_cache.get(key)
        if cached is not None:
            policy, value = cached
            return TeacherState(board, turn, policy.copy(), mask, value)

        policy = np.zeros(config.ACTION_SPACE_SIZE)
        if self._terminal_score(board) is not None:
            self._policy_cache[key] = (policy, 0.0)
            return TeacherState(board, turn, policy.copy(), mask, 0.0)

        scores = {move: self._child_score(board, move, turn) for move in legal_moves(board)}
        best_score = max(scores.values())
        best_moves = [move for move, score in scores.items() if abs(score - best_score) < self.tolerance]
        policy[best_moves] = 1.0 / len(best_moves)

        value = float(max(-1.0, min(1.0, best_score / self.win_score)))
        self._policy_cache[key] = (policy, value)
        self.logger.debug(f"Labeled {board}|{turn}: value={value:.2f}, optimal={best_moves}, cache={self.cache_size}")
        return TeacherState(board, turn, policy.copy(), mask, value)
