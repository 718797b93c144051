# opponents.py
# Scripted move pickers used as adversaries during evaluation. Every picker
# has the shape (board, turn) -> move index, or None when no move is legal.

from functools import lru_cache

import numpy as np

from config import config
from game import apply_move, board_mask, board_to_input, compute_winner, is_full, legal_moves, next_turn
from oracle import MinimaxOracle

def random_move(board, turn, rng=None):
    moves = legal_moves(board)
    if not moves:
        return None
    rng = rng or np.random.default_rng()
    return int(moves[rng.integers(len(moves))])

def pick_best_move(policy, mask):
    best, best_score = None, -np.inf
    for i in range(len(policy)):
        if mask[i] == 0:
            continue
        if policy[i] > best_score:
            best, best_score = i, policy[i]
    return best

def oracle_move(board, turn, oracle):
    labeled = oracle.minimax_policy(board, turn)
    return pick_best_move(labeled.policy, labeled.mask)

def easy_move(board, turn, oracle, rng=None):
    """Plays the oracle's move half of the time and a random move otherwise."""
    rng = rng or np.random.default_rng()
    if rng.random() < config.EASY_OPTIMAL_PROBABILITY:
        return oracle_move(board, turn, oracle)
    return random_move(board, turn, rng)

@lru_cache(maxsize=None)
def _minimax(board, player, ai, maximizing):
    winner = compute_winner(board)
    if winner is not None:
        return (10 if winner == ai else -10), None
    if is_full(board):
        return 0, None

    best_score = -np.inf if maximizing else np.inf
    best_index = None
    for i in legal_moves(board):
        score, _ = _minimax(apply_move(board, i, player), next_turn(player), ai, not maximizing)
        if (maximizing and score > best_score) or (not maximizing and score < best_score):
            best_score, best_index = score, i
    return best_score, best_index

def classical_minimax_move(board, turn):
    """Plain win/lose/draw minimax game agent; ties go to the lowest index."""
    _, index = _minimax(board, turn, turn, True)
    return index

def network_move(network, board, turn, temperature=0.0, rng=None):
    mask = board_mask(board)
    policy, _ = network.forward(board_to_input(board, turn), mask)
    if temperature <= config.GREEDY_TEMPERATURE:
        return pick_best_move(policy, mask)

    weights = np.where(mask == 1, np.power(np.maximum(policy, 1e-8), 1.0 / temperature), 0.0)
    total = weights.sum()
    legal = np.flatnonzero(mask == 1)
    if len(legal) == 0:
        return None
    if total <= 0:
        return int(legal[0])
    rng = rng or np.random.default_rng()
    return int(rng.choice(len(weights), p=weights / total))

def make_opponent(name, oracle=None, rng=None):
    oracle = oracle or MinimaxOracle()
    rng = rng or np.random.default_rng()
    if name == 'minimax':
        return lambda board, turn: oracle_move(board, turn, oracle)
    if name == 'random':
        return lambda board, turn: random_move(board, turn, rng)
    if name == 'easy':
        return lambda board, turn: easy_move(board, turn, oracle, rng)
    if name == 'classical':
        return classical_minimax_move
    raise ValueError(f"Unknown opponent '{name}', expected one of minimax, random, easy, classical")

OPPONENT_NAMES = ('minimax', 'random', 'easy', 'classical')
