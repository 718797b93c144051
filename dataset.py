"""Teacher dataset construction: exhaustive state enumeration, oracle labels and
board-symmetry augmentation, plus oracle rollouts as an alternative corpus."""

import logging
from collections import OrderedDict

import numpy as np

from config import config
from data_structures import TeacherState, TrainingExample
from game import (EMPTY, EMPTY_BOARD, apply_move, board_mask, board_to_input, is_terminal,
                  legal_moves, next_turn)
from oracle import MinimaxOracle

logger = logging.getLogger("Dataset")

# Each permutation sends the cell at index i to index perm[i].
SYMMETRIES = OrderedDict([
    ('id',      (0, 1, 2, 3, 4, 5, 6, 7, 8)),
    ('rot90',   (2, 5, 8, 1, 4, 7, 0, 3, 6)),
    ('rot180',  (8, 7, 6, 5, 4, 3, 2, 1, 0)),
    ('rot270',  (6, 3, 0, 7, 4, 1, 8, 5, 2)),
    ('flip_tb', (6, 7, 8, 3, 4, 5, 0, 1, 2)),
    ('flip_lr', (2, 1, 0, 5, 4, 3, 8, 7, 6)),
    ('diag',    (0, 3, 6, 1, 4, 7, 2, 5, 8)),
    ('anti',    (8, 5, 2, 7, 4, 1, 6, 3, 0)),
])

def transform_board(board, perm):
    out = [EMPTY] * len(board)
    for i, cell in enumerate(board):
        out[perm[i]] = cell
    return ''.join(out)

def transform_policy(policy, perm) -> np.ndarray:
    out = np.zeros(len(policy))
    for i, p in enumerate(policy):
        out[perm[i]] += p
    return out

def enumerate_states(start_board=EMPTY_BOARD, start_turn=config.FIRST_PLAYER):
    """Depth-first walk over every reachable (board, turn); returns the non-terminal ones in visit order."""
    seen, states = set(), []

    def walk(board, turn):
        key = (board, turn)
        if key in seen:
            return
        seen.add(key)
        if is_terminal(board):
            return
        states.append(key)
        for move in legal_moves(board):
            walk(apply_move(board, move, turn), next_turn(turn))

    walk(start_board, start_turn)
    return states

def generate_teacher_dataset(augment_symmetries=True, oracle=None):
    oracle = oracle or MinimaxOracle()
    states = enumerate_states()
    out, dedupe = [], set()

    for board, turn in states:
        labeled = oracle.minimax_policy(board, turn)

        if not augment_symmetries:
            if (board, turn) not in dedupe:
                dedupe.add((board, turn))
                out.append(labeled)
            continue

        for perm in SYMMETRIES.values():
            new_board = transform_board(board, perm)
            key = (new_board, turn)
            if key in dedupe:
                continue
            dedupe.add(key)
            out.append(TeacherState(
                board=new_board,
                turn=turn,
                policy=transform_policy(labeled.policy, perm),
                mask=board_mask(new_board),
                value=labeled.value,
            ))

    logger.info(f"Teacher dataset: {len(states)} reachable states -> {len(out)} examples "
                f"(augment_symmetries={augment_symmetries}, oracle cache={oracle.cache_size})")
    return out

def to_training_examples(states, weight=1.0):
    return [
        TrainingExample(
            input=board_to_input(s.board, s.turn),
            target=np.asarray(s.policy, dtype=float),
            mask=np.asarray(s.mask, dtype=float),
            weight=weight,
            value=s.value,
        )
        for s in states
    ]

def choose_optimal_move(policy, mask, rng=None, tolerance=config.SCORE_TOLERANCE):
    """Uniform choice among the legal moves sharing the highest probability; None when nothing is legal."""
    rng = rng or np.random.default_rng()
    legal = [i for i in range(len(mask)) if mask[i] == 1]
    if not legal:
        return None
    best = max(policy[i] for i in legal)
    candidates = [i for i in legal if abs(policy[i] - best) < tolerance]
    return int(candidates[rng.integers(len(candidates))])

def generate_rollout_examples(num_games, oracle=None, rng=None):
    """Self-play games where both sides follow the oracle; every visited state becomes an example."""
    oracle = oracle or MinimaxOracle()
    rng = rng or np.random.default_rng()
    episodes = []
    for _ in range(num_games):
        board, turn = EMPTY_BOARD, config.FIRST_PLAYER
        while True:
            labeled = oracle.minimax_policy(board, turn)
            episodes.append(labeled)
            move = choose_optimal_move(labeled.policy, labeled.mask, rng)
            if move is None:
                break
            board = apply_move(board, move, turn)
            if is_terminal(board):
                break
            turn = next_turn(turn)
    logger.info(f"Oracle rollouts: {num_games} games -> {len(episodes)} states")
    return to_training_examples(episodes)
