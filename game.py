import numpy as np
from config import config

EMPTY, PLAYER_X, PLAYER_O = '_', 'X', 'O'
EMPTY_BOARD = EMPTY * config.ACTION_SPACE_SIZE

WINNING_LINES = (
    (0, 1, 2), (3, 4, 5), (6, 7, 8),  # rows
    (0, 3, 6), (1, 4, 7), (2, 5, 8),  # columns
    (0, 4, 8), (2, 4, 6),             # diagonals
)

# Boards are immutable strings; every move produces a new board.
def compute_winner(board):
    for a, b, c in WINNING_LINES:
        if board[a] != EMPTY and board[a] == board[b] == board[c]:
            return board[a]
    return None

def is_move_valid(board, index):
    return 0 <= index < len(board) and board[index] == EMPTY

def next_turn(mark):
    return PLAYER_O if mark == PLAYER_X else PLAYER_X

def apply_move(board, index, mark):
    return board[:index] + mark + board[index + 1:]

def is_full(board):
    return EMPTY not in board

def is_terminal(board):
    return compute_winner(board) is not None or is_full(board)

def legal_moves(board):
    return [i for i, cell in enumerate(board) if cell == EMPTY]

def board_mask(board) -> np.ndarray:
    return np.array([1.0 if cell == EMPTY else 0.0 for cell in board])

def board_to_input(board, turn) -> np.ndarray:
    """9 cell encodings (X=1, O=-1, empty=0) followed by the turn indicator (X=1, O=-1)."""
    cells = [1.0 if c == PLAYER_X else -1.0 if c == PLAYER_O else 0.0 for c in board]
    cells.append(1.0 if turn == PLAYER_X else -1.0)
    return np.array(cells)


class TicTacToeGame:
    def __init__(self, first_player=config.FIRST_PLAYER):
        self.first_player = first_player
        self.reset()
    def reset(self):
        self.board = EMPTY_BOARD
        self.current_player, self.last_move, self.move_count = self.first_player, None, 0
        self.history = []
        return self
    def get_valid_moves(self):
        return legal_moves(self.board)
    def do_move(self, move_idx):
        if not is_move_valid(self.board, move_idx):
            raise ValueError(f"Illegal move {move_idx} on board {self.board}")
        self.history.append((self.board, move_idx, self.current_player))
        self.board = apply_move(self.board, move_idx, self.current_player)
        self.last_move = move_idx; self.current_player = next_turn(self.current_player); self.move_count += 1

    def get_game_ended(self):
        winner = compute_winner(self.board)
        if winner is not None: return winner
        if is_full(self.board): return 'draw'
        return None

def format_board(board):
    """Three text rows; empty cells show their move index."""
    size = config.BOARD_SIZE
    cells = [str(i) if cell == EMPTY else cell for i, cell in enumerate(board)]
    return '\n'.join(' '.join(cells[r * size:(r + 1) * size]) for r in range(size))
