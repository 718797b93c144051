# data_structures.py

from collections import namedtuple
from dataclasses import dataclass, asdict

# A labeled position produced by the oracle.
TeacherState = namedtuple('TeacherState', [
    'board',    # 9-char board string ('_', 'X', 'O')
    'turn',     # side to move ('X' or 'O')
    'policy',   # optimal-move distribution over 9 cells (np.ndarray)
    'mask',     # 1 for empty cells, 0 for filled (np.ndarray)
    'value'     # outcome for the side to move under optimal play, in [-1, 1]
])

# A single supervised sample for the network.
TrainingExample = namedtuple('TrainingExample', [
    'input',    # 9 cell encodings + turn indicator (np.ndarray, length 10)
    'target',   # target policy (np.ndarray, length 9)
    'mask',     # legal-move mask (np.ndarray, length 9)
    'weight',   # sample weight scaling both loss terms
    'value'     # target value in [-1, 1]
])

# Complete record of a finished game, used for evaluation logging.
GameRecord = namedtuple('GameRecord', [
    'moves',    # list of (board, move, turn) tuples
    'winner'    # 'X', 'O', or None for a draw
])


@dataclass
class MatchStats:
    """Cumulative evaluation results against one opponent, from the network's side."""
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def score(self) -> float:
        if self.games == 0:
            return 0.0
        return (self.wins + 0.5 * self.draws) / self.games

    def merge(self, other: "MatchStats") -> "MatchStats":
        return MatchStats(self.wins + other.wins, self.losses + other.losses, self.draws + other.draws)

    def to_dict(self):
        return asdict(self)
