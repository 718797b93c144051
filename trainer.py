# trainer.py
# Training orchestrator: repeatedly calls PolicyValueNet.train on minibatches
# drawn from the teacher corpus, schedules the learning rate, and keeps the
# loss history, evaluation stats and snapshots in the database.

import logging
import os

import numpy as np
from torch.utils.tensorboard import SummaryWriter
from tqdm import tqdm

from arena import evaluate_network, tally
from config import config
from data_structures import MatchStats
from db_manager import BASE_LR_PREFIX
from dataset import generate_rollout_examples
from network import NetworkConfig, PolicyValueNet, SnapshotShapeError
from opponents import make_opponent
from oracle import MinimaxOracle
from utils import RunningMean

logger = logging.getLogger("Trainer")

HUMAN_OPPONENT = 'you'

def create_summary_writer(name, log_dir=config.TENSORBOARD_DIR):
    return SummaryWriter(os.path.join(log_dir, name))

def load_or_create_network(name, network_config: NetworkConfig, db_manager=None, seed=None) -> PolicyValueNet:
    """Prefers a previously-trained snapshot for continuity; falls back to a fresh network."""
    network = PolicyValueNet(network_config, seed=seed)
    if db_manager is None:
        return network
    snapshot = db_manager.load_snapshot(name)
    if snapshot is None:
        logger.info(f"No stored snapshot for '{name}'. Starting fresh.")
        return network
    try:
        network.load_snapshot(snapshot)
        logger.info(f"Restored '{name}' ({network.training_count} examples trained).")
    except SnapshotShapeError as e:
        logger.warning(f"Failed to load snapshot for '{name}', using a fresh network: {e}")
        network = PolicyValueNet(network_config, seed=seed)
    return network


class TeacherTrainer:
    def __init__(self, network: PolicyValueNet, name: str, db_manager=None, writer=None, oracle=None, seed=None):
        self.network = network
        self.name = name
        self.db_manager = db_manager
        self.writer = writer
        self.oracle = oracle or MinimaxOracle()
        self.rng = np.random.default_rng(seed)
        self.base_learning_rate = network.get_learning_rate()
        if db_manager is not None:
            # The snapshot carries the live (possibly already dropped) rate; the base rate is kept separately.
            self.base_learning_rate = db_manager.get(BASE_LR_PREFIX + name, self.base_learning_rate)
        self.loss_history = list(db_manager.load_history(name)) if db_manager else []
        self.games_completed = len(self.loss_history)
        self.test_stats = db_manager.load_test_stats(name) if db_manager else {}
        self.train_steps = 0

    def scheduled_learning_rate(self, games_completed: int) -> float:
        if games_completed >= config.LR_DROP_AT_GAMES:
            return self.base_learning_rate * config.LR_DROP_FACTOR
        return self.base_learning_rate

    def apply_schedule(self, games_completed: int) -> float:
        lr = self.scheduled_learning_rate(games_completed)
        self.network.set_learning_rate(lr)
        return lr

    def sample_batch(self, dataset, batch_size=config.BATCH_SIZE):
        indices = self.rng.integers(len(dataset), size=batch_size)
        return [dataset[i] for i in indices]

    def _log_step(self, loss, gradients, lr):
        if self.writer is None:
            return
        self.writer.add_scalar('train/batch_loss', loss, self.train_steps)
        self.writer.add_scalar('train/learning_rate', lr, self.train_steps)
        if gradients:
            mean_grad = float(np.mean([g.weights.mean() for g in gradients]))
            self.writer.add_scalar('train/mean_abs_gradient', mean_grad, self.train_steps)

    def run_teacher_training(self, dataset, games, count_games=True, should_stop=None) -> float:
        """
        Trains for `games` rounds of BATCHES_PER_GAME minibatches each and returns the
        mean of the per-game average losses. `should_stop` is polled between batches.
        """
        if not dataset or games <= 0:
            return 0.0

        across_games = RunningMean()
        stopped = False
        progress = tqdm(range(games), desc=f"Training {self.name}", unit="game", leave=False, dynamic_ncols=True)
        for _ in progress:
            lr = self.apply_schedule(self.games_completed)
            this_game = RunningMean()
            for _ in range(config.BATCHES_PER_GAME):
                if should_stop is not None and should_stop():
                    stopped = True
                    break
                loss, gradients = self.network.train_with_diagnostics(self.sample_batch(dataset))
                self.train_steps += 1
                if not this_game.update(loss):
                    logger.warning(f"Non-finite batch loss ({loss}) at step {self.train_steps}; excluded from averages.")
                    continue
                self._log_step(loss, gradients, lr)

            if this_game.weight > 0:
                game_loss = this_game.mean
                across_games.update(game_loss)
                self.loss_history.append(game_loss)
                if self.writer is not None:
                    self.writer.add_scalar('train/game_loss', game_loss, len(self.loss_history))
                progress.set_postfix(loss=f"{game_loss:.4f}", lr=f"{lr:.5f}")
            if count_games and not stopped:
                self.games_completed += 1
            if stopped:
                logger.info("Stop requested. Ending training early.")
                break
        progress.close()

        logger.info(f"Trained '{self.name}' for {across_games.weight:.0f} games: avg loss {across_games.mean:.4f}, "
                    f"lr {self.network.get_learning_rate():.5f}, total examples {self.network.training_count}")
        self.save()
        return across_games.mean

    def train_on_rollouts(self, num_games=config.ROLLOUT_GAMES, should_stop=None) -> float:
        episodes = generate_rollout_examples(num_games, oracle=self.oracle, rng=self.rng)
        if not episodes:
            logger.warning("No rollout states generated.")
            return 0.0
        return self.run_teacher_training(episodes, num_games, should_stop=should_stop)

    def evaluate(self, opponent_name, num_games=config.EVAL_GAMES, temperature=0.0) -> MatchStats:
        opponent = make_opponent(opponent_name, oracle=self.oracle, rng=self.rng)
        stats = evaluate_network(self.network, opponent, num_games=num_games, temperature=temperature, rng=self.rng)
        self.test_stats[opponent_name] = self.test_stats.get(opponent_name, MatchStats()).merge(stats)
        if self.writer is not None:
            self.writer.add_scalar(f'eval/{opponent_name}_score', stats.score, self.games_completed)
        if self.db_manager is not None:
            self.db_manager.save_test_stats(self.name, self.test_stats)
        return stats

    def record_human_game(self, record) -> MatchStats:
        """Adds a game played against a person to the cumulative stats under 'you'."""
        self.test_stats[HUMAN_OPPONENT] = self.test_stats.get(HUMAN_OPPONENT, MatchStats()).merge(tally(record))
        if self.db_manager is not None:
            self.db_manager.save_game_record(self.name, record)
            self.db_manager.save_test_stats(self.name, self.test_stats)
        return self.test_stats[HUMAN_OPPONENT]

    def save(self):
        if self.writer is not None:
            self.writer.flush()
        if self.db_manager is None:
            return
        self.db_manager.save_snapshot(self.name, self.network.get_snapshot())
        self.db_manager.save_history(self.name, self.loss_history)
        self.db_manager.set(BASE_LR_PREFIX + self.name, self.base_learning_rate)
