# config.py

class Config:
    def __init__(self):
        # ================================================================
        #                      Game configuration
        # ================================================================
        self.BOARD_SIZE = 3
        self.ACTION_SPACE_SIZE = self.BOARD_SIZE * self.BOARD_SIZE
        self.INPUT_SIZE = self.ACTION_SPACE_SIZE + 1  # 9 cells + turn indicator
        self.FIRST_PLAYER = 'X'

        # ================================================================
        #                      Oracle (negamax teacher)
        # ================================================================
        # Depth-aware scoring: a win at depth d is worth SCORE_WIN - d.
        self.SCORE_WIN = 10
        self.SCORE_TOLERANCE = 1e-6

        # ================================================================
        #                      Network defaults
        # ================================================================
        self.DEFAULT_WEIGHT_DECAY = 0.0005
        self.DEFAULT_DROPOUT = 0.15
        self.DEFAULT_GRADIENT_CLIP = 5.0
        self.DEFAULT_VALUE_LOSS_WEIGHT = 0.5
        self.ILLEGAL_LOGIT = -1e9
        self.LOG_EPSILON = 1e-9

        # Presets offered when setting up a new network
        self.NETWORK_PRESETS = {
            'small': [32],
            'medium': [64, 32],
            'large': [128, 64, 32],
        }
        self.SETUP_LEARNING_RATE = 0.015
        self.SETUP_DROPOUT = 0.10
        self.SETUP_WEIGHT_DECAY = 0.0001

        # ================================================================
        #                      Training schedule
        # ================================================================
        self.BATCHES_PER_GAME = 14
        self.BATCH_SIZE = 10
        self.LR_DROP_AT_GAMES = 200
        self.LR_DROP_FACTOR = 0.25
        self.ROLLOUT_GAMES = 5
        self.EVAL_GAMES = 10
        self.EXPLORATION_TEMPERATURE = 0.3
        self.GREEDY_TEMPERATURE = 0.01
        self.EASY_OPTIMAL_PROBABILITY = 0.5

        # ================================================================
        #                      Persistence & logging
        # ================================================================
        self.OUTPUTS_DIR = "outputs"
        self.DB_PATH = "outputs/training_state.db"
        self.LOG_FILE = "outputs/training.log"
        self.TENSORBOARD_DIR = "outputs/logs"

        self.CURRENT_CONFIG = "TicTacToe_Minimax_Imitation"

config = Config()
