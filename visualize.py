# visualize.py

import os

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from config import config
from game import board_mask, board_to_input

def _ensure_dir(path):
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)

def plot_loss_history(losses, path, title="Training loss per game"):
    _ensure_dir(path)
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(np.arange(1, len(losses) + 1), losses, linewidth=1.0, label="loss")
    if len(losses) >= 10:
        window = max(len(losses) // 20, 5)
        smoothed = np.convolve(losses, np.ones(window) / window, mode='valid')
        ax.plot(np.arange(window, len(losses) + 1), smoothed, linewidth=2.0, label=f"moving avg ({window})")
    ax.set_xlabel("game"); ax.set_ylabel("loss"); ax.set_title(title); ax.legend()
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path

def plot_policy_heatmap(network, board, turn, path):
    _ensure_dir(path)
    policy, value = network.forward(board_to_input(board, turn), board_mask(board))
    size = config.BOARD_SIZE
    grid = policy.reshape(size, size)
    labels = np.array([cell if cell != '_' else f"{p:.2f}" for cell, p in zip(board, policy)]).reshape(size, size)
    fig, ax = plt.subplots(figsize=(5, 5))
    sns.heatmap(grid, cmap="viridis", ax=ax, square=True, vmin=0.0, vmax=1.0, annot=labels, fmt="", cbar=True)
    ax.set_title(f"{turn} to move, value {value:+.2f}")
    ax.set_xticks([]); ax.set_yticks([])
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    return path
