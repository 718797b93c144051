# loss.py

import numpy as np

from config import config

def cross_entropy(policy, target, epsilon=config.LOG_EPSILON) -> float:
    policy = np.asarray(policy, dtype=float)
    target = np.asarray(target, dtype=float)
    return float(-np.sum(target * np.log(np.maximum(policy, epsilon))))

def value_loss(value, target_value) -> float:
    return (value - target_value) ** 2

def example_loss(policy, value, example, value_loss_weight) -> float:
    """Unweighted per-example loss; the caller scales it by the sample weight."""
    return cross_entropy(policy, example.target) + value_loss_weight * value_loss(value, example.value)

def policy_gradient(policy, example) -> np.ndarray:
    # Softmax + cross-entropy collapses to (p - t) at the logits.
    return (np.asarray(policy) - np.asarray(example.target)) * example.weight

def value_gradient(value, example, value_loss_weight) -> float:
    # d/dz of weight * vlw * (tanh(z) - t)^2
    return 2.0 * (value - example.value) * value_loss_weight * example.weight * (1.0 - value * value)
