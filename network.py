# network.py

import logging
from collections import namedtuple
from dataclasses import dataclass, field, asdict, replace
from typing import List, Optional

import numpy as np

from config import config
from loss import example_loss, policy_gradient, value_gradient
from utils import clip, copy_matrices, copy_matrix, glorot_uniform, masked_softmax, shape_of

logger = logging.getLogger("Network")

# Absolute clipped gradients of one layer from one backward pass.
LayerGradients = namedtuple('LayerGradients', ['weights', 'biases'])


class SnapshotShapeError(ValueError):
    """A snapshot does not fit the network it is loaded into, or carries an invalid config."""


@dataclass
class NetworkConfig:
    input_size: int = config.INPUT_SIZE
    hidden_layers: List[int] = field(default_factory=lambda: list(config.NETWORK_PRESETS['medium']))
    output_size: int = config.ACTION_SPACE_SIZE
    learning_rate: float = config.SETUP_LEARNING_RATE
    weight_decay: float = config.DEFAULT_WEIGHT_DECAY
    dropout: float = config.DEFAULT_DROPOUT
    gradient_clip: float = config.DEFAULT_GRADIENT_CLIP
    value_loss_weight: float = config.DEFAULT_VALUE_LOSS_WEIGHT

    def validate(self):
        if self.input_size <= 0 or self.output_size <= 0:
            raise ValueError(f"Input and output sizes must be positive, got {self.input_size} and {self.output_size}")
        if not self.hidden_layers:
            raise ValueError("At least one hidden layer is required to feed the policy and value heads")
        for width in self.hidden_layers:
            if width <= 0:
                raise ValueError(f"Hidden layer widths must be positive, got {list(self.hidden_layers)}")
        if self.learning_rate <= 0:
            raise ValueError(f"Learning rate must be positive, got {self.learning_rate}")
        if self.weight_decay < 0:
            raise ValueError(f"Weight decay must be non-negative, got {self.weight_decay}")
        if not 0 <= self.dropout < 1:
            raise ValueError(f"Dropout must be in [0, 1), got {self.dropout}")
        if self.gradient_clip <= 0:
            raise ValueError(f"Gradient clip must be positive, got {self.gradient_clip}")
        if self.value_loss_weight < 0:
            raise ValueError(f"Value loss weight must be non-negative, got {self.value_loss_weight}")
        return self

    def copy(self) -> "NetworkConfig":
        return replace(self, hidden_layers=list(self.hidden_layers))

    @classmethod
    def from_preset(cls, preset: str, **overrides) -> "NetworkConfig":
        if preset not in config.NETWORK_PRESETS:
            raise ValueError(f"Unknown preset '{preset}', expected one of {sorted(config.NETWORK_PRESETS)}")
        params = dict(
            hidden_layers=list(config.NETWORK_PRESETS[preset]),
            learning_rate=config.SETUP_LEARNING_RATE,
            dropout=config.SETUP_DROPOUT,
            weight_decay=config.SETUP_WEIGHT_DECAY,
            value_loss_weight=config.DEFAULT_VALUE_LOSS_WEIGHT,
            gradient_clip=config.DEFAULT_GRADIENT_CLIP,
        )
        params.update(overrides)
        return cls(**params)


@dataclass
class NetworkSnapshot:
    config: NetworkConfig
    weights: list              # trunk layers followed by the policy head
    biases: list
    value_head_weights: Optional[np.ndarray] = None
    value_head_biases: Optional[np.ndarray] = None
    training_count: int = 0

    def to_dict(self) -> dict:
        return {
            'config': asdict(self.config),
            'weights': [np.asarray(w).tolist() for w in self.weights],
            'biases': [np.asarray(b).tolist() for b in self.biases],
            'value_head_weights': None if self.value_head_weights is None else np.asarray(self.value_head_weights).tolist(),
            'value_head_biases': None if self.value_head_biases is None else np.asarray(self.value_head_biases).tolist(),
            'training_count': self.training_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NetworkSnapshot":
        return cls(
            config=NetworkConfig(**data['config']),
            weights=data['weights'],
            biases=data['biases'],
            value_head_weights=data.get('value_head_weights'),
            value_head_biases=data.get('value_head_biases'),
            training_count=data.get('training_count', 0),
        )


class Layer:
    """Affine map with an (input_dim x output_dim) weight matrix."""
    def __init__(self, input_dim, output_dim, rng):
        self.weights = glorot_uniform(input_dim, output_dim, rng)
        self.biases = np.zeros(output_dim)

    @property
    def shape(self):
        return self.weights.shape

    def forward(self, x):
        return x @ self.weights + self.biases


class PolicyValueNet:
    """
    Multi-layer perceptron with a shared ReLU trunk and two heads: a policy
    head producing a masked softmax over the moves and a value head producing
    tanh(affine) in [-1, 1].

    Training is online SGD, one example at a time, with hand-written
    backpropagation. The two heads' gradients are merged into the shared
    activation using the head weights as they were before the step.
    """
    def __init__(self, network_config: NetworkConfig, seed=None):
        self.config = network_config.copy().validate()
        self.rng = np.random.default_rng(seed)

        sizes = [self.config.input_size] + list(self.config.hidden_layers)
        self.layers = [Layer(sizes[i], sizes[i + 1], self.rng) for i in range(len(sizes) - 1)]
        last_hidden = sizes[-1]
        self.layers.append(Layer(last_hidden, self.config.output_size, self.rng))
        self.value_head = Layer(last_hidden, 1, self.rng)

        self.training = False
        self.training_count = 0
        self._learning_rate = self.config.learning_rate
        self._activations = []

    @property
    def trunk(self):
        return self.layers[:-1]

    @property
    def policy_head(self):
        return self.layers[-1]

    @property
    def num_parameters(self) -> int:
        return sum(l.weights.size + l.biases.size for l in self.layers + [self.value_head])

    def set_training(self, training: bool):
        self.training = training

    def _dropout_mask(self, size):
        p = self.config.dropout
        if not self.training or p <= 0:
            return np.ones(size)
        return (self.rng.random(size) > p) * (1.0 / (1.0 - p))

    def forward(self, input, mask=None):
        activation = np.asarray(input, dtype=float)
        activations = [activation]
        for layer in self.trunk:
            activation = np.maximum(layer.forward(activation), 0.0)
            activation = activation * self._dropout_mask(activation.shape[0])
            activations.append(activation)
        self._activations = activations

        policy = masked_softmax(self.policy_head.forward(activation), mask, config.ILLEGAL_LOGIT)
        value = float(np.tanh(self.value_head.forward(activation)[0]))
        return policy, value

    def _apply_update(self, layer, inputs, delta):
        lr = self._learning_rate
        weight_grad = clip(np.outer(inputs, delta), self.config.gradient_clip)
        bias_grad = clip(delta, self.config.gradient_clip)
        layer.weights *= (1.0 - lr * self.config.weight_decay)
        layer.weights -= lr * weight_grad
        layer.biases -= lr * bias_grad
        return LayerGradients(np.abs(weight_grad), np.abs(bias_grad))

    def backward(self, policy_grad, value_grad):
        """
        Applies one SGD step from the output gradients of the last forward pass.
        Returns the per-layer gradient magnitudes (trunk layers, policy head, then value head).
        """
        activations = self._activations
        hidden = activations[-1]
        policy_delta = np.asarray(policy_grad, dtype=float)
        value_delta = np.array([float(value_grad)])

        # Both head contributions are taken before either head is updated.
        shared = self.policy_head.weights @ policy_delta + self.value_head.weights @ value_delta

        gradients = [None] * len(self.layers)
        gradients[-1] = self._apply_update(self.policy_head, hidden, policy_delta)
        value_gradients = self._apply_update(self.value_head, hidden, value_delta)

        for index in range(len(self.trunk) - 1, -1, -1):
            layer = self.layers[index]
            # Units that were zero in the forward pass (ReLU or dropout) pass no gradient.
            delta = shared * (activations[index + 1] > 0)
            if index > 0:
                shared = layer.weights @ delta
            gradients[index] = self._apply_update(layer, activations[index], delta)

        gradients.append(value_gradients)
        return gradients

    def train_with_diagnostics(self, examples):
        total_loss, total_weight, gradients = 0.0, 0.0, []
        vlw = self.config.value_loss_weight
        self.set_training(True)
        try:
            for example in examples:
                policy, value = self.forward(example.input, example.mask)
                total_loss += example_loss(policy, value, example, vlw) * example.weight
                total_weight += example.weight
                gradients = self.backward(policy_gradient(policy, example), value_gradient(value, example, vlw))
                self.training_count += 1
        finally:
            self.set_training(False)
        average = total_loss / total_weight if total_weight > 0 else 0.0
        return average, gradients

    def train(self, examples) -> float:
        average, _ = self.train_with_diagnostics(examples)
        return average

    def predict(self, input, mask=None):
        policy, _ = self.forward(input, mask)
        legal = range(len(policy)) if mask is None else [i for i in range(len(policy)) if mask[i] == 1]
        best, best_score = None, -np.inf
        for i in legal:
            if policy[i] > best_score:
                best, best_score = i, policy[i]
        return best

    def get_layer_activations(self, input, mask=None):
        """Activations normalized to [0, 1] for display: input, each hidden layer, then the policy."""
        policy, _ = self.forward(input, mask)
        activations = [np.clip((np.asarray(input, dtype=float) + 1.0) / 2.0, 0.0, 1.0)]
        for hidden in self._activations[1:]:
            activations.append(hidden / max(float(np.max(hidden)), 0.001))
        activations.append(policy)
        return activations

    def set_learning_rate(self, lr: float):
        if lr <= 0:
            raise ValueError(f"Learning rate must be positive, got {lr}")
        self._learning_rate = lr
        self.config.learning_rate = lr

    def get_learning_rate(self) -> float:
        return self._learning_rate

    def get_snapshot(self) -> NetworkSnapshot:
        self.config.learning_rate = self._learning_rate
        return NetworkSnapshot(
            config=self.config.copy(),
            weights=copy_matrices(l.weights for l in self.layers),
            biases=copy_matrices(l.biases for l in self.layers),
            value_head_weights=copy_matrix(self.value_head.weights),
            value_head_biases=copy_matrix(self.value_head.biases),
            training_count=self.training_count,
        )

    def _validate_snapshot(self, snapshot: NetworkSnapshot) -> NetworkConfig:
        snapshot_config = snapshot.config
        if isinstance(snapshot_config, dict):
            snapshot_config = NetworkConfig(**snapshot_config)
        try:
            snapshot_config.copy().validate()
        except ValueError as e:
            raise SnapshotShapeError(f"Snapshot config is invalid: {e}") from e
        if len(snapshot.weights) != len(self.layers) or len(snapshot.biases) != len(self.layers):
            raise SnapshotShapeError(
                f"Snapshot has {len(snapshot.weights)} weight and {len(snapshot.biases)} bias layers, "
                f"network expects {len(self.layers)}")
        for i, layer in enumerate(self.layers):
            expected_in, expected_out = layer.shape
            got_in, got_out = shape_of(snapshot.weights[i])
            if (got_in, got_out) != (expected_in, expected_out):
                raise SnapshotShapeError(
                    f"Snapshot shape mismatch at layer {i}: expected {expected_in}x{expected_out}, got {got_in}x{got_out}")
            if len(snapshot.biases[i]) != expected_out:
                raise SnapshotShapeError(
                    f"Snapshot bias mismatch at layer {i}: expected {expected_out}, got {len(snapshot.biases[i])}")
        if snapshot.value_head_weights is not None:
            expected = self.value_head.shape
            got = shape_of(snapshot.value_head_weights)
            if got != expected:
                raise SnapshotShapeError(
                    f"Snapshot shape mismatch at value head: expected {expected[0]}x{expected[1]}, got {got[0]}x{got[1]}")
            if snapshot.value_head_biases is None or len(snapshot.value_head_biases) != 1:
                raise SnapshotShapeError("Snapshot value head bias must hold exactly one entry")
        return snapshot_config

    def load_snapshot(self, snapshot: NetworkSnapshot):
        # Validate everything first so a bad snapshot leaves the network untouched.
        snapshot_config = self._validate_snapshot(snapshot)
        for layer, weights, biases in zip(self.layers, snapshot.weights, snapshot.biases):
            layer.weights = copy_matrix(weights)
            layer.biases = copy_matrix(biases)
        if snapshot.value_head_weights is not None:
            self.value_head.weights = copy_matrix(snapshot.value_head_weights)
            self.value_head.biases = copy_matrix(snapshot.value_head_biases)
        self.training_count = snapshot.training_count
        self.set_learning_rate(snapshot_config.learning_rate)
        logger.info(f"Loaded snapshot: {len(self.layers)} layers, {self.training_count} examples trained, "
                    f"lr={self._learning_rate}")
