# file: test_loss_function.py

import unittest
import numpy as np
import torch
import torch.nn.functional as F
import sys
import os

# --- Path Setup ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

# --- Project Imports ---
from data_structures import TrainingExample
from loss import cross_entropy, example_loss, policy_gradient, value_gradient, value_loss
from utils import masked_softmax

# =====================================================================
#                           Loss Test Class
# =====================================================================

class TestLossFunction(unittest.TestCase):

    def setUp(self):
        self.logits = np.array([0.3, -1.2, 2.0, 0.0, 0.5, -0.7, 1.1, 0.2, -0.1])
        self.mask = np.array([1, 0, 1, 1, 0, 1, 1, 1, 0], dtype=float)
        target = np.zeros(9)
        target[[2, 6]] = 0.5
        self.example = TrainingExample(input=np.zeros(10), target=target, mask=self.mask, weight=1.0, value=0.4)

    def test_zero_loss_on_perfect_prediction(self):
        target = np.zeros(9)
        target[3] = 1.0
        self.assertAlmostEqual(cross_entropy(target, target), 0.0)
        self.assertEqual(value_loss(0.25, 0.25), 0.0)

    def test_zero_probability_is_clamped(self):
        policy = np.zeros(9)
        target = np.zeros(9)
        target[0] = 1.0
        loss = cross_entropy(policy, target)
        self.assertTrue(np.isfinite(loss))
        self.assertAlmostEqual(loss, -np.log(1e-9))

    def test_cross_entropy_matches_torch(self):
        policy = masked_softmax(self.logits, self.mask)
        ours = cross_entropy(policy, self.example.target)
        masked_logits = torch.tensor(np.where(self.mask == 1, self.logits, -1e9))
        theirs = -(torch.tensor(self.example.target) * F.log_softmax(masked_logits, dim=0)).sum().item()
        self.assertAlmostEqual(ours, theirs, places=9)

    def test_example_loss_weights_value_term(self):
        policy = masked_softmax(self.logits, self.mask)
        expected = cross_entropy(policy, self.example.target) + 0.5 * (0.1 - 0.4) ** 2
        self.assertAlmostEqual(example_loss(policy, 0.1, self.example, 0.5), expected)

    def test_policy_gradient_matches_torch(self):
        weighted = self.example._replace(weight=2.5)
        logits = torch.tensor(self.logits, requires_grad=True)
        masked = torch.where(torch.tensor(self.mask) == 1, logits, torch.tensor(-1e9, dtype=torch.float64))
        loss = -(torch.tensor(weighted.target) * F.log_softmax(masked, dim=0)).sum() * weighted.weight
        loss.backward()
        ours = policy_gradient(masked_softmax(self.logits, self.mask), weighted)
        np.testing.assert_allclose(ours, logits.grad.numpy(), atol=1e-9)

    def test_value_gradient_matches_torch(self):
        weighted = self.example._replace(weight=3.0)
        z = torch.tensor(0.8, dtype=torch.float64, requires_grad=True)
        loss = weighted.weight * 0.5 * (torch.tanh(z) - weighted.value) ** 2
        loss.backward()
        ours = value_gradient(float(np.tanh(0.8)), weighted, 0.5)
        self.assertAlmostEqual(ours, z.grad.item(), places=9)

if __name__ == '__main__':
    unittest.main(verbosity=2)
