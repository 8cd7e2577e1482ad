"""Tests for the perceptron and the self-organizing map."""
import numpy as np
import pytest

from colorblobs.perceptron import (
    NO_THRESHOLD,
    Layer,
    Perceptron,
    bipolar_sigmoid,
    bipolar_sigmoid_derivative,
    select_winner,
)
from colorblobs.som import SOM


class TestBipolarSigmoid:
    """Test the activation function."""

    def test_range(self):
        x = np.linspace(-20, 20, 101)
        y = bipolar_sigmoid(x)

        assert np.all(y > -1.0) and np.all(y < 1.0)
        assert bipolar_sigmoid(np.array(0.0)) == pytest.approx(0.0)

    def test_odd(self):
        x = np.array([0.3, 1.0, 4.0])
        np.testing.assert_allclose(bipolar_sigmoid(-x), -bipolar_sigmoid(x))

    def test_derivative(self):
        assert bipolar_sigmoid_derivative(np.array(0.0)) == pytest.approx(0.5)
        h = 1e-6
        x = np.array([-2.0, 0.5, 3.0])
        numeric = (bipolar_sigmoid(x + h) - bipolar_sigmoid(x - h)) / (2 * h)
        np.testing.assert_allclose(bipolar_sigmoid_derivative(x), numeric, rtol=1e-5)


class TestPerceptron:
    """Test forward propagation and training."""

    def test_forward_known_weights(self):
        net = Perceptron([Layer(np.zeros((2, 2)), np.array([0.0, 10.0]))])

        out = net.forward(np.array([0.3, -0.7]))

        assert out.shape == (1, 2)
        assert out[0, 0] == pytest.approx(0.0)
        assert out[0, 1] == pytest.approx(bipolar_sigmoid(np.array(10.0)))

    def test_forward_batch(self):
        net = Perceptron.random([6, 4, 3], np.random.default_rng(0))
        out = net.forward(np.zeros((5, 6)))

        assert out.shape == (5, 3)
        assert np.all(np.abs(out) < 1.0)

    def test_wrong_input_size(self):
        net = Perceptron.random([3, 2], np.random.default_rng(0))
        with pytest.raises(ValueError, match="inputs"):
            net.forward(np.zeros(4))

    def test_layers_must_chain(self):
        with pytest.raises(ValueError, match="chain"):
            Perceptron([Layer(np.zeros((2, 3)), np.zeros(3)), Layer(np.zeros((2, 1)), np.zeros(1))])

    def test_bias_count(self):
        with pytest.raises(ValueError):
            Layer(np.zeros((2, 3)), np.zeros(2))

    def test_random_sizes(self):
        net = Perceptron.random([6, 5, 4], np.random.default_rng(1))

        assert net.nin == 6
        assert net.nout == 4
        assert [layer.nout for layer in net.layers] == [5, 4]

    def test_learns_and(self):
        """A single layer learns the bipolar AND function."""
        x = np.array([[-1, -1], [-1, 1], [1, -1], [1, 1]], dtype=float)
        t = np.array([[-1], [-1], [-1], [1]], dtype=float)
        net = Perceptron.random([2, 1], np.random.default_rng(2))

        before = np.mean(np.sum((t - net.forward(x)) ** 2, axis=1))
        net.train(x, t, eta=0.1, epochs=500)
        after = np.mean(np.sum((t - net.forward(x)) ** 2, axis=1))

        assert after < before
        np.testing.assert_array_equal(np.sign(net.forward(x)), t)

    def test_training_reduces_error(self):
        rng = np.random.default_rng(3)
        x = rng.uniform(-1, 1, (20, 3))
        t = np.where(x[:, :1] > 0, 0.8, -0.8)
        net = Perceptron.random([3, 4, 1], rng)

        first = net.train(x, t, eta=0.05, epochs=1)
        last = net.train(x, t, eta=0.05, epochs=300)

        assert last < first

    def test_train_sample_mismatch(self):
        net = Perceptron.random([2, 1], np.random.default_rng(0))
        with pytest.raises(ValueError):
            net.train(np.zeros((3, 2)), np.zeros((2, 1)))


class TestSelectWinner:
    """Test winner selection with rejection."""

    def test_units_numbered_from_one(self):
        outputs = np.array([[0.1, 0.9, 0.2], [0.8, -0.5, 0.0]])
        np.testing.assert_array_equal(select_winner(outputs, 0.5), [2, 1])

    def test_rejection(self):
        outputs = np.array([[0.1, 0.4], [0.6, 0.2]])
        np.testing.assert_array_equal(select_winner(outputs, 0.5), [0, 1])

    def test_threshold_is_inclusive(self):
        assert select_winner(np.array([[0.5, 0.1]]), 0.5)[0] == 1

    def test_no_threshold_always_selects(self):
        outputs = np.array([[-0.99, -0.999]])
        assert select_winner(outputs, NO_THRESHOLD)[0] == 1

    def test_ties_pick_first(self):
        assert select_winner(np.array([[0.7, 0.7, 0.1]]), 0.5)[0] == 1


class TestSOM:
    """Test competitive learning."""

    def test_separates_two_clusters(self):
        """1-input, 2-output map splits two well separated clusters."""
        low = np.array([[0.05], [0.1], [0.15]])
        high = np.array([[0.85], [0.9], [0.95]])
        som = SOM(np.array([[0.4], [0.6]]))

        som.learn(np.vstack([low, high]), alpha=0.5, decay=0.9)

        low_winners = som.select_winners(low)
        high_winners = som.select_winners(high)
        assert len(set(low_winners)) == 1
        assert len(set(high_winners)) == 1
        assert low_winners[0] != high_winners[0]
        assert som.weights[low_winners[0], 0] == pytest.approx(0.1, abs=0.05)
        assert som.weights[high_winners[0], 0] == pytest.approx(0.9, abs=0.05)

    def test_epoch_count(self):
        som = SOM(np.zeros((2, 1)))
        assert som.learn(np.array([[1.0]]), alpha=0.5, decay=0.5, min_alpha=0.1) == 3

    def test_invalid_decay(self):
        som = SOM(np.zeros((2, 1)))
        for decay in (0.0, 1.0, 1.5):
            with pytest.raises(ValueError, match="decay"):
                som.learn(np.array([[1.0]]), alpha=0.5, decay=decay)

    def test_winner_ties_pick_lowest(self):
        som = SOM(np.array([[0.0, 0.0], [1.0, 1.0], [0.0, 0.0]]))

        assert som.select_winner(np.array([0.1, 0.1])) == 0
        assert som.select_winner(np.array([0.5, 0.5])) == 0

    def test_batch_winners_match_single(self):
        rng = np.random.default_rng(0)
        som = SOM.random(4, 5, rng)
        x = rng.uniform(-1, 1, (10, 4))

        expected = [som.select_winner(row) for row in x]
        np.testing.assert_array_equal(som.select_winners(x), expected)

    def test_random_units_are_normalized(self):
        som = SOM.random(13, 6, np.random.default_rng(1))

        assert som.weights.shape == (6, 13)
        np.testing.assert_allclose(np.linalg.norm(som.weights, axis=1), 1.0)

    def test_init_from_samples(self):
        x = np.arange(12, dtype=float).reshape(4, 3)
        som = SOM(np.zeros((3, 3)))
        som.init_from_samples(x, np.random.default_rng(0))

        for unit in som.weights:
            assert any(np.array_equal(unit, row) for row in x)

    def test_wrong_sample_size(self):
        som = SOM(np.zeros((2, 3)))
        with pytest.raises(ValueError):
            som.learn(np.zeros((4, 2)), alpha=0.5, decay=0.5)

    def test_str(self):
        assert str(SOM(np.zeros((4, 13)))) == "SOM NN: 13 inputs, 4 outputs"
