import numpy as np
import pytest

from battle_evolution.neuro_net import GenomeLengthError, NeuroNet, infer


def test_genome_size_formula():
    for input_size in (1, 10, 37, 45):
        assert NeuroNet.genome_size(input_size) == input_size * 18 + 18 * 3
    assert NeuroNet.genome_size(37) == 720
    assert NeuroNet.genome_size(45) == 864


def test_zero_weights_give_half():
    inputs = np.random.default_rng(0).random(37)
    outputs = infer([0.0] * 720, inputs)
    assert outputs.tolist() == [0.5, 0.5, 0.5]


def test_length_mismatch_is_fatal():
    with pytest.raises(GenomeLengthError):
        NeuroNet.from_genome([0.0] * 719, 37)
    with pytest.raises(GenomeLengthError):
        infer([0.0] * 721, [0.0] * 37)


def test_wrong_input_count_rejected():
    model = NeuroNet.from_genome([0.0] * 720, 37)
    with pytest.raises(ValueError):
        model.infer([0.0] * 36)


def test_canonical_weight_layout():
    input_size, hidden, outputs = 37, 18, 3
    genome = [0.0] * 720
    genome[5 * input_size + 2] = 0.25  # hidden unit 5, input 2
    genome[input_size * hidden + 1 * hidden + 7] = -0.75  # output 1, hidden unit 7
    model = NeuroNet.from_genome(genome, input_size)
    assert model.fc1.weight[5, 2].item() == pytest.approx(0.25)
    assert model.fc2.weight[1, 7].item() == pytest.approx(-0.75)
    assert model.fc1.weight.abs().sum().item() == pytest.approx(0.25)
    assert model.fc2.weight.shape == (outputs, hidden)


def test_matches_manual_forward_pass():
    rng = np.random.default_rng(3)
    genome = rng.uniform(-1, 1, 720)
    inputs = rng.random(37)
    w1 = genome[:37 * 18].reshape(18, 37)
    w2 = genome[37 * 18:].reshape(3, 18)
    hidden = 1.0 / (1.0 + np.exp(-(w1 @ inputs)))
    expected = 1.0 / (1.0 + np.exp(-(w2 @ hidden)))
    assert infer(genome, inputs) == pytest.approx(expected, abs=1e-5)


def test_no_bias_terms():
    model = NeuroNet(37)
    assert model.fc1.bias is None and model.fc2.bias is None
    assert sum(p.numel() for p in model.parameters()) == 720
