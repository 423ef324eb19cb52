# neuro_net.py
# PyTorch model (input: 37 or 45 -> hidden: 18 -> output: 3), weights only

from typing import Optional, Sequence

import numpy as np
import torch
import torch.nn as nn

from battle_evolution.battle_config import HIDDEN_SIZE, OUTPUT_SIZE


class GenomeLengthError(ValueError):
    """Raised when a chromosome does not carry exactly the network's weight count."""


class NeuroNet(nn.Module):
    """
    Fixed-topology feedforward controller.
    Input: perception vector (37 neurons, 45 for the extended sensor)
    Output: 3 sigmoid activations (fire intent, direction, attack intent)

    No bias terms. The genome layout is canonical: the first input_size * hidden_size
    genes are the input->hidden matrix stored row-major by hidden unit, the remaining
    hidden_size * output_size genes are the hidden->output matrix stored row-major by
    output unit. This is exactly the memory layout of ``nn.Linear.weight``.
    """

    def __init__(self, input_size: int, hidden_size: int = HIDDEN_SIZE, output_size: int = OUTPUT_SIZE):
        super(NeuroNet, self).__init__()
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size
        self.fc1 = nn.Linear(input_size, hidden_size, bias=False)  # input layer to hidden
        self.fc2 = nn.Linear(hidden_size, output_size, bias=False)  # hidden to output layer

    def forward(self, x):
        x = torch.sigmoid(self.fc1(x))
        x = torch.sigmoid(self.fc2(x))
        return x

    def infer(self, inputs: Sequence[float]) -> np.ndarray:
        """Run one forward pass and return the outputs as a flat numpy array."""
        x = torch.as_tensor(np.asarray(inputs, dtype=np.float32))
        if x.shape != (self.input_size,):
            raise ValueError(f"Expected {self.input_size} inputs, got shape {tuple(x.shape)}")
        with torch.no_grad():
            return self.forward(x).numpy()

    @staticmethod
    def genome_size(input_size: int, hidden_size: int = HIDDEN_SIZE, output_size: int = OUTPUT_SIZE) -> int:
        """Returns the total number of weights needed."""
        return input_size * hidden_size + hidden_size * output_size

    @staticmethod
    def from_genome(genome: Sequence[float], input_size: int,
                    hidden_size: int = HIDDEN_SIZE, output_size: int = OUTPUT_SIZE) -> "NeuroNet":
        """
        Instantiates a NeuroNet and loads weights from a flat genome list.
        """
        expected = NeuroNet.genome_size(input_size, hidden_size, output_size)
        if len(genome) != expected:
            raise GenomeLengthError(f"Genome length {len(genome)} != total required {expected}")

        model = NeuroNet(input_size, hidden_size, output_size)
        values = torch.tensor(np.asarray(genome, dtype=np.float32))
        with torch.no_grad():
            offset = 0
            for p in (model.fc1.weight, model.fc2.weight):
                size = p.numel()
                p.copy_(values[offset:offset + size].view(p.shape))
                offset += size
        model.eval()
        return model


def infer(weights: Sequence[float], inputs: Sequence[float], input_size: Optional[int] = None) -> np.ndarray:
    """
    Stateless inference contract: weights + perception vector -> 3 outputs.

    ``input_size`` defaults to the length of ``inputs``.
    """
    if input_size is None:
        input_size = len(inputs)
    return NeuroNet.from_genome(weights, input_size).infer(inputs)
