# checkpoint.py
"""
Checkpoint persistence: best-ever genome and fitness, optionally the whole population.

A checkpoint is a torch-serialised dict of plain tensors and scalars with the keys
``generation``, ``bestFitnessEver``, ``bestChromosome`` and, when the population is
saved, ``populationSize``, ``chromoLength`` and ``populationFlat`` (P * L genes).
Genes are stored as float64 so a save/load round trip is bit-exact.
"""

import glob
import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional

import torch

logger = logging.getLogger(__name__)

CHECKPOINT_PATTERN = "checkpoint_gen{generation:04d}.pt"
_CHECKPOINT_RE = re.compile(r"checkpoint_gen(\d+)\.pt$")


class CheckpointError(Exception):
    """A checkpoint field is missing or malformed."""


@dataclass
class CheckpointRecord:
    generation: int
    best_fitness_ever: float
    best_chromosome: Optional[List[float]]
    population: Optional[List[List[float]]] = None

    def to_dict(self) -> dict:
        data = {
            "generation": int(self.generation),
            "bestFitnessEver": float(self.best_fitness_ever),
            "bestChromosome": torch.tensor(
                [] if self.best_chromosome is None else list(self.best_chromosome), dtype=torch.float64),
        }
        if self.population is not None:
            lengths = {len(genome) for genome in self.population}
            if len(lengths) > 1:
                raise CheckpointError(f"Population genomes have differing lengths: {sorted(lengths)}")
            chromo_length = lengths.pop() if lengths else 0
            data["populationSize"] = len(self.population)
            data["chromoLength"] = chromo_length
            data["populationFlat"] = torch.tensor(
                [gene for genome in self.population for gene in genome], dtype=torch.float64)
        return data


@dataclass
class LoadResult:
    """Outcome of a load. Either part may be missing; ``population_restored`` tells which."""
    generation: int
    best_fitness_ever: float
    best_chromosome: Optional[List[float]]
    population: Optional[List[List[float]]]

    @property
    def population_restored(self) -> bool:
        return self.population is not None

    @property
    def best_restored(self) -> bool:
        return self.best_chromosome is not None


def checkpoint_path(directory: str, generation: int) -> str:
    return os.path.join(directory, CHECKPOINT_PATTERN.format(generation=generation))


def save_checkpoint(path: str, record: CheckpointRecord) -> str:
    """Write atomically: a crash mid-save leaves the previous file intact."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = path + ".tmp"
    torch.save(record.to_dict(), tmp_path)
    os.replace(tmp_path, path)
    logger.info(f"[SAVED] Generation {record.generation}, best fitness {record.best_fitness_ever:.3f} -> {path}")
    return path


def latest_checkpoint(directory: str) -> Optional[str]:
    """Newest checkpoint file in ``directory`` by generation number."""
    candidates = []
    for path in glob.glob(os.path.join(directory, "checkpoint_gen*.pt")):
        match = _CHECKPOINT_RE.search(os.path.basename(path))
        if match:
            candidates.append((int(match.group(1)), path))
    if not candidates:
        return None
    return max(candidates)[1]


def _as_gene_list(value, name: str) -> List[float]:
    if not isinstance(value, torch.Tensor) or value.dim() != 1:
        raise CheckpointError(f"'{name}' is not a flat tensor")
    if not torch.isfinite(value).all():
        raise CheckpointError(f"'{name}' contains non-finite values")
    return value.to(torch.float64).tolist()


def _read_best(data: dict, chromo_length: int):
    try:
        generation = int(data["generation"])
        best_fitness = float(data["bestFitnessEver"])
        best = _as_gene_list(data["bestChromosome"], "bestChromosome")
    except (KeyError, TypeError, ValueError) as e:
        raise CheckpointError(f"best-ever fields unreadable: {e}") from e
    if len(best) == 0:
        return generation, best_fitness, None
    if len(best) != chromo_length:
        raise CheckpointError(f"bestChromosome length {len(best)} != expected {chromo_length}")
    return generation, best_fitness, best


def _read_population(data: dict, population_size: int, chromo_length: int) -> Optional[List[List[float]]]:
    if "populationFlat" not in data:
        logger.info("Checkpoint carries no population snapshot")
        return None
    declared_size = data.get("populationSize")
    declared_length = data.get("chromoLength")
    if declared_size != population_size or declared_length != chromo_length:
        raise CheckpointError(
            f"population shape {declared_size}x{declared_length} does not match "
            f"configuration {population_size}x{chromo_length}")
    flat = _as_gene_list(data["populationFlat"], "populationFlat")
    if len(flat) != population_size * chromo_length:
        raise CheckpointError(
            f"populationFlat has {len(flat)} genes, expected {population_size * chromo_length}")
    return [flat[i * chromo_length:(i + 1) * chromo_length] for i in range(population_size)]


def load_checkpoint(path: str, population_size: int, chromo_length: int) -> Optional[LoadResult]:
    """
    Load and validate a checkpoint against the running configuration.

    Returns None when nothing usable could be read (missing or unreadable file). A population
    whose declared size/length disagrees, or whose data is malformed, is rejected with a
    warning while the best-ever genome and fitness are still recovered when they are valid.
    """
    if not path or not os.path.exists(path):
        logger.warning(f"No checkpoint found at {path}, starting from a fresh population")
        return None

    try:
        data = torch.load(path, map_location="cpu", weights_only=True)
    except Exception as e:
        logger.error(f"Checkpoint {path} is unreadable ({type(e).__name__}: {e}), starting fresh")
        return None
    if not isinstance(data, dict):
        logger.error(f"Checkpoint {path} does not hold a record, starting fresh")
        return None

    generation, best_fitness, best = 0, float("-inf"), None
    try:
        generation, best_fitness, best = _read_best(data, chromo_length)
    except CheckpointError as e:
        logger.warning(f"Best-ever genome not restored from {path}: {e}")
        if isinstance(data.get("generation"), int):
            generation = data["generation"]

    population = None
    try:
        population = _read_population(data, population_size, chromo_length)
    except CheckpointError as e:
        logger.warning(f"Population snapshot rejected from {path}: {e}")

    if best is None and population is None:
        logger.warning(f"Checkpoint {path} held nothing restorable")
        return None

    logger.info(f"Loaded checkpoint {path}: generation {generation}, best fitness {best_fitness}, "
                f"population {'restored' if population is not None else 'not restored'}")
    return LoadResult(generation, best_fitness if best is not None else float("-inf"), best, population)
