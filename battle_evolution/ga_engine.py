# ga_engine.py
"""
Genetic algorithm engine: owns the population, the fitness vector and the generation loop.

Per generation: assign genomes -> run engagement -> collect fitness -> record best-ever
-> (periodic) checkpoint -> evolve. Genome i always drives agent slot i, the first half
of the slots forms team A and the second half team B.
"""

import logging
import random
from typing import List, Optional, Sequence, Tuple

import numpy as np
from deap import base, creator, tools
from tqdm import tqdm

from battle_evolution.agent import team_for_slot
from battle_evolution.battle_config import ExperimentConfig
from battle_evolution.battle_monitoring import DataExporter, ExportConfig, FitnessPlotter
from battle_evolution.checkpoint import (CheckpointRecord, checkpoint_path, latest_checkpoint, load_checkpoint,
                                         save_checkpoint)
from battle_evolution.environment import Environment
from battle_evolution.utils import seed_everything

logger = logging.getLogger(__name__)

# Define DEAP structures
if not hasattr(creator, "FitnessMax"):
    creator.create("FitnessMax", base.Fitness, weights=(1.0,))
if not hasattr(creator, "Individual"):
    creator.create("Individual", list, fitness=creator.FitnessMax)


class PopulationSizeError(ValueError):
    """Population and fitness vector disagree in length."""


def random_gene() -> float:
    return random.uniform(-1.0, 1.0)


def select_tournament(fitness: Sequence[float], tournsize: int) -> int:
    """
    k-way tournament over population indices, drawn with replacement.
    The highest fitness wins; ties go to the first aspirant encountered. With a tournament
    at least as large as the population every index competes once, in order.
    """
    n = len(fitness)
    if tournsize >= n:
        # full sweep: the global first-best wins, no random draws consumed
        aspirants = range(n)
    else:
        aspirants = [random.randrange(n) for _ in range(tournsize)]
    winner = None
    for index in aspirants:
        if winner is None or fitness[index] > fitness[winner]:
            winner = index
    return winner


def crossover(parent1, parent2, rate: float):
    """
    Single-point crossover on copies of the parents, applied with probability ``rate``.
    The point is uniform in [1, L-1]; without crossover the children are exact copies.
    """
    child1, child2 = creator.Individual(parent1), creator.Individual(parent2)
    if random.random() < rate and len(child1) > 1:
        tools.cxOnePoint(child1, child2)
    return child1, child2


def mutate_uniform(individual, indpb: float):
    """Replace each gene, independently with probability ``indpb``, by a fresh value in [-1, 1]."""
    for i in range(len(individual)):
        if random.random() < indpb:
            individual[i] = random_gene()
    return individual,


def build_toolbox(chromosome_length: int, crossover_rate: float, mutation_rate: float,
                  tournament_size: int) -> base.Toolbox:
    toolbox = base.Toolbox()
    toolbox.register("gene", random_gene)
    toolbox.register("individual", tools.initRepeat, creator.Individual, toolbox.gene, n=chromosome_length)
    toolbox.register("population", tools.initRepeat, list, toolbox.individual)
    toolbox.register("select", select_tournament, tournsize=tournament_size)
    toolbox.register("mate", crossover, rate=crossover_rate)
    toolbox.register("mutate", mutate_uniform, indpb=mutation_rate)
    return toolbox


class GeneticEngine:
    """
    Evolves the controller population against an environment collaborator.
    The environment is only touched through spawn/run/query calls.
    """

    def __init__(self, config: ExperimentConfig, environment: Environment,
                 exporter: DataExporter = None, plotter: FitnessPlotter = None):
        self.config = config.validate()
        self.environment = environment
        ga = self.config.genetic

        self.population_size = ga.population_size
        self.chromosome_length = self.config.chromosome_length
        self.toolbox = build_toolbox(self.chromosome_length, ga.crossover_rate, ga.mutation_rate,
                                     ga.tournament_size)

        export_config = ExportConfig(output_dir=self.config.files.output,
                                     training_log=self.config.files.training_log,
                                     measurement_log=self.config.files.measurement_log)
        self.exporter = exporter or DataExporter(export_config)
        self.plotter = plotter or FitnessPlotter(export_config)

        self.population: List = []
        self.fitness = np.zeros(self.population_size)
        self.generation = 0
        self.elite_index: Optional[int] = None
        self.best_fitness_ever = float("-inf")
        self.best_chromosome: Optional[List[float]] = None
        self.history: List[dict] = []

    # ----------------------------
    # Population
    # ----------------------------

    def initialize_population(self):
        self.population = self.toolbox.population(n=self.population_size)
        return self.population

    def set_population(self, genomes: Sequence[Sequence[float]]):
        """Install genomes (e.g. from a checkpoint), copying every one of them."""
        if len(genomes) != self.population_size:
            raise PopulationSizeError(f"Expected {self.population_size} genomes, got {len(genomes)}")
        for genome in genomes:
            if len(genome) != self.chromosome_length:
                raise ValueError(f"Genome length {len(genome)} != chromosome length {self.chromosome_length}")
        self.population = [creator.Individual(genome) for genome in genomes]

    def evolve_population(self, population: Sequence, fitness: Sequence[float]) -> Tuple[List, int]:
        """
        Build the next generation: the first-best genome unchanged in slot 0, every other
        slot filled in pairs by tournament selection, crossover and mutation.
        """
        if len(population) != len(fitness):
            raise PopulationSizeError(
                f"Population has {len(population)} genomes but fitness has {len(fitness)} entries")
        fitness = np.asarray(fitness, dtype=float)
        elite_index = int(np.argmax(fitness))

        elite = self.toolbox.clone(population[elite_index])
        del elite.fitness.values
        offspring = [elite]
        while len(offspring) < len(population):
            p1 = population[self.toolbox.select(fitness)]
            p2 = population[self.toolbox.select(fitness)]
            child1, child2 = self.toolbox.mate(p1, p2)
            self.toolbox.mutate(child1)
            self.toolbox.mutate(child2)
            offspring.append(child1)
            if len(offspring) < len(population):
                offspring.append(child2)
        return offspring, elite_index

    # ----------------------------
    # Generation phases
    # ----------------------------

    def assign_genomes(self):
        self.environment.clear_battlefield()
        for slot, genome in enumerate(self.population):
            self.environment.spawn_agent(team_for_slot(slot, self.population_size), genome, slot)

    def run_engagement(self):
        self.environment.run_engagement(self.config.battle.engagement_duration)

    def collect_fitness(self) -> np.ndarray:
        if len(self.population) != self.population_size:
            raise PopulationSizeError(
                f"Population has {len(self.population)} genomes, configuration expects {self.population_size}")
        self.fitness = np.array(
            [self.environment.query_fitness_snapshot(slot) for slot in range(self.population_size)], dtype=float)
        for individual, value in zip(self.population, self.fitness):
            individual.fitness.values = (float(value),)
        return self.fitness

    def record_best_ever(self) -> bool:
        """Keep a copy of the generation's best genome when it beats the running best."""
        best_index = int(np.argmax(self.fitness))
        best_value = float(self.fitness[best_index])
        if best_value > self.best_fitness_ever:
            self.best_fitness_ever = best_value
            self.best_chromosome = list(self.population[best_index])
            logger.info(f"New best fitness {best_value:.3f} at generation {self.generation} (slot {best_index})")
            return True
        return False

    def record_training_row(self):
        row = {
            "generation": self.generation,
            "bestFitnessThisGen": float(np.max(self.fitness)),
            "bestFitnessEver": self.best_fitness_ever,
            "averageFitness": float(np.mean(self.fitness)),
            "eliteIndex": int(np.argmax(self.fitness)),
        }
        self.history.append(row)
        self.exporter.append_training_row(row)
        logger.debug(f"Generation {self.generation}: best={row['bestFitnessThisGen']:.3f} "
                     f"avg={row['averageFitness']:.3f} ever={self.best_fitness_ever:.3f}")

    def maybe_checkpoint(self) -> Optional[str]:
        ga = self.config.genetic
        is_last = self.generation == ga.generations - 1
        if (self.generation + 1) % ga.checkpoint_interval != 0 and not is_last:
            return None
        record = CheckpointRecord(
            generation=self.generation,
            best_fitness_ever=self.best_fitness_ever,
            best_chromosome=self.best_chromosome,
            population=[list(genome) for genome in self.population] if ga.save_population else None,
        )
        return save_checkpoint(checkpoint_path(self.config.files.checkpoint_dir, self.generation), record)

    def evolve(self):
        self.population, self.elite_index = self.evolve_population(self.population, self.fitness)

    def run_generation(self):
        seed_everything(self.config.genetic.random_seed + self.generation)
        self.fitness = np.zeros(self.population_size)

        self.assign_genomes()
        self.run_engagement()
        self.collect_fitness()
        self.record_best_ever()
        self.record_training_row()
        self.maybe_checkpoint()
        self.evolve()
        self.generation += 1

    # ----------------------------
    # Run / resume
    # ----------------------------

    def resume(self, path: Optional[str] = None) -> bool:
        """
        Restore from ``path`` or the newest checkpoint. A restored population is evaluated
        again as the checkpoint's generation under that generation's seed.
        """
        path = path or latest_checkpoint(self.config.files.checkpoint_dir)
        result = load_checkpoint(path, self.population_size, self.chromosome_length)
        if result is None:
            return False
        if result.best_restored:
            self.best_fitness_ever = result.best_fitness_ever
            self.best_chromosome = list(result.best_chromosome)
        if result.population_restored:
            self.set_population(result.population)
            self.generation = result.generation
        else:
            self.generation = result.generation + 1
        # generations from here on are evaluated again
        self.exporter.truncate_training_log(self.generation)
        return True

    def run(self) -> Tuple[Optional[List[float]], float]:
        ga = self.config.genetic
        if ga.resume:
            self.resume()
        if not self.population:
            seed_everything(ga.random_seed)
            self.initialize_population()

        logger.info(f"Training {self.population_size} genomes of length {self.chromosome_length} "
                    f"from generation {self.generation} to {ga.generations}")
        for _ in tqdm(range(self.generation, ga.generations), desc="Evolving population", leave=False):
            self.run_generation()

        if self.history:
            self.plotter.plot_training_log(self.exporter.read_training_log())
        logger.info(f"Training finished, best fitness ever {self.best_fitness_ever:.3f}")
        return self.best_chromosome, self.best_fitness_ever
