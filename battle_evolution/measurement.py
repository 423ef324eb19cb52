# measurement.py
"""
Deterministic, non-evolving evaluation batches for reporting.

Modes:
  paper               both teams are the population's two halves, as stored
  best_vs_population  team A is the best-ever genome on every team-A slot,
                      team B is the population's second half
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from battle_evolution.agent import TEAM_A, TEAM_B, team_for_slot
from battle_evolution.battle_config import MEASUREMENT_MODES, ExperimentConfig
from battle_evolution.battle_monitoring import DataExporter, ExportConfig
from battle_evolution.environment import Environment
from battle_evolution.utils import seed_everything

logger = logging.getLogger(__name__)


class MeasurementError(RuntimeError):
    """The measurement batch cannot run with the supplied genomes."""


class MeasurementRunner:

    def __init__(self, config: ExperimentConfig, environment: Environment, exporter: DataExporter = None):
        self.config = config.validate()
        self.environment = environment
        self.population_size = self.config.genetic.population_size
        self.exporter = exporter or DataExporter(ExportConfig(
            output_dir=self.config.files.output,
            training_log=self.config.files.training_log,
            measurement_log=self.config.files.measurement_log,
        ))

    def lineup(self, population: Optional[Sequence[Sequence[float]]], best_genome: Optional[Sequence[float]],
               mode: str) -> List[Sequence[float]]:
        """Genome for every slot under ``mode``."""
        if mode not in MEASUREMENT_MODES:
            raise MeasurementError(f"Unknown measurement mode '{mode}'")
        if population is None or len(population) != self.population_size:
            raise MeasurementError(
                f"Measurement needs a population of {self.population_size} genomes, "
                f"got {0 if population is None else len(population)}")
        if mode == "paper":
            return list(population)
        if best_genome is None:
            raise MeasurementError("best_vs_population mode needs a best-ever genome")
        return [best_genome if team_for_slot(slot, self.population_size) == TEAM_A else population[slot]
                for slot in range(self.population_size)]

    def run_battle(self, genomes: Sequence[Sequence[float]], mode: str, seed: int, battle_index: int) -> Dict:
        seed_everything(seed)
        env = self.environment
        env.clear_battlefield()
        for slot, genome in enumerate(genomes):
            env.spawn_agent(team_for_slot(slot, self.population_size), genome, slot)
        env.run_engagement(self.config.battle.engagement_duration)

        alive_a = env.query_alive_count(TEAM_A)
        alive_b = env.query_alive_count(TEAM_B)
        team_fitness = {TEAM_A: [], TEAM_B: []}
        for slot in range(self.population_size):
            team_fitness[team_for_slot(slot, self.population_size)].append(env.query_fitness_snapshot(slot))
        return {
            "mode": mode,
            "seed": seed,
            "battleIndex": battle_index,
            "win": int(alive_a > alive_b),
            "aliveCountA": alive_a,
            "aliveCountB": alive_b,
            "teamA_averageFitness": float(np.mean(team_fitness[TEAM_A])),
            "teamB_averageFitness": float(np.mean(team_fitness[TEAM_B])),
        }

    def run(self, population: Optional[Sequence[Sequence[float]]], best_genome: Optional[Sequence[float]] = None,
            mode: str = None, battles: int = None, base_seed: int = None) -> Tuple[List[Dict], Dict]:
        measurement = self.config.measurement
        mode = mode or measurement.mode
        battles = measurement.battles if battles is None else battles
        base_seed = measurement.seed if base_seed is None else base_seed

        try:
            genomes = self.lineup(population, best_genome, mode)
        except MeasurementError as e:
            logger.error(f"Measurement aborted: {e}")
            raise

        rows = []
        for battle_index in range(battles):
            row = self.run_battle(genomes, mode, base_seed + battle_index, battle_index)
            logger.info(f"[{mode}] battle {battle_index}: win={row['win']} "
                        f"alive {row['aliveCountA']}:{row['aliveCountB']} "
                        f"avg fitness A {row['teamA_averageFitness']:.3f} B {row['teamB_averageFitness']:.3f}")
            rows.append(row)

        summary = self.summarize(rows, mode, base_seed)
        self.exporter.export_measurement(rows + [summary])
        logger.info(f"[{mode}] win rate {summary['win']:.1f}% over {battles} battles, "
                    f"mean avg fitness A {summary['teamA_averageFitness']:.3f} B {summary['teamB_averageFitness']:.3f}")
        return rows, summary

    @staticmethod
    def summarize(rows: List[Dict], mode: str, base_seed: int) -> Dict:
        return {
            "mode": mode,
            "seed": base_seed,
            "battleIndex": "summary",
            "win": 100.0 * float(np.mean([row["win"] for row in rows])) if rows else 0.0,
            "aliveCountA": float(np.mean([row["aliveCountA"] for row in rows])) if rows else 0.0,
            "aliveCountB": float(np.mean([row["aliveCountB"] for row in rows])) if rows else 0.0,
            "teamA_averageFitness": float(np.mean([row["teamA_averageFitness"] for row in rows])) if rows else 0.0,
            "teamB_averageFitness": float(np.mean([row["teamB_averageFitness"] for row in rows])) if rows else 0.0,
        }
