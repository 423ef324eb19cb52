import random
from dataclasses import replace

import pandas as pd
import pytest

from battle_evolution.agent import TEAM_A
from battle_evolution.environment import ArenaEnvironment, Environment
from battle_evolution.measurement import MeasurementError, MeasurementRunner



class ScriptedEnvironment(Environment):
    """Reports a fixed outcome per battle and records the genomes it was handed."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.battles = []
        self.genomes = {}
        self.draws = []

    def spawn_agent(self, team, genome, slot):
        self.genomes[slot] = list(genome)

    def run_engagement(self, duration):
        self.draws.append(random.random())
        self.battles.append(dict(self.genomes))

    def query_alive_count(self, team):
        alive_a, alive_b, _ = self.outcomes[len(self.battles) - 1]
        return alive_a if team == TEAM_A else alive_b

    def query_fitness_snapshot(self, slot):
        return self.outcomes[len(self.battles) - 1][2] + slot

    def notify_collision(self, slot_a, slot_b):
        pass

    def query_neighbors(self, position, radius, layer_filter=None, viewer=None):
        return []

    def clear_battlefield(self):
        self.genomes.clear()


POPULATION = [[float(i)] * 3 for i in range(4)]
BEST = [9.0] * 3


def test_paper_mode_rows_and_summary(small_config):
    env = ScriptedEnvironment([(2, 1, 10.0), (1, 1, 20.0), (0, 2, 30.0)])
    rows, summary = MeasurementRunner(small_config, env).run(POPULATION)
    assert [row["seed"] for row in rows] == [100, 101, 102]
    assert [row["win"] for row in rows] == [1, 0, 0]
    # team A is slots 0 and 1
    assert rows[0]["teamA_averageFitness"] == pytest.approx(10.5)
    assert rows[0]["teamB_averageFitness"] == pytest.approx(12.5)
    assert env.battles[0] == {slot: POPULATION[slot] for slot in range(4)}
    assert summary["battleIndex"] == "summary"
    assert summary["win"] == pytest.approx(100.0 / 3.0)
    assert summary["aliveCountB"] == pytest.approx(4.0 / 3.0)
    assert summary["teamB_averageFitness"] == pytest.approx(22.5)


def test_best_vs_population_lineup(small_config):
    env = ScriptedEnvironment([(1, 0, 0.0)])
    runner = MeasurementRunner(small_config, env)
    rows, _ = runner.run(POPULATION, BEST, mode="best_vs_population", battles=1)
    assert env.battles[0] == {0: BEST, 1: BEST, 2: POPULATION[2], 3: POPULATION[3]}
    assert rows[0]["mode"] == "best_vs_population"


def test_battles_are_seeded_from_the_base_seed(small_config):
    first = ScriptedEnvironment([(0, 0, 0.0)] * 3)
    second = ScriptedEnvironment([(0, 0, 0.0)] * 3)
    MeasurementRunner(small_config, first).run(POPULATION)
    MeasurementRunner(small_config, second).run(POPULATION, base_seed=100)
    assert first.draws == second.draws
    assert len(set(first.draws)) == 3


def test_invalid_requests(small_config):
    runner = MeasurementRunner(small_config, ScriptedEnvironment([]))
    with pytest.raises(MeasurementError):
        runner.run(POPULATION, mode="tournament")
    with pytest.raises(MeasurementError):
        runner.run(POPULATION[:3])
    with pytest.raises(MeasurementError):
        runner.run(None)
    with pytest.raises(MeasurementError):
        runner.run(POPULATION, None, mode="best_vs_population")


def test_measurement_log_written(small_config):
    runner = MeasurementRunner(small_config, ScriptedEnvironment([(1, 0, 1.0)] * 3))
    runner.run(POPULATION)
    log = pd.read_csv(runner.exporter.measurement_log_path)
    assert list(log.columns) == ["mode", "seed", "battleIndex", "win", "aliveCountA", "aliveCountB",
                                 "teamA_averageFitness"]
    assert len(log) == 4
    assert log["battleIndex"].iloc[-1] == "summary"


def test_arena_measurement_is_repeatable(small_config):
    random.seed(0)
    population = [[random.uniform(-1.0, 1.0) for _ in range(small_config.chromosome_length)] for _ in range(4)]
    config = small_config.with_overrides(measurement=replace(small_config.measurement, battles=2))
    rows_a, _ = MeasurementRunner(config, ArenaEnvironment(config)).run(population)
    rows_b, _ = MeasurementRunner(config, ArenaEnvironment(config)).run(population)
    assert rows_a == rows_b
    assert all(row["aliveCountA"] <= 2 and row["aliveCountB"] <= 2 for row in rows_a)
