import pytest

from battle_evolution.battle_config import (BattleConfig, ExperimentConfig, FilesConfig, GeneticAlgorithmConfig,
                                            MeasurementConfig)


@pytest.fixture
def small_config(tmp_path):
    """Four agents, short engagements, files under tmp_path."""
    return ExperimentConfig(
        genetic=GeneticAlgorithmConfig(population_size=4, generations=2, checkpoint_interval=1,
                                       crossover_rate=0.8, mutation_rate=0.05, random_seed=7),
        battle=BattleConfig(engagement_duration=0.4),
        measurement=MeasurementConfig(battles=3, seed=100),
        files=FilesConfig(output=str(tmp_path / "output"),
                          checkpoint_dir=str(tmp_path / "output" / "checkpoints")),
    ).validate()
