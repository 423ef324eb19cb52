import logging
import os

import pandas as pd
import pytest

from battle_evolution.main import build_parser, main


@pytest.fixture
def properties(tmp_path):
    output = tmp_path / "output"
    path = tmp_path / "config.properties"
    path.write_text(
        "[GENETIC]\n"
        "population_size = 4\n"
        "generations = 1\n"
        "checkpoint_interval = 1\n"
        "[BATTLE]\n"
        "engagement_duration = 0.2\n"
        "[MEASUREMENT]\n"
        "battles = 2\n"
        "[FILES]\n"
        f"output = {output}/\n"
        f"checkpoint_dir = {output}/checkpoints/\n"
    )
    yield str(path), str(output)
    logging.getLogger().handlers.clear()


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_measure_without_checkpoint_fails(properties):
    path, _ = properties
    assert main(["--config", path, "measure"]) == 1


def test_train_then_measure(properties):
    path, output = properties
    assert main(["--config", path, "train", "--seed", "3"]) == 0
    assert os.path.exists(os.path.join(output, "checkpoints", "checkpoint_gen0000.pt"))
    assert os.path.exists(os.path.join(output, "debug.log"))

    assert main(["--config", path, "measure", "--mode", "best_vs_population", "--seed", "5"]) == 0
    log = pd.read_csv(os.path.join(output, "measurement_log.csv"))
    assert list(log["seed"]) == [5, 6, 5]
    assert set(log["mode"]) == {"best_vs_population"}
