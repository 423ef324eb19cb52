import os

import pandas as pd

from battle_evolution.battle_monitoring import DataExporter, ExportConfig, FitnessPlotter


def row(generation, best):
    return {"generation": generation, "bestFitnessThisGen": best, "bestFitnessEver": best,
            "averageFitness": best / 2.0, "eliteIndex": 1}


def test_training_rows_are_appended_under_one_header(tmp_path):
    exporter = DataExporter(ExportConfig(output_dir=str(tmp_path / "out")))
    exporter.append_training_row(row(0, 1.0))
    exporter.append_training_row(row(1, 2.1234567891))
    log = exporter.read_training_log()
    assert list(log.columns) == ["generation", "bestFitnessThisGen", "bestFitnessEver", "averageFitness",
                                 "eliteIndex"]
    assert list(log["generation"]) == [0, 1]
    assert log["bestFitnessThisGen"].iloc[1] == 2.123457


def test_empty_measurement_export_writes_nothing(tmp_path):
    exporter = DataExporter(ExportConfig(output_dir=str(tmp_path)))
    exporter.export_measurement([])
    assert not os.path.exists(exporter.measurement_log_path)


def test_plot_saved(tmp_path):
    config = ExportConfig(output_dir=str(tmp_path))
    log = pd.DataFrame([row(0, 1.0), row(1, 3.0)])
    filename = FitnessPlotter(config).plot_training_log(log)
    assert os.path.exists(filename)


def test_truncate_training_log(tmp_path):
    exporter = DataExporter(ExportConfig(output_dir=str(tmp_path)))
    assert exporter.truncate_training_log(3) == 0
    for generation in range(4):
        exporter.append_training_row(row(generation, float(generation)))
    assert exporter.truncate_training_log(2) == 2
    exporter.append_training_row(row(2, 5.0))
    assert list(exporter.read_training_log()["generation"]) == [0, 1, 2]
