# battle_monitoring.py
"""
Training and measurement logs (CSV) and the fitness progress plot.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

import matplotlib.pyplot as plt
import pandas as pd

logger = logging.getLogger(__name__)

TRAINING_COLUMNS = ["generation", "bestFitnessThisGen", "bestFitnessEver", "averageFitness", "eliteIndex"]
MEASUREMENT_COLUMNS = ["mode", "seed", "battleIndex", "win", "aliveCountA", "aliveCountB",
                       "teamA_averageFitness"]


@dataclass
class ExportConfig:
    """Configuration for data export parameters."""
    output_dir: str = "output"
    training_log: str = "training_log.csv"
    measurement_log: str = "measurement_log.csv"
    csv_precision: int = 6
    training_columns: List[str] = field(default_factory=lambda: list(TRAINING_COLUMNS))
    measurement_columns: List[str] = field(default_factory=lambda: list(MEASUREMENT_COLUMNS))


class DataExporter:
    """Handles data export and CSV generation."""

    def __init__(self, config: ExportConfig = None):
        self.config = config or ExportConfig()

    @property
    def training_log_path(self) -> str:
        return os.path.join(self.config.output_dir, self.config.training_log)

    @property
    def measurement_log_path(self) -> str:
        return os.path.join(self.config.output_dir, self.config.measurement_log)

    def append_training_row(self, row: Dict[str, Any]) -> None:
        """Append one generation row; the header is written with the first row."""
        self._append([row], self.training_log_path, self.config.training_columns)

    def export_measurement(self, rows: List[Dict[str, Any]]) -> None:
        if not rows:
            logger.warning("No measurement rows to export")
            return
        self._append(rows, self.measurement_log_path, self.config.measurement_columns)
        logger.debug(f"Measurement data exported to {self.measurement_log_path}")

    def read_training_log(self) -> pd.DataFrame:
        return pd.read_csv(self.training_log_path)

    def truncate_training_log(self, generation: int) -> int:
        """Drop every row from ``generation`` on; returns the number of rows kept."""
        path = self.training_log_path
        if not os.path.exists(path):
            return 0
        log = self.read_training_log()
        kept = log[log["generation"] < generation]
        if len(kept) < len(log):
            kept.to_csv(path, index=False)
            logger.info(f"Training log cut back to {len(kept)} rows before generation {generation}")
        return len(kept)

    def _append(self, rows: List[Dict[str, Any]], filename: str, columns: List[str]) -> None:
        try:
            os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)
            df = pd.DataFrame(rows)
            df = df.reindex(columns=columns)  # Ensure column order
            df = df.round(self.config.csv_precision)
            write_header = not os.path.exists(filename)
            df.to_csv(filename, mode='a', header=write_header, index=False)
        except Exception as e:
            logger.error(f"Error exporting data to {filename}: {e}")
            raise


class FitnessPlotter:
    """Handles fitness plotting."""

    def __init__(self, config: ExportConfig = None):
        self.config = config or ExportConfig()

    def plot_training_log(self, log: pd.DataFrame, show: bool = False) -> str:
        """Plot best, best-ever and average fitness per generation and save it as a PNG."""
        try:
            plt.figure(figsize=(10, 6))
            plt.plot(log["generation"], log["bestFitnessThisGen"], label="Best Fitness")
            plt.plot(log["generation"], log["bestFitnessEver"], label="Best Fitness Ever", linestyle="--")
            plt.plot(log["generation"], log["averageFitness"], label="Avg Fitness")
            plt.xlabel("Generation")
            plt.ylabel("Fitness")
            plt.title("Neuroevolution Fitness Progress")
            plt.legend()
            plt.grid(True)
            plt.tight_layout()

            os.makedirs(self.config.output_dir, exist_ok=True)
            filename = os.path.join(self.config.output_dir, "fitness_progress.png")
            plt.savefig(filename)
            if show:
                plt.show()
            return filename
        except Exception as e:
            logger.error(f"Error plotting fitness metrics: {e}")
            raise
        finally:
            plt.close()
