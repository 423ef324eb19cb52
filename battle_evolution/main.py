# main.py
# Command line entry point: train the population or measure a saved one

import argparse
import logging
from dataclasses import replace

from battle_evolution.battle_config import BattleConfigManager, MEASUREMENT_MODES
from battle_evolution.checkpoint import latest_checkpoint, load_checkpoint
from battle_evolution.environment import ArenaEnvironment
from battle_evolution.ga_engine import GeneticEngine
from battle_evolution.measurement import MeasurementError, MeasurementRunner
from battle_evolution.utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Team-battle neuroevolution with a genetic algorithm")
    parser.add_argument("--config", default="config.properties", help="Path to the properties file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    train = subparsers.add_parser("train", help="Run the generation loop")
    train.add_argument("--generations", type=int, help="Override the maximum generation count")
    train.add_argument("--resume", action="store_true", help="Resume from the newest checkpoint")
    train.add_argument("--seed", type=int, help="Override the training seed")

    measure = subparsers.add_parser("measure", help="Run deterministic measurement battles")
    measure.add_argument("--checkpoint", help="Checkpoint to measure (default: newest)")
    measure.add_argument("--mode", choices=MEASUREMENT_MODES, help="Measurement policy")
    measure.add_argument("--battles", type=int, help="Number of battles")
    measure.add_argument("--seed", type=int, help="Base seed; battle i uses seed + i")
    return parser


def train(config) -> int:
    engine = GeneticEngine(config, ArenaEnvironment(config))
    best, best_fitness = engine.run()
    if best is None:
        logging.warning("No generation was evaluated")
    return 0


def measure(config, checkpoint: str = None) -> int:
    path = checkpoint or latest_checkpoint(config.files.checkpoint_dir)
    result = load_checkpoint(path, config.genetic.population_size, config.chromosome_length)
    if result is None:
        logging.error("Nothing to measure: no usable checkpoint")
        return 1
    runner = MeasurementRunner(config, ArenaEnvironment(config))
    try:
        runner.run(result.population, result.best_chromosome)
    except MeasurementError:
        return 1
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = BattleConfigManager(args.config).experiment_config
    setup_logging(config.files.output)

    if args.command == "train":
        genetic = config.genetic
        if args.generations is not None:
            genetic = replace(genetic, generations=args.generations)
        if args.seed is not None:
            genetic = replace(genetic, random_seed=args.seed)
        if args.resume:
            genetic = replace(genetic, resume=True)
        return train(config.with_overrides(genetic=genetic))

    measurement = config.measurement
    if args.mode is not None:
        measurement = replace(measurement, mode=args.mode)
    if args.battles is not None:
        measurement = replace(measurement, battles=args.battles)
    if args.seed is not None:
        measurement = replace(measurement, seed=args.seed)
    return measure(config.with_overrides(measurement=measurement), args.checkpoint)


if __name__ == "__main__":
    raise SystemExit(main())
