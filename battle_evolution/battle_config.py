# battle_config.py
"""
Configuration management for the battle neuroevolution experiment.
Centralizes all configuration access and provides typed, immutable access to parameters.
"""

from configparser import ConfigParser
from dataclasses import dataclass, field, replace
from typing import Optional

HIDDEN_SIZE = 18
OUTPUT_SIZE = 3
BASE_INPUT_SIZE = 37
EXTENDED_INPUT_SIZE = 45

MEASUREMENT_MODES = ("paper", "best_vs_population")


class ConfigurationError(ValueError):
    """Raised when a configuration value is outside its allowed domain."""


@dataclass(frozen=True)
class NetworkConfig:
    """Fixed-topology network parameters."""
    input_size: int = BASE_INPUT_SIZE
    hidden_size: int = HIDDEN_SIZE
    output_size: int = OUTPUT_SIZE
    extended_inputs: bool = False

    @property
    def chromosome_length(self) -> int:
        return self.input_size * self.hidden_size + self.hidden_size * self.output_size


@dataclass(frozen=True)
class GeneticAlgorithmConfig:
    """Configuration parameters for the genetic algorithm."""
    population_size: int = 56
    crossover_rate: float = 0.8
    mutation_rate: float = 0.05
    tournament_size: int = 3
    generations: int = 100
    random_seed: int = 42
    checkpoint_interval: int = 10
    save_population: bool = True
    resume: bool = False


@dataclass(frozen=True)
class BattleConfig:
    """Parameters of the headless reference arena."""
    engagement_duration: float = 10.0
    time_step: float = 0.02
    arena_size: float = 50.0
    team_offset: float = 20.0
    spawn_spread_x: float = 4.0
    spawn_spread_z: float = 15.0
    agent_radius: float = 0.5
    speed_scale: float = 10.0
    min_decision_interval: float = 0.1
    melee_range: float = 2.0
    cone_cosine: float = 0.707


@dataclass(frozen=True)
class SensorConfig:
    """Perception encoder radii and normalisation constants."""
    sensor_radius: float = 25.0
    grid_radius: float = 5.0
    expected_max_per_region: float = 14.0
    max_delay_point: float = 6.0
    max_attack_point: float = 4.0
    max_fire_point: float = 4.0
    max_attack_power: float = 40.0
    max_attack_range: float = 15.0


@dataclass(frozen=True)
class RewardConfig:
    """Flat reward magnitudes; damage-driven codes carry their own magnitude."""
    move_success: float = 0.1
    wall_collision: float = -0.1
    agent_collision: float = -0.1
    idle_penalty: float = -1.0


@dataclass(frozen=True)
class MeasurementConfig:
    battles: int = 20
    seed: int = 1000
    mode: str = "paper"


@dataclass(frozen=True)
class FilesConfig:
    output: str = "output/"
    checkpoint_dir: str = "output/checkpoints/"
    training_log: str = "training_log.csv"
    measurement_log: str = "measurement_log.csv"


@dataclass(frozen=True)
class ExperimentConfig:
    """Immutable bundle handed to the engine, the arena and the measurement runner."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    genetic: GeneticAlgorithmConfig = field(default_factory=GeneticAlgorithmConfig)
    battle: BattleConfig = field(default_factory=BattleConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    reward: RewardConfig = field(default_factory=RewardConfig)
    measurement: MeasurementConfig = field(default_factory=MeasurementConfig)
    files: FilesConfig = field(default_factory=FilesConfig)

    @property
    def chromosome_length(self) -> int:
        return self.network.chromosome_length

    def validate(self) -> "ExperimentConfig":
        """Check value domains; raises ConfigurationError on the first violation."""
        ga = self.genetic
        if self.network.hidden_size != HIDDEN_SIZE or self.network.output_size != OUTPUT_SIZE:
            raise ConfigurationError(
                f"Network topology is fixed at {HIDDEN_SIZE}/{OUTPUT_SIZE}, got "
                f"{self.network.hidden_size}/{self.network.output_size}")
        if self.network.input_size < 1:
            raise ConfigurationError(f"input_size must be positive, got {self.network.input_size}")
        expected_inputs = EXTENDED_INPUT_SIZE if self.network.extended_inputs else BASE_INPUT_SIZE
        if self.network.input_size != expected_inputs:
            raise ConfigurationError(
                f"input_size {self.network.input_size} does not match the sensor layout ({expected_inputs})")
        if ga.population_size < 2:
            raise ConfigurationError(f"population_size must be at least 2, got {ga.population_size}")
        for name in ("crossover_rate", "mutation_rate"):
            value = getattr(ga, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if ga.tournament_size < 1:
            raise ConfigurationError(f"tournament_size must be at least 1, got {ga.tournament_size}")
        if ga.checkpoint_interval < 1:
            raise ConfigurationError(f"checkpoint_interval must be at least 1, got {ga.checkpoint_interval}")
        if ga.generations < 0:
            raise ConfigurationError(f"generations must not be negative, got {ga.generations}")
        if self.battle.time_step <= 0 or self.battle.engagement_duration < 0:
            raise ConfigurationError("time_step must be positive and engagement_duration non-negative")
        if self.measurement.mode not in MEASUREMENT_MODES:
            raise ConfigurationError(
                f"Unknown measurement mode '{self.measurement.mode}', expected one of {MEASUREMENT_MODES}")
        if self.measurement.battles < 1:
            raise ConfigurationError(f"battles must be at least 1, got {self.measurement.battles}")
        return self

    def with_overrides(self, **sections) -> "ExperimentConfig":
        """Return a copy with whole sections replaced, e.g. ``genetic=GeneticAlgorithmConfig(...)``."""
        return replace(self, **sections).validate()


class BattleConfigManager:
    """
    Centralized configuration management for the experiment.
    Provides typed access to configuration parameters with fallback defaults.
    """

    def __init__(self, config_file: str = "config.properties"):
        self.config = ConfigParser()
        self.config.read(config_file)

        self._experiment_config: Optional[ExperimentConfig] = None

    @property
    def experiment_config(self) -> ExperimentConfig:
        """Get the validated experiment configuration."""
        if self._experiment_config is None:
            self._experiment_config = ExperimentConfig(
                network=self._load_network_config(),
                genetic=self._load_genetic_config(),
                battle=self._load_battle_config(),
                sensor=self._load_sensor_config(),
                reward=self._load_reward_config(),
                measurement=self._load_measurement_config(),
                files=self._load_files_config(),
            ).validate()
        return self._experiment_config

    def _load_network_config(self) -> NetworkConfig:
        extended = self.config.getboolean("NETWORK", "extended_inputs", fallback=False)
        default_inputs = EXTENDED_INPUT_SIZE if extended else BASE_INPUT_SIZE
        return NetworkConfig(
            input_size=self.config.getint("NETWORK", "input_size", fallback=default_inputs),
            hidden_size=self.config.getint("NETWORK", "hidden_size", fallback=HIDDEN_SIZE),
            output_size=self.config.getint("NETWORK", "output_size", fallback=OUTPUT_SIZE),
            extended_inputs=extended,
        )

    def _load_genetic_config(self) -> GeneticAlgorithmConfig:
        return GeneticAlgorithmConfig(
            population_size=self.config.getint("GENETIC", "population_size", fallback=56),
            crossover_rate=self.config.getfloat("GENETIC", "crossover_rate", fallback=0.8),
            mutation_rate=self.config.getfloat("GENETIC", "mutation_rate", fallback=0.05),
            tournament_size=self.config.getint("GENETIC", "tournament_size", fallback=3),
            generations=self.config.getint("GENETIC", "generations", fallback=100),
            random_seed=self.config.getint("GENETIC", "random_seed", fallback=42),
            checkpoint_interval=self.config.getint("GENETIC", "checkpoint_interval", fallback=10),
            save_population=self.config.getboolean("GENETIC", "save_population", fallback=True),
            resume=self.config.getboolean("GENETIC", "resume", fallback=False),
        )

    def _load_battle_config(self) -> BattleConfig:
        return BattleConfig(
            engagement_duration=self.config.getfloat("BATTLE", "engagement_duration", fallback=10.0),
            time_step=self.config.getfloat("BATTLE", "time_step", fallback=0.02),
            arena_size=self.config.getfloat("BATTLE", "arena_size", fallback=50.0),
            team_offset=self.config.getfloat("BATTLE", "team_offset", fallback=20.0),
            spawn_spread_x=self.config.getfloat("BATTLE", "spawn_spread_x", fallback=4.0),
            spawn_spread_z=self.config.getfloat("BATTLE", "spawn_spread_z", fallback=15.0),
            agent_radius=self.config.getfloat("BATTLE", "agent_radius", fallback=0.5),
            speed_scale=self.config.getfloat("BATTLE", "speed_scale", fallback=10.0),
            min_decision_interval=self.config.getfloat("BATTLE", "min_decision_interval", fallback=0.1),
            melee_range=self.config.getfloat("BATTLE", "melee_range", fallback=2.0),
            cone_cosine=self.config.getfloat("BATTLE", "cone_cosine", fallback=0.707),
        )

    def _load_sensor_config(self) -> SensorConfig:
        return SensorConfig(
            sensor_radius=self.config.getfloat("SENSOR", "sensor_radius", fallback=25.0),
            grid_radius=self.config.getfloat("SENSOR", "grid_radius", fallback=5.0),
            expected_max_per_region=self.config.getfloat("SENSOR", "expected_max_per_region", fallback=14.0),
            max_delay_point=self.config.getfloat("SENSOR", "max_delay_point", fallback=6.0),
            max_attack_point=self.config.getfloat("SENSOR", "max_attack_point", fallback=4.0),
            max_fire_point=self.config.getfloat("SENSOR", "max_fire_point", fallback=4.0),
            max_attack_power=self.config.getfloat("SENSOR", "max_attack_power", fallback=40.0),
            max_attack_range=self.config.getfloat("SENSOR", "max_attack_range", fallback=15.0),
        )

    def _load_reward_config(self) -> RewardConfig:
        return RewardConfig(
            move_success=self.config.getfloat("REWARD", "move_success", fallback=0.1),
            wall_collision=self.config.getfloat("REWARD", "wall_collision", fallback=-0.1),
            agent_collision=self.config.getfloat("REWARD", "agent_collision", fallback=-0.1),
            idle_penalty=self.config.getfloat("REWARD", "idle_penalty", fallback=-1.0),
        )

    def _load_measurement_config(self) -> MeasurementConfig:
        return MeasurementConfig(
            battles=self.config.getint("MEASUREMENT", "battles", fallback=20),
            seed=self.config.getint("MEASUREMENT", "seed", fallback=1000),
            mode=self.config.get("MEASUREMENT", "mode", fallback="paper"),
        )

    def _load_files_config(self) -> FilesConfig:
        return FilesConfig(
            output=self.config.get("FILES", "output", fallback="output/"),
            checkpoint_dir=self.config.get("FILES", "checkpoint_dir", fallback="output/checkpoints/"),
            training_log=self.config.get("FILES", "training_log", fallback="training_log.csv"),
            measurement_log=self.config.get("FILES", "measurement_log", fallback="measurement_log.csv"),
        )
