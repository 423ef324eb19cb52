# radar_sensor.py
"""
Perception encoder: turns a snapshot of nearby units into the fixed input vector.

Neuron map (0-based):
  [0-3]    enemy average distance per 90 degree region
  [4-7]    friend average distance per region
  [8-11]   enemy count per region
  [12-15]  friend count per region
  [16]     self current health
  [17]     self delay
  [18]     self attack
  [19]     self fire
  [20]     previous action output (one-tick memory)
  [21-28]  enemy present in 45 degree grid cell 1-8 (close range, 0 or 1)
  [29-36]  friend present in grid cell 1-8
  [37-40]  extended: accumulated enemy attack power per region
  [41-44]  extended: accumulated enemy attack range per region
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import numpy as np

from battle_evolution.battle_config import BASE_INPUT_SIZE, EXTENDED_INPUT_SIZE, SensorConfig

REGION_COUNT = 4
GRID_COUNT = 8

ENEMY_DISTANCE = 0
FRIEND_DISTANCE = 4
ENEMY_COUNT = 8
FRIEND_COUNT = 12
SELF_HEALTH = 16
SELF_DELAY = 17
SELF_ATTACK = 18
SELF_FIRE = 19
PREVIOUS_ACTION = 20
ENEMY_GRID = 21
FRIEND_GRID = 29
ENEMY_POWER = 37
ENEMY_RANGE = 41


@dataclass(frozen=True)
class NeighborFact:
    relative_position: Tuple[float, float, float]  # (x, y, z), y vertical
    is_teammate: bool
    attack_power: float = 0.0
    attack_range: float = 0.0


@dataclass(frozen=True)
class SelfStatus:
    current_health: float
    max_health: float
    delay_point: float
    attack_point: float
    fire_point: float


def bearing_degrees(relative_position) -> float:
    """Clockwise bearing from the +Z forward axis in [0, 360), horizontal components only."""
    dx, _, dz = relative_position
    angle = math.degrees(math.atan2(dx, dz))
    if angle < 0:
        angle += 360.0
    return angle


def bucket_index(angle: float, bucket_count: int) -> int:
    width = 360.0 / bucket_count
    return min(max(int(angle / width), 0), bucket_count - 1)


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class RadarSensor:
    """
    Builds the perception vector from a neighbour snapshot, the agent's own status and
    the previous action code. Pure function of its arguments.
    """

    def __init__(self, config: SensorConfig = None, extended: bool = False):
        self.config = config or SensorConfig()
        self.extended = extended
        self.input_size = EXTENDED_INPUT_SIZE if extended else BASE_INPUT_SIZE

    def encode(self, self_status: Optional[SelfStatus], neighbors: Iterable[NeighborFact],
               previous_action_code: float) -> np.ndarray:
        cfg = self.config
        inputs = np.zeros(self.input_size, dtype=np.float32)

        enemy_dist_sum = [0.0] * REGION_COUNT
        friend_dist_sum = [0.0] * REGION_COUNT
        enemy_count = [0] * REGION_COUNT
        friend_count = [0] * REGION_COUNT
        enemy_power = [0.0] * REGION_COUNT
        enemy_range = [0.0] * REGION_COUNT

        for fact in neighbors:
            distance = math.sqrt(sum(c * c for c in fact.relative_position))
            if distance > cfg.sensor_radius:
                continue
            angle = bearing_degrees(fact.relative_position)
            region = bucket_index(angle, REGION_COUNT)

            if fact.is_teammate:
                friend_dist_sum[region] += distance
                friend_count[region] += 1
            else:
                enemy_dist_sum[region] += distance
                enemy_count[region] += 1
                enemy_power[region] += fact.attack_power / cfg.max_attack_power
                enemy_range[region] += fact.attack_range / cfg.max_attack_range

            # small-scale grid, only within the close radius
            if distance <= cfg.grid_radius:
                grid = bucket_index(angle, GRID_COUNT)
                offset = FRIEND_GRID if fact.is_teammate else ENEMY_GRID
                inputs[offset + grid] = 1.0

        for r in range(REGION_COUNT):
            if enemy_count[r] > 0:
                inputs[ENEMY_DISTANCE + r] = _clamp01(enemy_dist_sum[r] / enemy_count[r] / cfg.sensor_radius)
            if friend_count[r] > 0:
                inputs[FRIEND_DISTANCE + r] = _clamp01(friend_dist_sum[r] / friend_count[r] / cfg.sensor_radius)
            inputs[ENEMY_COUNT + r] = _clamp01(enemy_count[r] / cfg.expected_max_per_region)
            inputs[FRIEND_COUNT + r] = _clamp01(friend_count[r] / cfg.expected_max_per_region)
            if self.extended:
                inputs[ENEMY_POWER + r] = _clamp01(enemy_power[r] / cfg.expected_max_per_region)
                inputs[ENEMY_RANGE + r] = _clamp01(enemy_range[r] / cfg.expected_max_per_region)

        if self_status is not None:
            if self_status.max_health > 0:
                inputs[SELF_HEALTH] = _clamp01(self_status.current_health / self_status.max_health)
            inputs[SELF_DELAY] = _clamp01(self_status.delay_point / cfg.max_delay_point)
            inputs[SELF_ATTACK] = _clamp01(self_status.attack_point / cfg.max_attack_point)
            inputs[SELF_FIRE] = _clamp01(self_status.fire_point / cfg.max_fire_point)

        inputs[PREVIOUS_ACTION] = previous_action_code
        return inputs
