import math

import pytest

from battle_evolution.battle_config import SensorConfig
from battle_evolution.radar_sensor import (NeighborFact, RadarSensor, SelfStatus, bearing_degrees, bucket_index)


def enemy(x, z, y=0.0, **kwargs):
    return NeighborFact((x, y, z), is_teammate=False, **kwargs)


def friend(x, z, y=0.0):
    return NeighborFact((x, y, z), is_teammate=True)


def test_empty_snapshot_is_zero_except_memory():
    inputs = RadarSensor().encode(None, [], 0.33)
    assert inputs.shape == (37,)
    assert inputs[20] == pytest.approx(0.33)
    assert inputs.sum() == pytest.approx(0.33)


def test_bearing_is_clockwise_from_forward():
    assert bearing_degrees((0.0, 0.0, 1.0)) == pytest.approx(0.0)
    assert bearing_degrees((1.0, 0.0, 0.0)) == pytest.approx(90.0)
    assert bearing_degrees((0.0, 0.0, -1.0)) == pytest.approx(180.0)
    assert bearing_degrees((-1.0, 0.0, 0.0)) == pytest.approx(270.0)
    # vertical component is ignored
    assert bearing_degrees((0.0, 100.0, 1.0)) == pytest.approx(0.0)


def test_bucket_boundaries():
    assert bucket_index(0.0, 4) == 0
    assert bucket_index(89.999, 4) == 0
    assert bucket_index(90.0, 4) == 1
    assert bucket_index(359.9, 4) == 3
    assert bucket_index(360.0, 4) == 3
    assert bucket_index(44.9, 8) == 0
    assert bucket_index(45.0, 8) == 1


def test_enemy_ahead_fills_region_zero():
    inputs = RadarSensor().encode(None, [enemy(0.0, 10.0)], 0.0)
    assert inputs[0] == pytest.approx(10.0 / 25.0)
    assert inputs[8] == pytest.approx(1.0 / 14.0)
    # outside the close radius, no grid bit
    assert inputs[21:37].sum() == 0


def test_close_enemy_sets_grid_bit():
    inputs = RadarSensor().encode(None, [enemy(3.0, 0.0)], 0.0)
    assert inputs[1] == pytest.approx(3.0 / 25.0)
    assert inputs[9] == pytest.approx(1.0 / 14.0)
    assert inputs[21 + 2] == 1.0
    assert inputs[21:29].sum() == 1.0


def test_close_friend_fills_friend_fields():
    inputs = RadarSensor().encode(None, [friend(-2.0, -2.0)], 0.0)
    # bearing 225 degrees: region 2, grid cell 5
    assert inputs[4 + 2] == pytest.approx(math.sqrt(8.0) / 25.0)
    assert inputs[12 + 2] == pytest.approx(1.0 / 14.0)
    assert inputs[29 + 5] == 1.0
    assert inputs[0:4].sum() == 0


def test_average_distance_per_region():
    inputs = RadarSensor().encode(None, [enemy(0.0, 10.0), enemy(1.0, 20.0)], 0.0)
    expected = (10.0 + math.hypot(1.0, 20.0)) / 2.0 / 25.0
    assert inputs[0] == pytest.approx(expected)
    assert inputs[8] == pytest.approx(2.0 / 14.0)


def test_neighbors_beyond_sensor_radius_are_ignored():
    inputs = RadarSensor().encode(None, [enemy(0.0, 30.0)], 0.0)
    assert inputs.sum() == 0


def test_counts_saturate():
    crowd = [enemy(0.1 * i, 10.0) for i in range(20)]
    inputs = RadarSensor().encode(None, crowd, 0.0)
    assert inputs[8] == 1.0


def test_self_status_normalisation():
    status = SelfStatus(current_health=75.0, max_health=150.0, delay_point=3, attack_point=2, fire_point=4)
    inputs = RadarSensor().encode(status, [], 0.66)
    assert inputs[16] == pytest.approx(0.5)
    assert inputs[17] == pytest.approx(0.5)
    assert inputs[18] == pytest.approx(0.5)
    assert inputs[19] == pytest.approx(1.0)
    assert inputs[20] == pytest.approx(0.66)


def test_values_stay_in_unit_interval():
    neighbors = [enemy(x, z) for x in range(-20, 21, 5) for z in range(-20, 21, 5) if (x, z) != (0, 0)]
    status = SelfStatus(500.0, 100.0, 10, 10, 10)
    inputs = RadarSensor().encode(status, neighbors, 1.0)
    assert inputs.min() >= 0.0 and inputs.max() <= 1.0


def test_extended_variant_adds_danger_neurons():
    sensor = RadarSensor(SensorConfig(), extended=True)
    assert sensor.input_size == 45
    inputs = sensor.encode(None, [enemy(0.0, 10.0, attack_power=40.0, attack_range=15.0),
                                  friend(0.0, 5.0)], 0.0)
    assert inputs.shape == (45,)
    assert inputs[37] == pytest.approx(1.0 / 14.0)
    assert inputs[41] == pytest.approx(1.0 / 14.0)
    assert inputs[38:41].sum() == 0
    # friends never count as danger
    assert RadarSensor(extended=True).encode(None, [friend(0.0, 5.0)], 0.0)[37:45].sum() == 0
