import pytest

from battle_evolution.battle_config import RewardConfig
from battle_evolution.fitness_ledger import FitnessLedger, RewardCode, RewardEvent, RewardTable


def test_default_reward_table():
    table = RewardTable()
    assert table.delta(RewardEvent(RewardCode.MOVE_SUCCESS)) == pytest.approx(0.1)
    assert table.delta(RewardEvent(RewardCode.DAMAGE_RECEIVED, 20.0)) == pytest.approx(-20.0)
    assert table.delta(RewardEvent(RewardCode.DAMAGE_DEALT, 20.0)) == pytest.approx(20.0)
    assert table.delta(RewardEvent(RewardCode.WALL_COLLISION)) == pytest.approx(-0.1)
    assert table.delta(RewardEvent(RewardCode.FRIENDLY_FIRE, 30.0)) == pytest.approx(-30.0)
    assert table.delta(RewardEvent(RewardCode.AGENT_COLLISION)) == pytest.approx(-0.1)
    assert table.delta(RewardEvent(RewardCode.MISSED_ATTACK, 40.0)) == pytest.approx(-40.0)
    assert table.delta(RewardEvent(RewardCode.IDLE)) == pytest.approx(-1.0)


def test_configured_magnitudes():
    table = RewardTable(RewardConfig(move_success=0.5, idle_penalty=-2.0))
    assert table.delta(RewardEvent(RewardCode.MOVE_SUCCESS)) == pytest.approx(0.5)
    assert table.delta(RewardEvent(RewardCode.IDLE)) == pytest.approx(-2.0)


def test_damage_codes_need_a_magnitude():
    with pytest.raises(ValueError):
        RewardTable().delta(RewardEvent(RewardCode.DAMAGE_DEALT))


def test_ledger_sums_events():
    ledger = FitnessLedger()
    ledger.record(RewardCode.MOVE_SUCCESS)
    ledger.record(RewardCode.MOVE_SUCCESS)
    ledger.record(RewardCode.DAMAGE_DEALT, 30.0)
    ledger.record(RewardCode.DAMAGE_RECEIVED, 10.0)
    ledger.record(RewardCode.AGENT_COLLISION)
    ledger.record(RewardCode.AGENT_COLLISION)
    assert ledger.total == pytest.approx(0.2 + 30.0 - 10.0 - 0.2)
    assert ledger.event_counts[RewardCode.AGENT_COLLISION] == 2
    assert ledger.summary()["RC3"] == pytest.approx(30.0)


def test_reset_clears_everything():
    ledger = FitnessLedger()
    ledger.record(RewardCode.IDLE)
    ledger.idle_count += 1
    ledger.reset()
    assert ledger.total == 0.0
    assert sum(ledger.event_counts.values()) == 0
    assert ledger.idle_count == 0
