# fitness_ledger.py
"""
Reward/cost model for battle agents.
Converts reward-classification events into a scalar fitness, one ledger per agent slot.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from battle_evolution.battle_config import RewardConfig

logger = logging.getLogger(__name__)


class RewardCode(Enum):
    MOVE_SUCCESS = "RC1"
    DAMAGE_RECEIVED = "RC2"
    DAMAGE_DEALT = "RC3"
    WALL_COLLISION = "RC4"
    FRIENDLY_FIRE = "RC5"
    AGENT_COLLISION = "RC6"
    MISSED_ATTACK = "RC7"
    IDLE = "RC8"


# Codes whose effect is driven by the event's damage magnitude, with the sign applied.
DAMAGE_SIGNS = {
    RewardCode.DAMAGE_RECEIVED: -1.0,
    RewardCode.DAMAGE_DEALT: 1.0,
    RewardCode.FRIENDLY_FIRE: -1.0,
    RewardCode.MISSED_ATTACK: -1.0,
}


@dataclass(frozen=True)
class RewardEvent:
    code: RewardCode
    magnitude: Optional[float] = None


class RewardTable:
    """Maps a reward event to its fitness delta."""

    def __init__(self, config: RewardConfig = None):
        config = config or RewardConfig()
        self.flat_rewards = {
            RewardCode.MOVE_SUCCESS: config.move_success,
            RewardCode.WALL_COLLISION: config.wall_collision,
            RewardCode.AGENT_COLLISION: config.agent_collision,
            RewardCode.IDLE: config.idle_penalty,
        }

    def delta(self, event: RewardEvent) -> float:
        if event.code in DAMAGE_SIGNS:
            if event.magnitude is None:
                raise ValueError(f"{event.code.value} requires a damage magnitude")
            return DAMAGE_SIGNS[event.code] * abs(float(event.magnitude))
        return self.flat_rewards[event.code]


class FitnessLedger:
    """
    Per-agent mutable ledger. The fitness of a genome is ``total`` at the end of the
    engagement window; there is no discounting and no survival bonus.
    """

    def __init__(self, table: RewardTable = None):
        self.table = table or RewardTable()
        self.total = 0.0
        self.event_counts: Counter = Counter()
        self.code_sums: Dict[RewardCode, float] = {}
        self.attack_count = 0
        self.fire_count = 0
        self.idle_count = 0

    def reset(self):
        self.total = 0.0
        self.event_counts.clear()
        self.code_sums.clear()
        self.attack_count = 0
        self.fire_count = 0
        self.idle_count = 0

    def apply(self, event: RewardEvent) -> float:
        """Apply one event immediately and return the fitness delta."""
        delta = self.table.delta(event)
        self.total += delta
        self.event_counts[event.code] += 1
        self.code_sums[event.code] = self.code_sums.get(event.code, 0.0) + delta
        return delta

    def record(self, code: RewardCode, magnitude: Optional[float] = None) -> float:
        return self.apply(RewardEvent(code, magnitude))

    def summary(self) -> dict:
        """Returns a dictionary snapshot of the ledger."""
        return {
            "total": self.total,
            "attacks": self.attack_count,
            "fires": self.fire_count,
            "idles": self.idle_count,
            **{code.value: self.code_sums.get(code, 0.0) for code in RewardCode},
        }

    def __repr__(self):
        return f"FitnessLedger(total={self.total:.3f}, events={sum(self.event_counts.values())})"
