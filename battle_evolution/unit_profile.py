# unit_profile.py
"""
Unit profiles: base points (1-10 scale) and their conversion to real battle values.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class UnitProfile:
    """
    Represents one unit archetype.
    Points are the designer-facing values; the ``real_*`` properties convert them
    to the values used in battle.
    """
    unit_name: str
    attack_point: int
    fire_point: int
    delay_point: int
    health_point: int
    attack_range: float = 10.0  # reach of ranged attacks

    @property
    def real_health(self) -> float:
        return self.health_point * 50.0

    @property
    def real_attack(self) -> float:
        """Melee damage per hit."""
        return self.attack_point * 10.0

    @property
    def real_fire(self) -> float:
        """Ranged damage per hit."""
        return self.fire_point * 10.0

    @property
    def real_delay(self) -> float:
        # smaller delay means faster decisions and faster movement
        return (5.0 - self.delay_point) / 10.0


DEFAULT_ROSTER: Tuple[UnitProfile, ...] = (
    UnitProfile("Swordsman", attack_point=3, fire_point=1, delay_point=3, health_point=3, attack_range=4.0),
    UnitProfile("Spearman", attack_point=4, fire_point=1, delay_point=2, health_point=3, attack_range=4.0),
    UnitProfile("Archer", attack_point=1, fire_point=4, delay_point=3, health_point=2, attack_range=15.0),
    UnitProfile("Crossbowman", attack_point=1, fire_point=3, delay_point=2, health_point=2, attack_range=12.0),
    UnitProfile("Knight", attack_point=4, fire_point=1, delay_point=4, health_point=4, attack_range=4.0),
    UnitProfile("Skirmisher", attack_point=2, fire_point=2, delay_point=5, health_point=2, attack_range=8.0),
    UnitProfile("Guard", attack_point=2, fire_point=1, delay_point=1, health_point=5, attack_range=4.0),
)
