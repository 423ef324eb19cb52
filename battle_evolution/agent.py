import logging
import math
from typing import Optional, Tuple

from battle_evolution.fitness_ledger import FitnessLedger
from battle_evolution.neuro_net import NeuroNet
from battle_evolution.unit_profile import UnitProfile

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

TEAM_A = "Team_A"
TEAM_B = "Team_B"


class Agent:
    """
    One battle unit: owns its genome, network, ledger and profile, built once at spawn time.
    Position is (x, y, z) with y vertical; the arena plane is x/z.
    """

    def __init__(
            self,
            slot: int,
            team: str,
            genome,
            network: NeuroNet,
            profile: UnitProfile,
            ledger: FitnessLedger,
            position: Vec3 = (0.0, 0.0, 0.0),
    ):
        self.slot = slot
        self.team = team
        self.genome = genome
        self.network = network
        self.profile = profile
        self.ledger = ledger

        self.max_health = profile.real_health
        self.health = self.max_health
        self.position = position
        self.velocity: Vec3 = (0.0, 0.0, 0.0)

        self.previous_action_code = 0.0
        self.next_decision_time = 0.0

    # ----------------------------
    # Core mechanics
    # ----------------------------

    def take_damage(self, amount: float) -> float:
        """Applies damage and returns the amount actually absorbed."""
        if not self.is_alive():
            return 0.0
        dealt = min(float(amount), self.health)
        self.health -= dealt
        if self.health <= 0:
            self.health = 0.0
            self.velocity = (0.0, 0.0, 0.0)
            logger.debug(f"Agent {self.slot} ({self.team}) died")
        return dealt

    def is_alive(self) -> bool:
        return self.health > 0

    @property
    def fitness(self) -> float:
        return self.ledger.total

    @property
    def speed(self) -> float:
        return max(0.0, 1.0 - self.profile.real_delay)

    def decision_interval(self, min_interval: float) -> float:
        return max(min_interval, self.profile.real_delay)

    def distance_to(self, other: "Agent") -> float:
        return math.dist(self.position, other.position)

    def get_state(self) -> dict:
        """Returns a dictionary snapshot of agent state."""
        return {
            "slot": self.slot,
            "team": self.team,
            "unit": self.profile.unit_name,
            "hp": self.health,
            "pos": self.position,
            "alive": self.is_alive(),
            "fitness": self.fitness,
        }

    def __repr__(self):
        return f"Agent(slot={self.slot}, team={self.team}, hp={self.health}, fitness={self.fitness:.2f})"


def team_for_slot(slot: int, population_size: int) -> str:
    """Contiguous partition: first half team A, second half team B."""
    return TEAM_A if slot < population_size // 2 else TEAM_B


def other_team(team: str) -> Optional[str]:
    return TEAM_B if team == TEAM_A else TEAM_A
