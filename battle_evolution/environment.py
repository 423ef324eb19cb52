# environment.py
"""
Environment collaborator interface and a headless reference arena.

The arena is a fixed-timestep kinematic simulation on a square x/z plane: no rendering,
no rigid-body physics. It drives every agent's decision loop from a single loop with a
next-fire timestamp per agent.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from battle_evolution.action_decoder import ActionDecoder
from battle_evolution.agent import TEAM_A, TEAM_B, Agent
from battle_evolution.battle_config import ExperimentConfig
from battle_evolution.fitness_ledger import FitnessLedger, RewardCode, RewardTable
from battle_evolution.neuro_net import NeuroNet
from battle_evolution.radar_sensor import NeighborFact, RadarSensor
from battle_evolution.unit_profile import DEFAULT_ROSTER, UnitProfile

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]

# guards float accumulation of the simulation clock against the decision timestamps
TIME_EPSILON = 1e-9


class Environment(ABC):
    """Interface the GA engine and the measurement runner consume."""

    @abstractmethod
    def spawn_agent(self, team: str, genome: Sequence[float], slot: int) -> Agent:
        ...

    @abstractmethod
    def run_engagement(self, duration: float) -> None:
        ...

    @abstractmethod
    def query_alive_count(self, team: str) -> int:
        ...

    @abstractmethod
    def query_fitness_snapshot(self, slot: int) -> float:
        ...

    @abstractmethod
    def notify_collision(self, slot_a: int, slot_b: int) -> None:
        ...

    @abstractmethod
    def query_neighbors(self, position: Vec3, radius: float,
                        layer_filter: Optional[Iterable[str]] = None,
                        viewer: Optional[int] = None) -> List[NeighborFact]:
        ...

    @abstractmethod
    def clear_battlefield(self) -> None:
        ...


class ArenaEnvironment(Environment):
    """
    Headless reference arena.
    Team A spawns around (-team_offset, 0), team B around (+team_offset, 0).
    """

    def __init__(self, config: ExperimentConfig = None, roster: Sequence[UnitProfile] = DEFAULT_ROSTER):
        self.config = config or ExperimentConfig()
        self.battle = self.config.battle
        self.roster = tuple(roster)
        self.sensor = RadarSensor(self.config.sensor, extended=self.config.network.extended_inputs)
        self.decoder = ActionDecoder(self.sensor)
        self.reward_table = RewardTable(self.config.reward)

        self.melee_range = self.battle.melee_range
        self.half_extent = self.battle.arena_size / 2.0 - self.battle.agent_radius

        self.agents: Dict[int, Agent] = {}
        self.clock = 0.0
        self._contacts: Set[Tuple[int, int]] = set()

    # ----------------------------
    # Lifecycle
    # ----------------------------

    def spawn_agent(self, team: str, genome: Sequence[float], slot: int) -> Agent:
        if slot in self.agents:
            raise ValueError(f"Slot {slot} is already occupied")
        profile = random.choice(self.roster)
        center_x = -self.battle.team_offset if team == TEAM_A else self.battle.team_offset
        position = (
            center_x + random.uniform(-self.battle.spawn_spread_x, self.battle.spawn_spread_x),
            0.0,
            random.uniform(-self.battle.spawn_spread_z, self.battle.spawn_spread_z),
        )
        network = NeuroNet.from_genome(genome, self.config.network.input_size)
        agent = Agent(slot, team, genome, network, profile, FitnessLedger(self.reward_table), position)
        self.agents[slot] = agent
        return agent

    def clear_battlefield(self) -> None:
        self.agents.clear()
        self._contacts.clear()
        self.clock = 0.0

    def run_engagement(self, duration: float) -> None:
        """Advance the arena for ``duration`` simulated seconds."""
        dt = self.battle.time_step
        steps = int(round(duration / dt))
        ordered = [self.agents[slot] for slot in sorted(self.agents)]
        for agent in ordered:
            agent.next_decision_time = 0.0

        for step in range(steps):
            self.clock = step * dt
            for agent in ordered:
                if not agent.is_alive() or agent.next_decision_time > self.clock + TIME_EPSILON:
                    continue
                neighbors = self.query_neighbors(agent.position, self.config.sensor.sensor_radius,
                                                 viewer=agent.slot)
                self.decoder.step(agent, neighbors, self)
                agent.next_decision_time = self.clock + agent.decision_interval(self.battle.min_decision_interval)
            self._integrate(ordered, dt)
            self._detect_collisions(ordered)
        self.clock = steps * dt
        logger.debug(f"Engagement finished: {self.query_alive_count(TEAM_A)} vs "
                     f"{self.query_alive_count(TEAM_B)} alive")

    # ----------------------------
    # Queries
    # ----------------------------

    def query_alive_count(self, team: str) -> int:
        return sum(1 for agent in self.agents.values() if agent.team == team and agent.is_alive())

    def query_fitness_snapshot(self, slot: int) -> float:
        return self.agents[slot].fitness

    def query_neighbors(self, position: Vec3, radius: float,
                        layer_filter: Optional[Iterable[str]] = None,
                        viewer: Optional[int] = None) -> List[NeighborFact]:
        """Living agents within ``radius``, in slot order; teammate flags are relative to ``viewer``."""
        teams = set(layer_filter) if layer_filter is not None else None
        viewer_team = self.agents[viewer].team if viewer is not None else None
        facts = []
        for slot in sorted(self.agents):
            other = self.agents[slot]
            if slot == viewer or not other.is_alive():
                continue
            if teams is not None and other.team not in teams:
                continue
            rel = tuple(o - p for o, p in zip(other.position, position))
            if math.sqrt(sum(c * c for c in rel)) > radius:
                continue
            facts.append(NeighborFact(
                relative_position=rel,
                is_teammate=other.team == viewer_team,
                attack_power=max(other.profile.real_attack, other.profile.real_fire),
                attack_range=other.profile.attack_range,
            ))
        return facts

    # ----------------------------
    # Commands issued by the action decoder
    # ----------------------------

    def command_move(self, slot: int, direction: Vec3) -> bool:
        """Set the agent moving along ``direction``; False when the next step leaves the arena."""
        agent = self.agents[slot]
        speed = agent.speed * self.battle.speed_scale
        velocity = tuple(d * speed for d in direction)
        proposed = tuple(p + v * self.battle.time_step for p, v in zip(agent.position, velocity))
        if not self._in_bounds(proposed):
            return False
        agent.velocity = velocity
        return True

    def command_stop(self, slot: int) -> None:
        self.agents[slot].velocity = (0.0, 0.0, 0.0)

    def find_target(self, slot: int, direction: Vec3, max_range: float) -> Optional[Agent]:
        """Nearest living agent inside the attack cone and range, self excluded."""
        attacker = self.agents[slot]
        best, best_distance = None, math.inf
        for other_slot in sorted(self.agents):
            other = self.agents[other_slot]
            if other_slot == slot or not other.is_alive():
                continue
            dx = other.position[0] - attacker.position[0]
            dz = other.position[2] - attacker.position[2]
            distance = math.hypot(dx, dz)
            if distance > max_range or distance == 0.0:
                continue
            cosine = (dx * direction[0] + dz * direction[2]) / distance
            if cosine < self.battle.cone_cosine:
                continue
            if distance < best_distance:
                best, best_distance = other, distance
        return best

    def apply_damage(self, target_slot: int, amount: float) -> float:
        target = self.agents[target_slot]
        dealt = target.take_damage(amount)
        if dealt > 0:
            target.ledger.record(RewardCode.DAMAGE_RECEIVED, dealt)
        return dealt

    def notify_collision(self, slot_a: int, slot_b: int) -> None:
        for slot in (slot_a, slot_b):
            self.agents[slot].ledger.record(RewardCode.AGENT_COLLISION)

    # ----------------------------
    # Kinematics
    # ----------------------------

    def _in_bounds(self, position: Vec3) -> bool:
        return abs(position[0]) <= self.half_extent and abs(position[2]) <= self.half_extent

    def _integrate(self, ordered: List[Agent], dt: float):
        for agent in ordered:
            if not agent.is_alive() or agent.velocity == (0.0, 0.0, 0.0):
                continue
            x, y, z = (p + v * dt for p, v in zip(agent.position, agent.velocity))
            if not self._in_bounds((x, y, z)):
                # stopped by the wall between decisions
                x = min(max(x, -self.half_extent), self.half_extent)
                z = min(max(z, -self.half_extent), self.half_extent)
                agent.velocity = (0.0, 0.0, 0.0)
                agent.ledger.record(RewardCode.WALL_COLLISION)
            agent.position = (x, y, z)

    def _detect_collisions(self, ordered: List[Agent]):
        """One notification per pair when two agents come into contact."""
        contact_distance = 2.0 * self.battle.agent_radius
        alive = [agent for agent in ordered if agent.is_alive()]
        touching = set()
        for i, a in enumerate(alive):
            for b in alive[i + 1:]:
                if a.distance_to(b) < contact_distance:
                    touching.add((a.slot, b.slot))
        for pair in sorted(touching - self._contacts):
            self.notify_collision(*pair)
        self._contacts = touching
