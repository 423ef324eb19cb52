# action_decoder.py
"""
Maps network outputs to one of four discrete actions and executes it against the world.

Output 0 is the fire intent, output 2 the attack intent, output 1 picks one of 8 compass
directions (0 = forward/+Z, clockwise). Both intents at once means the unit idles.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple

from battle_evolution.agent import Agent
from battle_evolution.fitness_ledger import RewardCode
from battle_evolution.radar_sensor import RadarSensor, SelfStatus

logger = logging.getLogger(__name__)

DIRECTION_COUNT = 8
INTENT_THRESHOLD = 0.5


class ActionType(Enum):
    MOVE = "move"
    MELEE_ATTACK = "melee"
    RANGED_ATTACK = "ranged"
    IDLE = "idle"


# previous-action code fed back into neuron 20
ACTION_CODES = {
    ActionType.MOVE: 0.0,
    ActionType.MELEE_ATTACK: 0.33,
    ActionType.RANGED_ATTACK: 0.66,
    ActionType.IDLE: 1.0,
}


@dataclass(frozen=True)
class Decision:
    action: ActionType
    direction: int
    previous_action_code: float


class World(Protocol):
    """What the decoder needs from the environment."""

    melee_range: float

    def command_move(self, slot: int, direction: Tuple[float, float, float]) -> bool: ...

    def command_stop(self, slot: int) -> None: ...

    def find_target(self, slot: int, direction: Tuple[float, float, float],
                    max_range: float) -> Optional[Agent]: ...

    def apply_damage(self, target_slot: int, amount: float) -> float: ...


def direction_bucket(o1: float) -> int:
    return min(max(int(o1 * DIRECTION_COUNT), 0), DIRECTION_COUNT - 1)


def compass_vector(bucket: int) -> Tuple[float, float, float]:
    """Unit vector on the x/z plane for a compass bucket, clockwise from +Z."""
    theta = math.radians(bucket * 360.0 / DIRECTION_COUNT)
    return (math.sin(theta), 0.0, math.cos(theta))


def decode(outputs: Sequence[float]) -> Decision:
    o0, o1, o2 = float(outputs[0]), float(outputs[1]), float(outputs[2])
    fire = o0 >= INTENT_THRESHOLD
    attack = o2 >= INTENT_THRESHOLD

    if fire and attack:
        action = ActionType.IDLE
    elif fire:
        action = ActionType.RANGED_ATTACK
    elif attack:
        action = ActionType.MELEE_ATTACK
    else:
        action = ActionType.MOVE
    return Decision(action, direction_bucket(o1), ACTION_CODES[action])


def self_status(agent: Agent) -> SelfStatus:
    profile = agent.profile
    return SelfStatus(
        current_health=agent.health,
        max_health=agent.max_health,
        delay_point=profile.delay_point,
        attack_point=profile.attack_point,
        fire_point=profile.fire_point,
    )


class ActionDecoder:
    """
    Per-agent decision step: perceive -> infer -> decode -> act.
    The scheduler that calls ``step`` owns the cadence; dead agents are skipped.
    """

    def __init__(self, sensor: RadarSensor):
        self.sensor = sensor

    def decide(self, agent: Agent, neighbors) -> Decision:
        inputs = self.sensor.encode(self_status(agent), neighbors, agent.previous_action_code)
        outputs = agent.network.infer(inputs)
        decision = decode(outputs)
        agent.previous_action_code = decision.previous_action_code
        return decision

    def step(self, agent: Agent, neighbors, world: World) -> Optional[Decision]:
        if not agent.is_alive():
            return None
        decision = self.decide(agent, neighbors)
        self.act(agent, decision, world)
        return decision

    def act(self, agent: Agent, decision: Decision, world: World):
        direction = compass_vector(decision.direction)
        ledger = agent.ledger

        if decision.action is ActionType.MOVE:
            if world.command_move(agent.slot, direction):
                ledger.record(RewardCode.MOVE_SUCCESS)
            else:
                world.command_stop(agent.slot)
                ledger.record(RewardCode.WALL_COLLISION)
            return

        world.command_stop(agent.slot)

        if decision.action is ActionType.IDLE:
            ledger.idle_count += 1
            ledger.record(RewardCode.IDLE)
            return

        if decision.action is ActionType.MELEE_ATTACK:
            ledger.attack_count += 1
            damage = agent.profile.real_attack
            reach = world.melee_range
        else:
            ledger.fire_count += 1
            damage = agent.profile.real_fire
            reach = agent.profile.attack_range

        target = world.find_target(agent.slot, direction, reach)
        if target is None:
            ledger.record(RewardCode.MISSED_ATTACK, damage)
            return

        dealt = world.apply_damage(target.slot, damage)
        if target.team == agent.team:
            ledger.record(RewardCode.FRIENDLY_FIRE, dealt)
            logger.debug(f"Agent {agent.slot} hit teammate {target.slot} for {dealt}")
        else:
            ledger.record(RewardCode.DAMAGE_DEALT, dealt)
