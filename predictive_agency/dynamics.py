"""
Resource-flow dynamics and boundary-scoped reward for Predictive Agency.

Both functions are pure with respect to the action vector: rewards never
mutate their inputs, and ``transition_state`` only mutates the state it is
handed. The simulation calls the reward once per boundary level and once
per agent for the counterfactual agency metric, then applies the transition
exactly once per tick.

State transition
----------------
Given the mean take rate and mean service level of the action vector::

    net_flow = 4 * avg_service - 10 * avg_take_rate - 1
    surplus += net_flow

Regenerative ticks (``net_flow > 0``) raise trust and safety by 0.2, capacity
by 0.1 and cut congestion by 0.5 per unit of flow. Extractive ticks use 0.5,
0.5, 0.2 and 1.0: degradation outpaces growth. The active boundary's
couplings follow (congestion drains capacity, safety above 50 feeds trust),
and demand finally relaxes toward the surplus with rate 0.015. Every field
is clamped after each mutation.
"""

from __future__ import annotations

from typing import Sequence, Tuple

from .boundary import BoundaryTuning
from .config import AgencyConfig
from .models import Action, GlobalState
from .utils import fast_mean

REGENERATIVE_RATES = {"trust": 0.2, "safety": 0.2, "capacity": 0.1, "congestion": 0.5}
EXTRACTIVE_RATES = {"trust": 0.5, "safety": 0.5, "capacity": 0.2, "congestion": 1.0}
DEMAND_SURPLUS_TARGET = 60.0
DEMAND_RELAXATION = 0.015


def mean_action_levels(actions: Sequence[Action]) -> Tuple[float, float]:
    """Return (mean take rate, mean service level); fails on an empty vector."""
    avg_take_rate = fast_mean(action.take_rate for action in actions)
    avg_service = fast_mean(action.service_level for action in actions)
    return avg_take_rate, avg_service


def net_resource_flow(actions: Sequence[Action]) -> float:
    avg_take_rate, avg_service = mean_action_levels(actions)
    return avg_service * 4.0 - avg_take_rate * 10.0 - 1.0


def transition_state(state: GlobalState, actions: Sequence[Action], couplings: BoundaryTuning) -> float:
    """Advance ``state`` in place by one tick and return the net resource flow."""
    net_flow = net_resource_flow(actions)
    state.adjust("surplus", net_flow)

    rates = REGENERATIVE_RATES if net_flow > 0 else EXTRACTIVE_RATES
    state.adjust("trust", net_flow * rates["trust"])
    state.adjust("safety", net_flow * rates["safety"])
    state.adjust("capacity", net_flow * rates["capacity"])
    state.adjust("congestion", -net_flow * rates["congestion"])

    state.adjust("capacity", -state.congestion * couplings.congestion_to_capacity)
    state.adjust("trust", (state.safety - 50.0) * couplings.safety_to_trust)

    state.adjust("demand", (DEMAND_SURPLUS_TARGET - state.surplus) * DEMAND_RELAXATION)
    return net_flow


def compute_reward(
    state: GlobalState,
    actions: Sequence[Action],
    weights: BoundaryTuning,
    config: AgencyConfig,
) -> float:
    """Weighted state value minus extraction and boundary-scoped friction."""
    value = (
        config.W_SURPLUS * state.surplus
        + config.W_SAFETY * state.safety
        + config.W_TRUST * state.trust
        + config.W_CAPACITY * state.capacity
        + config.W_DEMAND * state.demand
    )
    avg_take_rate, _ = mean_action_levels(actions)
    extraction = avg_take_rate * config.EXTRACTION_PENALTY
    friction_raw = 0.4 * state.congestion + 0.6 * (100.0 - state.safety) * weights.safety_weight
    friction = friction_raw * config.FRICTION_PENALTY * weights.friction_weight
    return value - extraction - friction
