"""
Shapley-value attribution of systemic power.

The characteristic function is deliberately additive and non-synergistic:
v(S) is the mean ``contribution`` of the coalition's members and v(empty) = 0.

Two estimators are provided:

1. ``PowerCalculator.compute_power``: Monte Carlo over random arrival orders.
   For each sampled permutation the target's marginal contribution
   v(preceding + target) - v(preceding) is accumulated, and the sum is divided
   by the fixed sample count. This is an unbiased estimate of the Shapley
   value (Castro et al., 2009).

2. ``exact_shapley``: the explicit subset formula
   phi_i = sum_{S subset N \\ i} |S|! (n-|S|-1)! / n! * [v(S + i) - v(S)],
   feasible only for small populations and used to validate the sampler.

References
----------
Shapley, L. S. (1953). A value for n-person games. Contributions to the
    Theory of Games II, 307-317.

Castro, J., Gomez, D., & Tejada, J. (2009). Polynomial calculation of the
    Shapley value based on sampling. Computers & Operations Research, 36(5),
    1726-1730.
"""

from __future__ import annotations

import itertools
import math
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np

from .config import AgencyConfig

if TYPE_CHECKING:  # pragma: no cover
    from .agents import Agent

MAX_EXACT_PLAYERS = 12


def coalition_value(contributions: Sequence[float]) -> float:
    """Mean member contribution; zero for the empty coalition."""
    if len(contributions) == 0:
        return 0.0
    return float(sum(contributions)) / len(contributions)


class PowerCalculator:
    """Monte Carlo Shapley estimator with a fixed permutation budget."""

    def __init__(self, config: Optional[AgencyConfig] = None, num_permutations: Optional[int] = None):
        if num_permutations is None:
            num_permutations = config.SHAPLEY_PERMUTATIONS if config is not None else 16
        if num_permutations < 1:
            raise ValueError(f"num_permutations must be positive, got {num_permutations}")
        self.num_permutations = int(num_permutations)

    def compute_power(self, agent: "Agent", agents: Sequence["Agent"], rng: np.random.Generator) -> float:
        if not agents:
            raise ValueError("Cannot attribute power over an empty population")
        shapley_sum = 0.0
        n_agents = len(agents)
        for _ in range(self.num_permutations):
            order = rng.permutation(n_agents)
            position = -1
            for rank, idx in enumerate(order):
                if agents[idx].id == agent.id:
                    position = rank
                    break
            # The divisor below stays fixed even when a sample is skipped here.
            if position == -1:
                continue

            before = [agents[idx].contribution for idx in order[:position]]
            with_target = before + [agent.contribution]
            shapley_sum += coalition_value(with_target) - coalition_value(before)

        return shapley_sum / self.num_permutations

    def compute_all(self, agents: Sequence["Agent"], rng: np.random.Generator) -> List[float]:
        """Recompute and store ``power`` for every agent, in roster order."""
        powers = []
        for agent in agents:
            agent.power = self.compute_power(agent, agents, rng)
            powers.append(agent.power)
        return powers


def exact_shapley(contributions: Sequence[float]) -> np.ndarray:
    """Exact Shapley values under the mean-contribution characteristic function.

    Complexity is O(2^n * n); populations above ``MAX_EXACT_PLAYERS`` are rejected.
    """
    n = len(contributions)
    if n == 0:
        return np.zeros(0)
    if n > MAX_EXACT_PLAYERS:
        raise ValueError(f"exact_shapley supports at most {MAX_EXACT_PLAYERS} players, got {n}")

    values = [float(c) for c in contributions]
    phi = np.zeros(n)
    for i in range(n):
        others = [j for j in range(n) if j != i]
        for size in range(n):
            weight = 1.0 / (n * math.comb(n - 1, size))
            for coalition in itertools.combinations(others, size):
                members = [values[j] for j in coalition]
                phi[i] += weight * (coalition_value(members + [values[i]]) - coalition_value(members))
    return phi
