"""Simulation engine for Predictive Agency."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .agents import Agent
from .analysis import history_to_frame
from .boundary import BoundaryManager
from .config import AgencyConfig
from .dynamics import compute_reward, transition_state
from .learning import DifferentialQLearning
from .models import (
    Action,
    BoundaryLevel,
    GlobalState,
    HistoryEntry,
    ScenarioConfig,
    ZERO_ACTION,
)
from .power import PowerCalculator
from .utils import RandomSource, fast_mean, make_rng, sanitize_record

logger = logging.getLogger(__name__)

LEVELS: Tuple[BoundaryLevel, ...] = (BoundaryLevel.B0, BoundaryLevel.B1, BoundaryLevel.B2)


class AgencySimulation:
    """
    Orchestrates the per-tick protocol: observe, select, score, attribute,
    transition, learn, and record.

    Every tick is a single synchronous phase. All agents choose from the same
    pre-transition snapshot, rewards and TD updates are evaluated against that
    snapshot, and the global state is mutated exactly once, after every agent
    has chosen.
    """

    def __init__(
        self,
        scenario: ScenarioConfig,
        config: Optional[AgencyConfig] = None,
        rng: RandomSource = None,
        run_id: str = "run",
    ):
        # --- Core Simulation Setup ---
        self.config = (config if config is not None else AgencyConfig()).validate()
        self.scenario = scenario
        self.run_id = run_id
        self._owns_rng = not isinstance(rng, np.random.Generator)
        self._seed = rng if rng is not None else self.config.RANDOM_SEED
        self.rng = make_rng(self._seed)

        # --- Components ---
        self.q_learning = DifferentialQLearning(self.config)
        self.catalog = self.q_learning.get_possible_actions()
        self.boundary = BoundaryManager(self.config)
        self.power_calc = PowerCalculator(self.config)

        self.agents: List[Agent] = self._initialize_agents()
        if not self.agents:
            raise ValueError(f"Scenario '{scenario.name}' produced an empty agent roster")

        self.global_state = GlobalState.from_dict(self.config.INITIAL_STATE)
        self.r_bar_by_level: Dict[BoundaryLevel, float] = {level: 0.0 for level in LEVELS}
        self.t = 0
        self._history: List[HistoryEntry] = []
        self._final_round: Optional[int] = None

    def _initialize_agents(self) -> List[Agent]:
        """Create the roster from the scenario groups, ids assigned in order."""
        agents = []
        id_counter = 0
        for group in self.scenario.agent_config:
            for _ in range(group.count):
                agents.append(
                    Agent(
                        id_counter,
                        group.type,
                        group.take_rate,
                        group.service_level,
                        config=self.config,
                        catalog=self.catalog,
                    )
                )
                id_counter += 1
        return agents

    @property
    def history(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._history)

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------
    def compute_boundary_reward(
        self, level: BoundaryLevel, state: GlobalState, actions: Sequence[Action]
    ) -> float:
        return compute_reward(state, actions, self.boundary.get_reward_weights_for(level), self.config)

    def compute_ecosystem_reward(self, state: GlobalState, actions: Sequence[Action]) -> float:
        return self.compute_boundary_reward(self.boundary.current, state, actions)

    def compute_network_reward(self, state: GlobalState, actions: Sequence[Action]) -> float:
        return self.compute_boundary_reward(BoundaryLevel.B0, state, actions)

    # ------------------------------------------------------------------
    # Tick protocol
    # ------------------------------------------------------------------
    def step(self) -> HistoryEntry:
        """Advance one tick and return the recorded history entry."""
        prev_state = self.global_state.copy()

        # 1. Observe and select actions from the shared snapshot
        for agent in self.agents:
            agent.observe(prev_state)
            agent.action = agent.select_action(self.catalog, self.rng)
        actions = [agent.action for agent in self.agents]

        # 2. Score the same step under every boundary scope
        r_inst: Dict[BoundaryLevel, float] = {}
        beta = self.config.BETA_R
        for level in LEVELS:
            r_inst[level] = self.compute_boundary_reward(level, prev_state, actions)
            self.r_bar_by_level[level] += beta * (r_inst[level] - self.r_bar_by_level[level])

        ecosystem_reward = r_inst[self.boundary.current]
        network_reward = r_inst[BoundaryLevel.B0]
        alignment = self.boundary.compute_alignment_coefficient(ecosystem_reward, network_reward)

        # 3. Counterfactual agency: zero one agent's action at a time
        for idx, agent in enumerate(self.agents):
            counterfactual = list(actions)
            counterfactual[idx] = ZERO_ACTION
            agent.agency = ecosystem_reward - self.compute_ecosystem_reward(prev_state, counterfactual)

        # 4. Single global state mutation
        transition_state(self.global_state, actions, self.boundary.get_dynamics_couplings())

        # 5. Learning and energy
        for agent in self.agents:
            self.q_learning.update(agent, prev_state, agent.action, ecosystem_reward, self.global_state)
            agent.update_energy(self.global_state.surplus)

        # 6. Throttled contribution and power
        if self.t % self.config.POWER_UPDATE_FREQ == 0:
            for agent in self.agents:
                agent.compute_contribution(self.global_state)
            self.power_calc.compute_all(self.agents, self.rng)

        entry = HistoryEntry(
            t=self.t,
            r_bar=self.q_learning.r_bar,
            reward=ecosystem_reward,
            network_reward=network_reward,
            alpha=alignment,
            state=self.global_state.snapshot(),
            total_energy=float(sum(agent.local_state.energy for agent in self.agents)),
            avg_agency=fast_mean(agent.agency for agent in self.agents),
            r_bar_b0=self.r_bar_by_level[BoundaryLevel.B0],
            r_bar_b1=self.r_bar_by_level[BoundaryLevel.B1],
            r_bar_b2=self.r_bar_by_level[BoundaryLevel.B2],
            r_inst_b0=r_inst[BoundaryLevel.B0],
            r_inst_b1=r_inst[BoundaryLevel.B1],
            r_inst_b2=r_inst[BoundaryLevel.B2],
            boundary=self.boundary.current.value,
        )
        self._history.append(entry)
        self._log_round_summary(entry)
        self.t += 1
        return entry

    def run(self, n_steps: Optional[int] = None) -> Tuple[HistoryEntry, ...]:
        """Advance ``n_steps`` ticks (``N_STEPS`` by default) and return the history."""
        steps = self.config.N_STEPS if n_steps is None else int(n_steps)
        self._final_round = self.t + steps - 1
        logger.info("[%s] Starting simulation (%d agents, %d steps)...", self.run_id, len(self.agents), steps)
        for _ in range(steps):
            self.step()
        logger.info("[%s] Simulation finished at t=%d.", self.run_id, self.t)
        self._final_round = None
        return self.history

    def _log_round_summary(self, entry: HistoryEntry) -> None:
        """Emit a JSON round summary at DEBUG on the configured cadence."""
        if not self.config.enable_round_logging or not logger.isEnabledFor(logging.DEBUG):
            return
        if entry.t != self._final_round and entry.t % self.config.round_log_interval != 0:
            return
        record = sanitize_record(entry.as_record())
        record.setdefault("run_id", self.run_id)
        logger.debug(json.dumps(record, default=float))

    # ------------------------------------------------------------------
    # Control and inspection
    # ------------------------------------------------------------------
    def expand_boundary(self) -> BoundaryLevel:
        level = self.boundary.expand()
        logger.info("[%s] Boundary expanded to %s at t=%d", self.run_id, level.value, self.t)
        return level

    def reset(self) -> None:
        """Return to the construction-time state; owned generators are re-seeded."""
        if self._owns_rng:
            self.rng = make_rng(self._seed)
        self.q_learning.reset()
        self.boundary.reset()
        for agent in self.agents:
            agent.reset()
        self.global_state = GlobalState.from_dict(self.config.INITIAL_STATE)
        self.r_bar_by_level = {level: 0.0 for level in LEVELS}
        self.t = 0
        self._history = []

    def agent_metrics(self) -> List[Dict[str, Any]]:
        return [agent.metrics() for agent in self.agents]

    def history_frame(self) -> pd.DataFrame:
        return history_to_frame(self._history)
