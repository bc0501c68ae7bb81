"""
Agent state, value table and decision logic for Predictive Agency.

Each agent carries an identity (id, archetype, and an immutable take-rate /
service-level anchor from its scenario group), a belief about the global
state, its current action, local energy reserves, and a learned action-value
table. Derived scalars (power, agency, contribution) are written by the
simulation and read by external observers.

Key mechanisms implemented:

1. **Direct observation**: beliefs are overwritten with an exact copy of the
   observed state each tick; there is no noise model or filtering.

2. **Epsilon-greedy selection** over the shared action catalog using an
   injected random generator, so seeded runs replay exactly.

3. **Take-rate discomfort**: every value written to the table is reduced by
   ``|take_rate - initial_take_rate| * 5``. The penalty is applied on each
   store, independent of the size of the TD step, which permanently biases
   an agent's table toward its innate take rate.

4. **Logistic energy**: energy gain from system surplus slows as reserves
   approach the 150-unit carrying capacity; effort costs energy.
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Tuple

import numpy as np

from .config import AgencyConfig
from .learning import ActionCatalog
from .models import Action, Belief, GlobalState, LocalState
from .utils import clamp

ENERGY_CAPACITY = 150.0
DISCOMFORT_WEIGHT = 5.0
OBSERVATION_SIGMA = 0.1

ValueKey = Tuple[Tuple[float, ...], Hashable]


def _initial_belief() -> Belief:
    return Belief(
        mu=GlobalState(demand=50.0, capacity=50.0, safety=50.0, surplus=50.0, trust=50.0, congestion=20.0),
        sigma=OBSERVATION_SIGMA,
    )


class ValueTable:
    """Exact-match mapping from (state signature, catalog index) to a value.

    Unseen keys read as 0. There is no interpolation or nearest-neighbour
    lookup: two states that differ in any field are different keys.
    """

    def __init__(self, catalog: ActionCatalog):
        self.catalog = catalog
        self._values: Dict[ValueKey, float] = {}

    def key(self, state: GlobalState, action: Action) -> ValueKey:
        return (state.signature(), self.catalog.key_for(action))

    def get(self, state: GlobalState, action: Action) -> float:
        return self._values.get(self.key(state, action), 0.0)

    def put(self, state: GlobalState, action: Action, value: float) -> None:
        self._values[self.key(state, action)] = float(value)

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class Agent:
    """A learning participant of the ecosystem."""

    def __init__(
        self,
        agent_id: int,
        agent_type: str,
        take_rate: float,
        service_level: float,
        config: AgencyConfig,
        catalog: ActionCatalog,
    ):
        self.id = agent_id
        self.type = agent_type
        self.config = config
        self._initial_take_rate = float(take_rate)
        self._initial_service_level = float(service_level)

        self.belief = _initial_belief()
        self.action = Action(take_rate=float(take_rate), service_level=float(service_level), openness=0.5)
        self.local_state = LocalState(energy=100.0, stress=0.0)
        self.q_table = ValueTable(catalog)

        self.power = 0.0
        self.agency = 0.0
        self.contribution = 0.0

    @property
    def initial_take_rate(self) -> float:
        return self._initial_take_rate

    @property
    def initial_service_level(self) -> float:
        return self._initial_service_level

    @property
    def energy(self) -> float:
        return self.local_state.energy

    def observe(self, state: GlobalState) -> None:
        self.belief.mu = state.copy()
        self.belief.sigma = OBSERVATION_SIGMA

    def select_action(self, catalog: ActionCatalog, rng: np.random.Generator) -> Action:
        """Epsilon-greedy choice; ties keep the first catalog entry."""
        if rng.random() < self.config.EPSILON:
            return catalog[int(rng.integers(len(catalog)))]

        best_action = self.action
        max_q = -np.inf
        for candidate in catalog:
            q_value = self.get_value(self.belief.mu, candidate)
            if q_value > max_q:
                max_q = q_value
                best_action = candidate
        return best_action

    def update_energy(self, system_surplus: float) -> None:
        energy_cost = self.action.service_level * 0.5
        gain_factor = max(0.0, 1.0 - self.local_state.energy / ENERGY_CAPACITY)
        energy_gain = (system_surplus / 100.0) * 1.5 * gain_factor
        self.local_state.energy = clamp(
            self.local_state.energy + energy_gain - energy_cost, 0.0, ENERGY_CAPACITY
        )

    def compute_contribution(self, state: GlobalState) -> float:
        """Circulation (service x openness) minus extraction from the surplus."""
        circulation = self.action.service_level * self.action.openness * 10.0
        extraction = self.action.take_rate * state.surplus
        self.contribution = circulation - extraction
        return self.contribution

    def get_value(self, state: GlobalState, action: Action) -> float:
        return self.q_table.get(state, action)

    def set_value(self, state: GlobalState, action: Action, value: float) -> None:
        discomfort = abs(action.take_rate - self._initial_take_rate) * DISCOMFORT_WEIGHT
        self.q_table.put(state, action, value - discomfort)

    def reset(self) -> None:
        """Restore the construction-time belief, action, reserves and metrics."""
        self.belief = _initial_belief()
        self.action = Action(
            take_rate=self._initial_take_rate,
            service_level=self._initial_service_level,
            openness=0.5,
        )
        self.local_state = LocalState(energy=100.0, stress=0.0)
        self.q_table.clear()
        self.power = 0.0
        self.agency = 0.0
        self.contribution = 0.0

    def metrics(self) -> Dict[str, Any]:
        return {
            "agent_id": self.id,
            "type": self.type,
            "power": self.power,
            "agency": self.agency,
            "contribution": self.contribution,
            "energy": self.local_state.energy,
        }

    def __repr__(self) -> str:
        return f"Agent(id={self.id}, type={self.type!r}, action={self.action}, energy={self.energy:.2f})"
