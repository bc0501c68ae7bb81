"""
Differential (average-reward) Q-learning shared by all agents.

The learner keeps one scalar baseline ``r_bar`` approximating the long-run
average reward rate of the whole system. Each agent owns its value table; the
TD error is measured relative to the shared baseline rather than a discounted
return:

    delta = R - r_bar + max_a' Q(s', a') - Q(s, a)
    Q(s, a)  <- Q(s, a) + alpha * delta      (stored through Agent.set_value)
    r_bar    <- clip(r_bar + beta * delta, -1000, 1000)

References
----------
Wan, Y., Naik, A., & Sutton, R. S. (2021). Learning and planning in
    average-reward Markov decision processes. ICML 2021.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from .config import AgencyConfig
from .models import Action, GlobalState

if TYPE_CHECKING:  # pragma: no cover
    from .agents import Agent

TAKE_RATES: Tuple[float, ...] = (0.05, 0.1, 0.15, 0.2, 0.25, 0.3)
SERVICE_LEVELS: Tuple[float, ...] = (0.3, 0.5, 0.7, 0.9)
OPENNESS_LEVELS: Tuple[float, ...] = (0.2, 0.5, 0.8)
CATALOG_SIZE = 20
R_BAR_LIMIT = 1000.0


class ActionCatalog(Sequence[Action]):
    """Fixed, ordered action set with an exact action -> index lookup."""

    def __init__(self, actions: Sequence[Action]):
        if not actions:
            raise ValueError("The action catalog must contain at least one action")
        self._actions: Tuple[Action, ...] = tuple(actions)
        self._index: Dict[Action, int] = {}
        for idx, action in enumerate(self._actions):
            self._index.setdefault(action, idx)

    @classmethod
    def default(cls) -> "ActionCatalog":
        """Take rate x service x openness, truncated to the first 20 in nesting order."""
        combos = itertools.product(TAKE_RATES, SERVICE_LEVELS, OPENNESS_LEVELS)
        actions = [
            Action(take_rate=tr, service_level=sl, openness=op)
            for tr, sl, op in itertools.islice(combos, CATALOG_SIZE)
        ]
        return cls(actions)

    def __getitem__(self, idx):  # type: ignore[override]
        return self._actions[idx]

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def index_of(self, action: Action) -> Optional[int]:
        return self._index.get(action)

    def key_for(self, action: Action) -> Union[int, Tuple[float, float, float]]:
        """Catalog index, or the raw action tuple for actions outside the catalog."""
        idx = self.index_of(action)
        return idx if idx is not None else action.as_tuple()


class DifferentialQLearning:
    """Average-reward TD learner with a single system-wide baseline."""

    def __init__(self, config: AgencyConfig, catalog: Optional[ActionCatalog] = None):
        self.config = config
        self.alpha = float(config.ALPHA_Q)
        self.beta = float(config.BETA_R)
        self.r_bar = 0.0
        self.catalog = catalog if catalog is not None else ActionCatalog.default()

    def update(
        self,
        agent: "Agent",
        state: GlobalState,
        action: Action,
        reward: float,
        next_state: GlobalState,
    ) -> float:
        """Apply one TD step for ``agent`` and return the TD error."""
        current_q = agent.get_value(state, action)
        delta = reward - self.r_bar + self.max_value(agent, next_state) - current_q
        agent.set_value(state, action, current_q + self.alpha * delta)
        self.r_bar = float(np.clip(self.r_bar + self.beta * delta, -R_BAR_LIMIT, R_BAR_LIMIT))
        return delta

    def max_value(self, agent: "Agent", state: GlobalState) -> float:
        best = -np.inf
        for action in self.catalog:
            best = max(best, agent.get_value(state, action))
        return best if best > -np.inf else 0.0

    def get_possible_actions(self) -> ActionCatalog:
        return self.catalog

    def reset(self) -> None:
        self.r_bar = 0.0

