"""Public API for the Predictive Agency package.

Multi-agent ecosystem simulation in which platform, driver, regulator and
investor agents learn extraction, effort and openness policies with
average-reward Q-learning, scored under expanding externality boundaries.
"""

__version__ = "0.1.0"

from .agents import Agent, ValueTable
from .analysis import (
    BoundaryRewardSummary,
    externality_gap,
    history_to_frame,
    summarize_boundary_rewards,
)
from .boundary import BoundaryManager, BoundaryTuning
from .config import AgencyConfig
from .dynamics import compute_reward, transition_state
from .learning import ActionCatalog, DifferentialQLearning
from .models import (
    Action,
    AgentGroup,
    Belief,
    BoundaryLevel,
    GlobalState,
    HistoryEntry,
    LocalState,
    ScenarioConfig,
    StateSnapshot,
    ZERO_ACTION,
)
from .power import PowerCalculator, exact_shapley
from .simulation import AgencySimulation
from .utils import clamp, fast_mean, make_rng, safe_mean

__all__ = [
    "__version__",
    "Agent",
    "ValueTable",
    "BoundaryRewardSummary",
    "externality_gap",
    "history_to_frame",
    "summarize_boundary_rewards",
    "BoundaryManager",
    "BoundaryTuning",
    "AgencyConfig",
    "compute_reward",
    "transition_state",
    "ActionCatalog",
    "DifferentialQLearning",
    "Action",
    "AgentGroup",
    "Belief",
    "BoundaryLevel",
    "GlobalState",
    "HistoryEntry",
    "LocalState",
    "ScenarioConfig",
    "StateSnapshot",
    "ZERO_ACTION",
    "PowerCalculator",
    "exact_shapley",
    "AgencySimulation",
    "clamp",
    "fast_mean",
    "make_rng",
    "safe_mean",
]
