"""
Core dataclasses used across the Predictive Agency simulation.

This module defines the record shapes shared by the agents, the learner, the
boundary manager and the simulation orchestrator.

Key Concepts Operationalized
----------------------------
- **GlobalState**: the six aggregate ecosystem scalars (demand, capacity,
  safety, surplus, trust, congestion). One instance lives inside a simulation
  and is mutated in place by the state transition; every mutation is followed
  by a clamp so the bounds hold after each tick.

- **Action**: an agent's choice of take rate (extraction), service level
  (effort) and openness (collaboration). Actions are immutable and hashable so
  they can be compared exactly against the fixed action catalog.

- **BoundaryLevel**: the externality scope B0 (network only), B1 (local
  spillovers) and B2 (regional spillovers). The scope only widens.

- **HistoryEntry**: an immutable per-tick snapshot appended to the
  simulation's history log.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

from .config import STATE_FIELDS
from .utils import clamp

AGENT_TYPES: Tuple[str, ...] = ("platform", "driver", "regulator", "investor")

STATE_BOUNDS: Dict[str, Tuple[float, float]] = {
    "demand": (20.0, 80.0),
    "capacity": (0.0, 100.0),
    "safety": (0.0, 100.0),
    "surplus": (0.0, 100.0),
    "trust": (0.0, 100.0),
    "congestion": (0.0, 100.0),
}


class BoundaryLevel(str, Enum):
    """Externality scope, ordered from narrowest to widest."""

    B0 = "B0"
    B1 = "B1"
    B2 = "B2"

    @property
    def rank(self) -> int:
        return _BOUNDARY_ORDER.index(self)

    def next(self) -> "BoundaryLevel":
        """Return the next wider level; B2 is terminal."""
        return _BOUNDARY_ORDER[min(self.rank + 1, len(_BOUNDARY_ORDER) - 1)]


_BOUNDARY_ORDER: Tuple[BoundaryLevel, ...] = (BoundaryLevel.B0, BoundaryLevel.B1, BoundaryLevel.B2)


@dataclass
class GlobalState:
    """Aggregate ecosystem state, clamped to its bounds after every mutation."""

    demand: float = 60.0
    capacity: float = 50.0
    safety: float = 70.0
    surplus: float = 55.0
    trust: float = 60.0
    congestion: float = 25.0

    @classmethod
    def from_dict(cls, values: Dict[str, float]) -> "GlobalState":
        state = cls(**{name: float(values[name]) for name in STATE_FIELDS})
        state.clamp_all()
        return state

    def adjust(self, name: str, delta: float) -> None:
        """Add ``delta`` to one field and clamp it."""
        self.set(name, getattr(self, name) + delta)

    def set(self, name: str, value: float) -> None:
        lo, hi = STATE_BOUNDS[name]
        setattr(self, name, clamp(float(value), lo, hi))

    def clamp_all(self) -> None:
        for name in STATE_FIELDS:
            self.set(name, getattr(self, name))

    def copy(self) -> "GlobalState":
        return GlobalState(
            demand=self.demand,
            capacity=self.capacity,
            safety=self.safety,
            surplus=self.surplus,
            trust=self.trust,
            congestion=self.congestion,
        )

    def signature(self) -> Tuple[float, ...]:
        """Exact state tuple used as the state half of a value-table key."""
        return (self.demand, self.capacity, self.safety, self.surplus, self.trust, self.congestion)

    def snapshot(self) -> "StateSnapshot":
        return StateSnapshot(*self.signature())

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy of a ``GlobalState`` as recorded in the history log."""

    demand: float
    capacity: float
    safety: float
    surplus: float
    trust: float
    congestion: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class Action:
    """Take rate in [0, 0.5], service level in [0, 1], openness in [0, 1]."""

    take_rate: float
    service_level: float
    openness: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.take_rate, self.service_level, self.openness)


ZERO_ACTION = Action(take_rate=0.0, service_level=0.0, openness=0.0)


@dataclass
class Belief:
    mu: GlobalState
    sigma: float = 0.1


@dataclass
class LocalState:
    energy: float = 100.0
    stress: float = 0.0


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable snapshot of one tick.

    Attributes
    ----------
    t : int
        Tick index the entry was recorded for (0-based).
    r_bar : float
        Shared differential Q-learning baseline after the tick's TD updates.
    reward : float
        Ecosystem reward, i.e. the active boundary's instantaneous reward.
    network_reward : float
        Instantaneous reward under the narrow B0 scope.
    alpha : float
        Alignment coefficient ``reward / (network_reward + 1e-6)``.
    state : StateSnapshot
        Frozen copy of the global state after the transition.
    """

    t: int
    r_bar: float
    reward: float
    network_reward: float
    alpha: float
    state: StateSnapshot
    total_energy: float
    avg_agency: float
    r_bar_b0: float
    r_bar_b1: float
    r_bar_b2: float
    r_inst_b0: float
    r_inst_b1: float
    r_inst_b2: float
    boundary: str = BoundaryLevel.B0.value

    def as_record(self) -> Dict[str, Any]:
        """Flatten into a dict with the state fields prefixed ``state_``."""
        record = {
            "t": self.t,
            "r_bar": self.r_bar,
            "reward": self.reward,
            "network_reward": self.network_reward,
            "alpha": self.alpha,
            "total_energy": self.total_energy,
            "avg_agency": self.avg_agency,
            "r_bar_b0": self.r_bar_b0,
            "r_bar_b1": self.r_bar_b1,
            "r_bar_b2": self.r_bar_b2,
            "r_inst_b0": self.r_inst_b0,
            "r_inst_b1": self.r_inst_b1,
            "r_inst_b2": self.r_inst_b2,
            "boundary": self.boundary,
        }
        for name, value in self.state.as_dict().items():
            record[f"state_{name}"] = value
        return record


@dataclass(frozen=True)
class AgentGroup:
    """One roster line of a scenario: ``count`` agents sharing an anchor."""

    type: str
    count: int
    take_rate: float
    service_level: float

    def __post_init__(self) -> None:
        if self.type not in AGENT_TYPES:
            raise ValueError(f"Unknown agent type '{self.type}'. Expected one of {', '.join(AGENT_TYPES)}")
        if self.count < 0:
            raise ValueError(f"Agent group '{self.type}' has a negative count ({self.count})")


@dataclass
class ScenarioConfig:
    """Ordered list of agent groups; the roster is built in this order."""

    name: str
    agent_config: List[AgentGroup] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ScenarioConfig":
        groups = []
        for raw in payload.get("agent_config", payload.get("agentConfig", [])):
            groups.append(
                AgentGroup(
                    type=str(raw["type"]),
                    count=int(raw["count"]),
                    take_rate=float(raw.get("take_rate", raw.get("takeRate"))),
                    service_level=float(raw.get("service_level", raw.get("serviceLevel"))),
                )
            )
        return cls(name=str(payload.get("name", "custom")), agent_config=groups)

    @property
    def total_agents(self) -> int:
        return sum(group.count for group in self.agent_config)
