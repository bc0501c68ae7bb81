"""Externality-scope state machine with per-level reward and coupling tuning."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Tuple, Union

from .config import AgencyConfig, BOUNDARY_LEVEL_NAMES
from .models import BoundaryLevel

ALIGNMENT_EPSILON = 1e-6

LevelLike = Union[BoundaryLevel, str]


@dataclass(frozen=True)
class BoundaryTuning:
    """Reward-shaping pair plus dynamics-coupling pair of one boundary level."""

    friction_weight: float
    safety_weight: float
    congestion_to_capacity: float
    safety_to_trust: float

    @property
    def reward_weights(self) -> Tuple[float, float]:
        return (self.friction_weight, self.safety_weight)

    @property
    def couplings(self) -> Tuple[float, float]:
        return (self.congestion_to_capacity, self.safety_to_trust)


class BoundaryManager:
    """
    Tracks the accountability frontier B0 -> B1 -> B2.

    ``expand`` only moves forward and is a no-op once B2 is active. The
    ``*_for(level)`` accessors return any level's tuning without touching the
    active level, which is how the simulation scores a single step under all
    three scopes at once.
    """

    def __init__(self, config: AgencyConfig):
        self.config = config
        self.current = BoundaryLevel.B0
        self._tuning: Dict[BoundaryLevel, BoundaryTuning] = {}
        self._load_tuning()

    def _load_tuning(self) -> None:
        for name in BOUNDARY_LEVEL_NAMES:
            raw = self.config.BOUNDARY_TUNING[name]
            self._tuning[BoundaryLevel(name)] = BoundaryTuning(
                friction_weight=float(raw["friction_weight"]),
                safety_weight=float(raw["safety_weight"]),
                congestion_to_capacity=float(raw["congestion_to_capacity"]),
                safety_to_trust=float(raw["safety_to_trust"]),
            )

    def expand(self) -> BoundaryLevel:
        self.current = self.current.next()
        return self.current

    def tuning_for(self, level: LevelLike) -> BoundaryTuning:
        return self._tuning[BoundaryLevel(level)]

    def set_tuning(self, level: LevelLike, **changes: float) -> BoundaryTuning:
        """Replace some of a level's tuning values, e.g. ``set_tuning("B1", safety_to_trust=0.05)``."""
        level = BoundaryLevel(level)
        updated = replace(self._tuning[level], **{key: float(value) for key, value in changes.items()})
        self._tuning[level] = updated
        return updated

    def get_reward_weights(self) -> BoundaryTuning:
        return self.get_reward_weights_for(self.current)

    def get_reward_weights_for(self, level: LevelLike) -> BoundaryTuning:
        return self.tuning_for(level)

    def get_dynamics_couplings(self) -> BoundaryTuning:
        return self.get_dynamics_couplings_for(self.current)

    def get_dynamics_couplings_for(self, level: LevelLike) -> BoundaryTuning:
        return self.tuning_for(level)

    @staticmethod
    def compute_alignment_coefficient(r_ecosystem: float, r_network: float) -> float:
        """Ratio of ecosystem-scoped to network-scoped reward; reporting only."""
        return r_ecosystem / (r_network + ALIGNMENT_EPSILON)

    def reset(self) -> None:
        """Return to B0; tuning changed through ``set_tuning`` is kept."""
        self.current = BoundaryLevel.B0
