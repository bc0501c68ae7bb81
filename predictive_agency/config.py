"""
Simulation configuration dataclass and override utilities for Predictive Agency.

This module holds every tunable scalar of the learning-and-dynamics engine in
a single dataclass that is injected into each component at construction.
Nothing in the package reads a process-wide default: a simulation, its
agents, the learner and the boundary manager all see the same explicit
``AgencyConfig`` instance.

The configuration structure supports:

1. **Reproducibility**: ``snapshot()`` captures a complete, JSON-safe copy of
   the parameters so a run can be replicated from its seed and settings.

2. **Sensitivity Analysis**: ``copy_with_overrides`` merges flat or dotted
   overrides (``"BOUNDARY_TUNING.B1.friction_weight"``) into a deep copy,
   which is what parameter sweeps need.

3. **Fail-fast validation**: ``validate()`` rejects out-of-domain values
   before a run starts instead of letting NaN propagate through the tick loop.

Usage
-----
    >>> config = AgencyConfig()
    >>> config = config.copy_with_overrides({"EPSILON": 0.0})
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Tuple

BOUNDARY_LEVEL_NAMES: Tuple[str, ...] = ("B0", "B1", "B2")
BOUNDARY_TUNING_KEYS: Tuple[str, ...] = (
    "friction_weight",
    "safety_weight",
    "congestion_to_capacity",
    "safety_to_trust",
)
STATE_FIELDS: Tuple[str, ...] = ("demand", "capacity", "safety", "surplus", "trust", "congestion")


@dataclass
class AgencyConfig:
    """Tunable constants for learning, rewards, power attribution and dynamics."""

    # Learning
    ALPHA_Q: float = 0.1  # value-table step size
    BETA_R: float = 0.01  # baseline and per-boundary EMA rate
    EPSILON: float = 0.1  # exploration probability

    # Simulation
    N_STEPS: int = 1000
    RANDOM_SEED: Optional[int] = 42

    # Power calculation
    SHAPLEY_PERMUTATIONS: int = 16
    POWER_UPDATE_FREQ: int = 10

    # Reward weights
    W_SURPLUS: float = 0.3
    W_SAFETY: float = 0.25
    W_TRUST: float = 0.2
    W_CAPACITY: float = 0.15
    W_DEMAND: float = 0.1

    # Penalties
    EXTRACTION_PENALTY: float = 10.0
    FRICTION_PENALTY: float = 0.1

    INITIAL_STATE: Dict[str, float] = field(
        default_factory=lambda: {
            "demand": 60.0,
            "capacity": 50.0,
            "safety": 70.0,
            "surplus": 55.0,
            "trust": 60.0,
            "congestion": 25.0,
        }
    )

    # B0 is the network-only view: no friction term, no spillover couplings.
    # B1 adds local externalities, B2 regional ones with heavier friction.
    BOUNDARY_TUNING: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {
            "B0": {
                "friction_weight": 0.0,
                "safety_weight": 1.0,
                "congestion_to_capacity": 0.0,
                "safety_to_trust": 0.0,
            },
            "B1": {
                "friction_weight": 0.1,
                "safety_weight": 0.8,
                "congestion_to_capacity": 0.01,
                "safety_to_trust": 0.02,
            },
            "B2": {
                "friction_weight": 0.2,
                "safety_weight": 0.6,
                "congestion_to_capacity": 0.02,
                "safety_to_trust": 0.04,
            },
        }
    )

    round_log_interval: int = 25
    enable_round_logging: bool = True

    def snapshot(self) -> Dict[str, Any]:
        """Return a deep-copied, JSON-safe representation of the configuration."""
        return asdict(self)

    def copy_with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "AgencyConfig":
        """Return a new config with the provided overrides merged in."""
        new_cfg = copy.deepcopy(self)
        if overrides:
            _apply_overrides(new_cfg, overrides)
        return new_cfg

    def validate(self) -> "AgencyConfig":
        """Raise ``ValueError`` for tunables outside their domain; return self."""
        for name in ("ALPHA_Q", "BETA_R", "EPSILON"):
            value = float(getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value}")
        for name in ("N_STEPS", "SHAPLEY_PERMUTATIONS", "POWER_UPDATE_FREQ", "round_log_interval"):
            value = getattr(self, name)
            if int(value) != value or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        missing_state = [name for name in STATE_FIELDS if name not in self.INITIAL_STATE]
        if missing_state:
            raise ValueError(f"INITIAL_STATE is missing fields: {', '.join(missing_state)}")
        unknown_levels = set(self.BOUNDARY_TUNING) - set(BOUNDARY_LEVEL_NAMES)
        if unknown_levels:
            raise ValueError(f"Unknown boundary levels in BOUNDARY_TUNING: {sorted(unknown_levels)}")
        for level in BOUNDARY_LEVEL_NAMES:
            tuning = self.BOUNDARY_TUNING.get(level)
            if tuning is None:
                raise ValueError(f"BOUNDARY_TUNING has no entry for {level}")
            missing = [key for key in BOUNDARY_TUNING_KEYS if key not in tuning]
            if missing:
                raise ValueError(f"BOUNDARY_TUNING[{level}] is missing: {', '.join(missing)}")
        return self


def _apply_overrides(config: AgencyConfig, overrides: Dict[str, Any]) -> None:
    """Recursively merge ``overrides`` into ``config``.

    Dotted keys address nested dictionaries, e.g. ``"BOUNDARY_TUNING.B2.safety_to_trust"``
    or ``"INITIAL_STATE.surplus"``. Dictionary values are deep-merged so a partial
    boundary tuning keeps the untouched keys of that level.
    """
    for key, value in overrides.items():
        if "." in key:
            top, *rest = key.split(".")
            if not hasattr(config, top):
                raise KeyError(f"Unknown configuration attribute '{top}' in override.")
            current = getattr(config, top)
            if not isinstance(current, dict):
                raise KeyError(f"Attribute '{top}' is not a dictionary; cannot set '{key}'.")
            ref = current
            for part in rest[:-1]:
                if part not in ref or not isinstance(ref[part], dict):
                    ref[part] = {}
                ref = ref[part]
            ref[rest[-1]] = copy.deepcopy(value)
            setattr(config, top, current)
            continue
        if not hasattr(config, key):
            raise KeyError(f"Unknown configuration attribute '{key}' in override.")
        current = getattr(config, key)
        if isinstance(current, dict) and isinstance(value, dict):
            setattr(config, key, _deep_merge_dict(current, value))
        else:
            setattr(config, key, copy.deepcopy(value))


def _deep_merge_dict(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries without mutating the originals."""
    merged = copy.deepcopy(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge_dict(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
