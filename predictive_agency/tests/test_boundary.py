"""Boundary level progression, tuning lookups and the alignment coefficient."""

from __future__ import annotations

import math

import pytest

from predictive_agency.boundary import BoundaryManager
from predictive_agency.models import BoundaryLevel


def test_expand_is_one_directional(config):
    manager = BoundaryManager(config)
    assert manager.current is BoundaryLevel.B0
    assert manager.expand() is BoundaryLevel.B1
    assert manager.expand() is BoundaryLevel.B2
    assert manager.expand() is BoundaryLevel.B2
    manager.reset()
    assert manager.current is BoundaryLevel.B0


def test_default_reward_weights_per_level(config):
    manager = BoundaryManager(config)
    assert manager.get_reward_weights().reward_weights == (0.0, 1.0)
    assert manager.get_reward_weights_for("B1").reward_weights == (0.1, 0.8)
    assert manager.get_reward_weights_for(BoundaryLevel.B2).reward_weights == (0.2, 0.6)
    assert manager.get_dynamics_couplings().couplings == (0.0, 0.0)


def test_for_variants_leave_active_level_untouched(config):
    manager = BoundaryManager(config)
    manager.expand()
    b2 = manager.get_dynamics_couplings_for(BoundaryLevel.B2)
    assert b2.couplings == (0.02, 0.04)
    assert manager.current is BoundaryLevel.B1
    assert manager.get_dynamics_couplings().couplings == (0.01, 0.02)


def test_tuning_is_configurable(config):
    cfg = config.copy_with_overrides({"BOUNDARY_TUNING.B1.safety_to_trust": 0.3})
    manager = BoundaryManager(cfg)
    assert manager.get_dynamics_couplings_for("B1").safety_to_trust == 0.3
    manager.set_tuning("B2", friction_weight=0.5)
    assert manager.get_reward_weights_for("B2").friction_weight == 0.5
    assert manager.get_reward_weights_for("B2").safety_weight == 0.6


def test_reset_returns_to_b0_and_keeps_runtime_tuning(config):
    manager = BoundaryManager(config)
    manager.set_tuning("B1", safety_to_trust=0.5)
    manager.expand()
    manager.reset()
    assert manager.current is BoundaryLevel.B0
    assert manager.get_dynamics_couplings_for("B1").safety_to_trust == 0.5


def test_alignment_coefficient():
    assert BoundaryManager.compute_alignment_coefficient(5.0, 0.0) == pytest.approx(5.0 / 1e-6)
    assert math.isfinite(BoundaryManager.compute_alignment_coefficient(5.0, 0.0))
    assert BoundaryManager.compute_alignment_coefficient(0.0, 0.0) == 0.0
    assert BoundaryManager.compute_alignment_coefficient(10.0, 20.0) == pytest.approx(0.5, rel=1e-6)


def test_unknown_level_is_rejected(config):
    manager = BoundaryManager(config)
    with pytest.raises(ValueError):
        manager.tuning_for("B3")
