"""Shared fixtures for the Predictive Agency test suite."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
PARENT = ROOT.parent
for candidate in (PARENT, ROOT):
    path_str = str(candidate)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

import numpy as np
import pytest

from predictive_agency.config import AgencyConfig
from predictive_agency.learning import ActionCatalog
from predictive_agency.models import AgentGroup, ScenarioConfig


@pytest.fixture
def config() -> AgencyConfig:
    return AgencyConfig()


@pytest.fixture
def catalog() -> ActionCatalog:
    return ActionCatalog.default()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def platform_scenario() -> ScenarioConfig:
    return ScenarioConfig(
        name="platform_only",
        agent_config=[AgentGroup(type="platform", count=10, take_rate=0.1, service_level=0.5)],
    )


@pytest.fixture
def mixed_scenario() -> ScenarioConfig:
    return ScenarioConfig(
        name="mixed",
        agent_config=[
            AgentGroup(type="platform", count=3, take_rate=0.25, service_level=0.6),
            AgentGroup(type="driver", count=12, take_rate=0.05, service_level=0.8),
            AgentGroup(type="investor", count=4, take_rate=0.15, service_level=0.3),
            AgentGroup(type="regulator", count=2, take_rate=0.0, service_level=0.9),
        ],
    )
