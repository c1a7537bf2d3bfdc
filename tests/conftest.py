from __future__ import annotations

from pathlib import Path

import pytest

from strategy_engine.config import EngineConfig
from strategy_engine.facade import ResolutionFacade
from strategy_engine.registry import StrategyRegistry
from strategy_engine.samples import register_samples

ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def registry() -> StrategyRegistry:
    # Fresh, empty registry per test
    return StrategyRegistry(EngineConfig())


@pytest.fixture
def facade(registry: StrategyRegistry) -> ResolutionFacade:
    return ResolutionFacade(registry)


@pytest.fixture
def sample_registry(registry: StrategyRegistry) -> StrategyRegistry:
    register_samples(registry)
    return registry


@pytest.fixture
def samples_manifest() -> Path:
    return ROOT / "docs" / "samples_manifest.json"
