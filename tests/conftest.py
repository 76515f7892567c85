"""Pytest configuration and fixtures for stepflow tests."""

from __future__ import annotations

import pytest

from helpers import OWNER, FakeClock
from stepflow.engine import Engine
from stepflow.store import Store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def engine(store: Store, clock: FakeClock) -> Engine:
    return Engine(store, clock)


@pytest.fixture
def project_id(engine: Engine) -> str:
    return engine.create_project(OWNER, "Launch")
