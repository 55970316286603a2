"""Shared fixtures: a fresh session and model store per test."""

import pytest

from tama.core.session import Session
from tama.core.storage import ModelStore
from tests.helpers import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(clock):
    return Session("llama3:8b", clock=clock)


@pytest.fixture
def model_store(tmp_path):
    return ModelStore(directory=tmp_path / "data")
