"""Shared fixtures for the legacy bridge tests."""

import pytest

from legacy_bridge.config import PipelineSettings
from legacy_bridge.orchestrator import ImportOrchestrator
from legacy_bridge.store import InMemoryStore

from factories import CLIENT_ROWS, client_csv


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def orchestrator(store):
    return ImportOrchestrator(store=store, settings=PipelineSettings(max_workers=2))


@pytest.fixture
def client_file(tmp_path):
    path = tmp_path / "clients.csv"
    path.write_text(client_csv(CLIENT_ROWS))
    return path
