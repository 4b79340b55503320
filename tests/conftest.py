"""Pytest fixtures for catalog reconciliation tests."""

import copy
import json
from pathlib import Path

import pytest

from catalog_sync.database.memory import InMemoryStore
from catalog_sync.integrations.clients.mocks.local_catalog import LocalCatalogClient
from catalog_sync.utils.config_loader import TransformSettings

SAMPLE_CATALOG = Path(__file__).parent.parent / "data" / "sample_catalog.json"


@pytest.fixture
def sample_data():
    with open(SAMPLE_CATALOG, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def store():
    """In-memory document store for tests."""
    return InMemoryStore()


@pytest.fixture
def client(sample_data):
    return LocalCatalogClient(data=copy.deepcopy(sample_data))


@pytest.fixture
def settings():
    return TransformSettings()
