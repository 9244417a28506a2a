"""
Shared fixtures
"""

import pytest
from fastapi.testclient import TestClient

from secret_service.devices import DeviceRegistry
from secret_service.main import create_app
from secret_service.storage import MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def registry():
    return DeviceRegistry()


@pytest.fixture
def client(storage, registry):
    return TestClient(create_app(storage=storage, registry=registry))
