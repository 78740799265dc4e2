"""Root pytest configuration for nori-sdk tests."""
import logging

import pytest

from nori_sdk.log import ROOT_LOGGER
from nori_sdk.settings import Settings
from nori_sdk.storage.reference import Reference
from nori_sdk.storage.registry_client import RegistryClient

from fakes.fake_registry import FakeRegistry


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (runs real subprocesses)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Isolate every test from the caller's registry environment and log file."""
    for var in ("NORI_REGISTRY_USERNAME", "NORI_REGISTRY_PASSWORD",
                "NORI_REGISTRY_INSECURE", "NORI_HTTP_TIMEOUT", "DEBUG"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LOG_PATH", str(tmp_path / "nori.log"))

    yield

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def settings(tmp_path):
    """Standard test settings."""
    return Settings(log_path=str(tmp_path / "nori.log"))


@pytest.fixture
def ref():
    """Namespaced reference used across registry tests."""
    return Reference(host="registry.example.org", namespace="library", name="nginx", version="latest")


@pytest.fixture
def registry():
    """Standard in-memory fake registry."""
    return FakeRegistry()


@pytest.fixture
def client(registry):
    """RegistryClient wired to the fake registry."""
    client = RegistryClient(transport=registry.transport)
    yield client
    client.close()
