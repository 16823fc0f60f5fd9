"""
Shared pytest fixtures and configuration for callbatch tests.

This module provides:
- Settings cache cleanup for test isolation
- An InMemoryHost preloaded with the fixture contracts
- Executor / dispatcher / service fixtures bound to that host

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_echo(host):
        assert host.call(CALLER, ECHO, b"x").return_data == b"x"
"""

import sys
from pathlib import Path
from typing import Generator

import pytest

# Ensure callbatch package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

from callbatch.core.settings import CallBatchSettings, clear_settings_cache
from callbatch.entrypoint import AggregatorService
from callbatch.execution import CallExecutor, OperationDispatcher
from callbatch.host.memory import InMemoryHost
from callbatch.logging import clear_context, configure_logging
from tests._support.contracts import CALLER, CALLER_BALANCE, CONTRACTS, SERVICE

configure_logging(level="INFO", format="console", force=True)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        # Whole-batch tests through a host
        if test_path.name in {"test_deployless.py", "test_entrypoint.py"}:
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Clear the settings cache and CALLBATCH_* variables around each test.

    Tests that need settings set them with ``monkeypatch.setenv``.
    """
    import os

    for key in list(os.environ):
        if key.startswith("CALLBATCH_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(Path(__file__).parent)
    clear_settings_cache()
    yield
    clear_settings_cache()
    clear_context()


# =============================================================================
# Host Fixtures
# =============================================================================


def build_host(**kwargs) -> InMemoryHost:
    host = InMemoryHost(**kwargs)
    for address, handler in CONTRACTS.items():
        host.deploy(address, handler)
    host.set_balance(CALLER, CALLER_BALANCE)
    return host


@pytest.fixture
def host() -> InMemoryHost:
    """In-memory host with every fixture contract deployed and a funded caller."""
    return build_host()


@pytest.fixture
def host_factory():
    """Build extra hosts with custom limits: ``host_factory(gas_limit=50_000)``."""
    return build_host


@pytest.fixture
def executor(host: InMemoryHost) -> CallExecutor:
    return CallExecutor(host, CALLER)


@pytest.fixture
def dispatcher(executor: CallExecutor) -> OperationDispatcher:
    return OperationDispatcher(executor)


@pytest.fixture
def settings() -> CallBatchSettings:
    return CallBatchSettings()


@pytest.fixture
def service(host: InMemoryHost, settings: CallBatchSettings) -> AggregatorService:
    """Entrypoint service without a fallback aggregator."""
    return AggregatorService(host, SERVICE, settings=settings)
