"""Test fixtures for LINSTOR translation layer tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
import respx

from linstorcsi.config import Config
from linstorcsi.factory import Factory
from linstorcsi.services.volume import VolumeStore

from .support.config import configure
from .support.constants import TEST_VOLUME_ID
from .support.filesystem import MockCommandRunner
from .support.linstor import MockLinstor, register_mock_linstor


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LINSTOR_CSI_ALERT_HOOK",
        "LINSTOR_CSI_CONFIG_FILE",
        "LINSTOR_CSI_CONTROLLERS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> Config:
    """Construct default configuration for tests."""
    return configure("standard")


@pytest.fixture
def mock_linstor(config: Config, respx_mock: respx.Router) -> MockLinstor:
    return register_mock_linstor(respx_mock, config.controller_url)


@pytest.fixture
def mock_runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest_asyncio.fixture
async def factory(
    config: Config,
    mock_linstor: MockLinstor,
    mock_runner: MockCommandRunner,
) -> AsyncIterator[Factory]:
    """Create a component factory for tests."""
    async with Factory.standalone(config, mock_runner) as factory:
        yield factory


@pytest.fixture
def store(factory: Factory) -> VolumeStore:
    """Create a volume service whose generated names are predictable."""
    return factory.create_volume_store(id_factory=lambda: TEST_VOLUME_ID)
