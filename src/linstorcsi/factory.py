"""Component factory and process-wide context management."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from typing import Self

import structlog
from httpx import AsyncClient
from structlog.stdlib import BoundLogger

from .config import Config
from .constants import ROOT_LOGGER
from .services.builder.deployment import DeploymentBuilder
from .services.codec import VolumeCodec
from .services.volume import VolumeStore
from .storage.filesystem import CommandRunner, FilesystemHelper
from .storage.linstor import LinstorStorageClient

__all__ = ["Factory", "ProcessContext"]


@dataclass(frozen=True, slots=True)
class ProcessContext:
    """Per-process shared state.

    Holds the singletons used by the `Factory` as a source of dependencies
    to inject into the service and storage objects it creates.
    """

    config: Config
    """Configuration."""

    http_client: AsyncClient
    """Shared HTTP client for the LINSTOR controller."""

    command_runner: CommandRunner
    """Runner for local filesystem commands."""

    @classmethod
    def from_config(
        cls, config: Config, command_runner: CommandRunner | None = None
    ) -> Self:
        """Create a new process context from the configuration.

        Parameters
        ----------
        config
            Configuration.
        command_runner
            Runner for filesystem commands. Defaults to running real
            commands; the test suite substitutes a mock.

        Returns
        -------
        ProcessContext
            Shared context for a process.
        """
        return cls(
            config=config,
            http_client=AsyncClient(timeout=config.timeout_seconds),
            command_runner=command_runner or CommandRunner(),
        )

    async def aclose(self) -> None:
        """Free allocated resources."""
        await self.http_client.aclose()


class Factory:
    """Build components of the translation layer.

    Parameters
    ----------
    context
        Shared process context.
    logger
        Logger to use for messages.
    """

    @classmethod
    @asynccontextmanager
    async def standalone(
        cls, config: Config, command_runner: CommandRunner | None = None
    ) -> AsyncIterator[Self]:
        """Async context manager for components.

        Intended for the command-line interface or the test suite.

        Parameters
        ----------
        config
            Configuration.
        command_runner
            Runner for filesystem commands, if not the default.

        Yields
        ------
        Factory
            Newly-created factory. Must be used as a context manager.
        """
        logger = structlog.get_logger(ROOT_LOGGER)
        context = ProcessContext.from_config(config, command_runner)
        factory = cls(context, logger)
        async with aclosing(factory):
            yield factory

    def __init__(self, context: ProcessContext, logger: BoundLogger) -> None:
        self._context = context
        self._logger = logger

    async def aclose(self) -> None:
        """Shut down the factory.

        After this method is called, the factory object is no longer valid and
        must not be used.
        """
        await self._context.aclose()

    def create_deployment_builder(self) -> DeploymentBuilder:
        """Create a builder for LINSTOR deployment configurations.

        Returns
        -------
        DeploymentBuilder
            Newly-created builder.
        """
        return DeploymentBuilder(self.create_volume_codec(), self._logger)

    def create_filesystem_helper(self) -> FilesystemHelper:
        """Create a helper for formatting and mounting devices.

        Returns
        -------
        FilesystemHelper
            Newly-created filesystem helper.
        """
        return FilesystemHelper(self._context.command_runner, self._logger)

    def create_linstor_client(self) -> LinstorStorageClient:
        """Create a LINSTOR controller client.

        Returns
        -------
        LinstorStorageClient
            Newly-created LINSTOR client.
        """
        return LinstorStorageClient(
            self._context.config.controller_url,
            self._context.http_client,
            self._logger,
        )

    def create_volume_codec(self) -> VolumeCodec:
        """Create a codec for volume annotations.

        Returns
        -------
        VolumeCodec
            Newly-created codec.
        """
        return VolumeCodec(self._context.config.annotations_key, self._logger)

    def create_volume_store(
        self, id_factory: Callable[[], str] | None = None
    ) -> VolumeStore:
        """Create the volume service.

        Parameters
        ----------
        id_factory
            Source of random identifiers for generated volume names, if not
            random UUIDs.

        Returns
        -------
        VolumeStore
            Newly-created volume service.
        """
        codec = self.create_volume_codec()
        return VolumeStore(
            linstor=self.create_linstor_client(),
            filesystem=self.create_filesystem_helper(),
            builder=DeploymentBuilder(codec, self._logger),
            codec=codec,
            fallback_prefix=self._context.config.fallback_prefix,
            logger=self._logger,
            id_factory=id_factory,
        )
