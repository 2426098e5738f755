"""Construction of LINSTOR deployment configurations from volumes."""

from __future__ import annotations

from structlog.stdlib import BoundLogger

from ...constants import ParameterKey
from ...exceptions import ParameterError
from ...models.domain.linstor import DeploymentConfig
from ...models.domain.volume import Volume
from ...units import bytes_to_kib
from ..codec import VolumeCodec

__all__ = ["DeploymentBuilder"]

_CONSUMED_ELSEWHERE = frozenset(
    {
        ParameterKey.SIZE_KIB,
        ParameterKey.BLOCK_SIZE,
        ParameterKey.FORCE,
        ParameterKey.FILESYSTEM,
        ParameterKey.MOUNT_OPTS.lower(),
        ParameterKey.FS_OPTS.lower(),
    }
)
"""Known parameters that do not affect the deployment configuration."""


class DeploymentBuilder:
    """Translate volumes into LINSTOR deployment configurations.

    Parameters
    ----------
    codec
        Codec used to embed the volume in the configuration annotations.
    logger
        Logger for debug messages.
    """

    def __init__(self, codec: VolumeCodec, logger: BoundLogger) -> None:
        self._codec = codec
        self._logger = logger

    def build(self, volume: Volume) -> DeploymentConfig:
        """Build the deployment configuration for a volume.

        The volume ID is used as the resource name as is, so it must already
        be a legal LINSTOR resource name. Parameter keys are matched without
        regard to case, list-valued parameters are split on whitespace, and
        unknown parameters are ignored so that volumes carrying parameters
        for other tools or newer releases still work.

        Parameters
        ----------
        volume
            Volume to deploy.

        Returns
        -------
        DeploymentConfig
            Corresponding deployment configuration, including the serialized
            volume as an annotation.

        Raises
        ------
        ParameterError
            Raised if a parameter value cannot be parsed.
        """
        config = DeploymentConfig(
            name=volume.id, size_kib=bytes_to_kib(volume.size_bytes)
        )
        for key, value in volume.parameters.items():
            match key.lower():
                case ParameterKey.NODE_LIST:
                    config.node_list = value.split()
                case ParameterKey.CLIENT_LIST:
                    config.client_list = value.split()
                case ParameterKey.LAYER_LIST:
                    config.layer_list = value.split()
                case ParameterKey.REPLICAS_ON_SAME:
                    config.replicas_on_same = value.split()
                case ParameterKey.REPLICAS_ON_DIFFERENT:
                    config.replicas_on_different = value.split()
                case ParameterKey.STORAGE_POOL:
                    config.storage_pool = value
                case ParameterKey.DISKLESS_STORAGE_POOL:
                    config.diskless_storage_pool = value
                case ParameterKey.AUTO_PLACE:
                    config.auto_place = self._parse_auto_place(key, value)
                case ParameterKey.DO_NOT_PLACE_WITH_REGEX:
                    config.do_not_place_with_regex = value
                case ParameterKey.ENCRYPTION:
                    config.encryption = value.lower() == "true"
                case lowered if lowered in _CONSUMED_ELSEWHERE:
                    pass
                case _:
                    self._logger.debug(
                        "Ignoring unknown volume parameter",
                        volume=volume.id,
                        key=key,
                    )
        config.annotations = {
            self._codec.annotations_key: self._codec.encode(volume)
        }
        return config

    def build_attachment(self, volume: Volume, node: str) -> DeploymentConfig:
        """Build a configuration that only adds a diskless assignment.

        Parameters
        ----------
        volume
            Volume to attach.
        node
            Node that should get a diskless assignment.

        Returns
        -------
        DeploymentConfig
            Configuration with no diskful nodes, no auto-placement, and the
            target node as its only client.

        Raises
        ------
        ParameterError
            Raised if a parameter value cannot be parsed.
        """
        config = self.build(volume)
        config.node_list = []
        config.auto_place = 0
        config.client_list = [node]
        return config

    def _parse_auto_place(self, key: str, value: str) -> int:
        if value == "":
            return 0
        if not (value.isascii() and value.isdecimal()):
            raise ParameterError(key, value, "not a non-negative integer")
        return int(value)
