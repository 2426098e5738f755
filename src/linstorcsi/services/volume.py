"""Volume operations against the LINSTOR controller."""

from __future__ import annotations

from collections.abc import Callable
from uuid import uuid4

from structlog.stdlib import BoundLogger

from ..constants import ParameterKey
from ..exceptions import CodecError, LinstorApiError, ResourceNameError
from ..models.domain.linstor import NodeConnectionStatus, ResourceDefinition
from ..models.domain.volume import Assignment, Volume
from ..naming import canonicalize
from ..storage.filesystem import FilesystemHelper
from ..storage.linstor import LinstorStorageClient
from .builder.deployment import DeploymentBuilder
from .codec import VolumeCodec

__all__ = ["VolumeStore"]


def _random_id() -> str:
    return str(uuid4())


class VolumeStore:
    """Create, look up, attach and mount volumes backed by LINSTOR.

    Volume metadata is kept only in annotations on the LINSTOR resource
    definitions, so every lookup lists and decodes all resource definitions.
    Nothing is cached and no state is kept between calls. Concurrent calls
    for the same volume are not serialized.

    Parameters
    ----------
    linstor
        Client for the LINSTOR controller.
    filesystem
        Helper for formatting and mounting devices.
    builder
        Builder for deployment configurations.
    codec
        Codec for annotations holding volumes.
    fallback_prefix
        Prefix of generated names used when a requested name cannot be
        used.
    logger
        Logger for log messages.
    id_factory
        Source of random identifiers for generated names. Defaults to
        random UUIDs.
    """

    def __init__(
        self,
        *,
        linstor: LinstorStorageClient,
        filesystem: FilesystemHelper,
        builder: DeploymentBuilder,
        codec: VolumeCodec,
        fallback_prefix: str,
        logger: BoundLogger,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._linstor = linstor
        self._filesystem = filesystem
        self._builder = builder
        self._codec = codec
        self._fallback_prefix = fallback_prefix
        self._logger = logger
        self._id_factory = id_factory or _random_id

    async def list_all(
        self, parameters: dict[str, str] | None = None
    ) -> list[Volume]:
        """List all volumes created by this system.

        Parameters
        ----------
        parameters
            Accepted for interface compatibility with orchestrators that pass
            listing parameters. Currently unused.

        Returns
        -------
        list of Volume
            All volumes found in resource definition annotations.

        Raises
        ------
        CodecError
            Raised if any annotation cannot be decoded.
        LinstorApiError
            Raised if the controller cannot be queried.
        """
        volumes = []
        for _, volume in await self._list_volumes():
            if volume is not None:
                volumes.append(volume)
        return volumes

    async def get_by_name(self, name: str) -> Volume | None:
        """Find a volume by the name the caller gave it.

        Volumes that had to be renamed during creation are found too, since
        their stored name carries the fallback prefix.

        Parameters
        ----------
        name
            Name of the volume.

        Returns
        -------
        Volume or None
            The first matching volume, or `None` if there is none.

        Raises
        ------
        CodecError
            Raised if any annotation cannot be decoded.
        LinstorApiError
            Raised if the controller cannot be queried.
        """
        self._logger.debug("Looking up volume by name", volume_name=name)
        fallback_name = self._fallback_prefix + name
        for _, volume in await self._list_volumes():
            if volume is None:
                continue
            if volume.name in (name, fallback_name):
                return volume
        return None

    async def get_by_id(self, volume_id: str) -> Volume | None:
        """Find a volume by its ID.

        Parameters
        ----------
        volume_id
            ID of the volume, matched against both the resource definition
            name and the stored volume ID.

        Returns
        -------
        Volume or None
            The first matching volume, or `None` if there is none.

        Raises
        ------
        CodecError
            Raised if any annotation cannot be decoded.
        LinstorApiError
            Raised if the controller cannot be queried.
        """
        self._logger.debug("Looking up volume by ID", volume_id=volume_id)
        for definition, volume in await self._list_volumes():
            if volume is None:
                continue
            if volume_id in (definition.name, volume.id):
                return volume
        return None

    async def canonicalize_volume_name(self, suggested_name: str) -> str:
        """Choose a unique, legal resource name for a new volume.

        The canonical form of the suggested name is used when possible. A
        random name with the fallback prefix is used instead if no canonical
        form exists, if a resource of that name already exists and belongs
        to something else, or if the existing resources cannot be checked.

        Parameters
        ----------
        suggested_name
            Name requested by the caller.

        Returns
        -------
        str
            Legal resource name that is not in use by another volume.
        """
        try:
            name = canonicalize(suggested_name)
        except ResourceNameError as e:
            fallback = self._fallback_name()
            self._logger.info(
                "Using generated resource name",
                volume_name=suggested_name,
                resource=fallback,
                reason=str(e),
            )
            return fallback

        try:
            volumes = await self._list_volumes()
        except (CodecError, LinstorApiError) as e:
            fallback = self._fallback_name()
            self._logger.warning(
                "Cannot check for existing resource, using generated name",
                volume_name=suggested_name,
                resource=fallback,
                error=f"{type(e).__name__}: {e!s}",
            )
            return fallback

        for definition, volume in volumes:
            matched = definition.name == name
            matched |= volume is not None and volume.id == name
            if not matched:
                continue
            if volume is None or volume.name != suggested_name:
                fallback = self._fallback_name()
                self._logger.info(
                    "Resource name already in use, using generated name",
                    volume_name=suggested_name,
                    resource=fallback,
                    conflict=name,
                )
                return fallback
        return name

    async def create(self, volume: Volume) -> None:
        """Create a volume and place its replicas.

        Parameters
        ----------
        volume
            Volume to create. Its ID must be a legal resource name.

        Raises
        ------
        LinstorApiError
            Raised if the controller rejects the request.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._logger.info("Creating volume", volume=volume.model_dump())
        config = self._builder.build(volume)
        await self._linstor.create_and_assign(config)

    async def delete(self, volume: Volume) -> None:
        """Delete a volume and all of its assignments.

        Parameters
        ----------
        volume
            Volume to delete.

        Raises
        ------
        LinstorApiError
            Raised if the controller rejects the request.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._logger.info("Deleting volume", volume=volume.model_dump())
        config = self._builder.build(volume)
        await self._linstor.delete(config)

    async def attach(self, volume: Volume, node: str) -> None:
        """Make a volume available on a node.

        This always creates a diskless assignment on the node. Diskful
        replicas are only placed when the volume is created.

        Parameters
        ----------
        volume
            Volume to attach.
        node
            Node on which the volume is needed.

        Raises
        ------
        LinstorApiError
            Raised if the controller rejects the request.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._logger.info(
            "Attaching volume", volume=volume.model_dump(), target_node=node
        )
        config = self._builder.build_attachment(volume, node)
        await self._linstor.assign(config)

    async def detach(self, volume: Volume, node: str) -> None:
        """Remove a volume from a node.

        Parameters
        ----------
        volume
            Volume to detach.
        node
            Node from which to remove it.

        Raises
        ------
        LinstorApiError
            Raised if the controller rejects the request.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._logger.info(
            "Detaching volume", volume=volume.model_dump(), target_node=node
        )
        config = self._builder.build(volume)
        await self._linstor.unassign(config, node)

    async def get_assignment_on_node(
        self, volume: Volume, node: str
    ) -> Assignment:
        """Get the assignment of a volume on a node.

        Parameters
        ----------
        volume
            Volume to look up.
        node
            Node on which the volume is assigned.

        Returns
        -------
        Assignment
            Assignment including the device path on that node.

        Raises
        ------
        LinstorApiError
            Raised if the volume has no device on that node or the controller
            cannot be queried.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._logger.debug(
            "Getting assignment info",
            volume=volume.model_dump(),
            target_node=node,
        )
        config = self._builder.build(volume)
        path = await self._linstor.get_device_path(config, node, diskful=False)
        assignment = Assignment(volume=volume, node=node, path=path)
        self._logger.debug(
            "Found assignment info", volume_id=volume.id, node=node, path=path
        )
        return assignment

    async def mount(
        self,
        volume: Volume,
        source: str,
        target: str,
        fs_type: str,
        options: list[str],
    ) -> None:
        """Format a device if needed and mount it.

        Parameters
        ----------
        volume
            Volume being mounted.
        source
            Device path of the volume.
        target
            Mount point.
        fs_type
            Filesystem type requested by the caller. A ``filesystem``
            parameter on the volume takes precedence.
        options
            Mount options requested by the caller. The ``mountOpts``
            parameter of the volume, if set, is appended.

        Raises
        ------
        FilesystemError
            Raised if formatting or mounting fails.
        ParameterError
            Raised if a volume parameter cannot be parsed.
        """
        self._builder.build(volume)
        self._logger.info(
            "Mounting volume",
            volume=volume.model_dump(),
            source=source,
            target=target,
        )
        mount_opts = list(options)
        if volume_opts := volume.parameters.get(ParameterKey.MOUNT_OPTS):
            mount_opts.append(volume_opts)
        parameter_fs_type = volume.get_parameter(ParameterKey.FILESYSTEM)
        if parameter_fs_type is not None:
            fs_type = parameter_fs_type
        fs_opts = volume.parameters.get(ParameterKey.FS_OPTS, "")
        self._logger.debug(
            "Configured mount",
            fs_type=fs_type,
            mount_opts=mount_opts,
            fs_opts=fs_opts,
        )

        await self._filesystem.safe_format(source, fs_type, fs_opts)
        await self._filesystem.mount(
            source, target, fs_type, ",".join(mount_opts)
        )

    async def unmount(self, target: str) -> None:
        """Unmount a volume.

        Parameters
        ----------
        target
            Mount point.

        Raises
        ------
        FilesystemError
            Raised if the unmount fails.
        """
        self._logger.info("Unmounting volume", target=target)
        await self._filesystem.unmount(target)

    async def node_available(self, node: str) -> bool:
        """Check whether a node can receive volumes.

        Parameters
        ----------
        node
            Name of the node.

        Returns
        -------
        bool
            `False` if the controller does not know the node or reports it
            offline, `True` otherwise.

        Raises
        ------
        LinstorApiError
            Raised if the controller cannot be queried.
        """
        linstor_node = await self._linstor.get_node(node)
        if linstor_node is None:
            return False
        return linstor_node.connection_status != NodeConnectionStatus.OFFLINE

    def _fallback_name(self) -> str:
        return self._fallback_prefix + self._id_factory()

    async def _list_volumes(
        self,
    ) -> list[tuple[ResourceDefinition, Volume | None]]:
        definitions = await self._linstor.list_resource_definitions()
        return [
            (d, self._codec.decode_resource_definition(d)) for d in definitions
        ]
