"""Storage of volume records in LINSTOR resource definition annotations."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from ..constants import AUX_PROPERTY_PREFIX
from ..exceptions import CodecError
from ..models.domain.linstor import ResourceDefinition
from ..models.domain.volume import Volume

__all__ = ["VolumeCodec"]


class VolumeCodec:
    """Convert volumes to and from their annotation representation.

    The annotation is the only place volume metadata is persisted, so a
    volume can be recovered from LINSTOR with nothing but a listing of
    resource definitions.

    Parameters
    ----------
    annotations_key
        Key of the annotation holding the serialized volume. The stored
        property name carries the LINSTOR auxiliary property prefix.
    logger
        Logger for debug messages.
    """

    def __init__(self, annotations_key: str, logger: BoundLogger) -> None:
        self._key = annotations_key
        self._logger = logger

    @property
    def annotations_key(self) -> str:
        """Key of the annotation holding the serialized volume."""
        return self._key

    @property
    def property_key(self) -> str:
        """Name of the resource definition property holding the volume."""
        return AUX_PROPERTY_PREFIX + self._key

    def encode(self, volume: Volume) -> str:
        """Serialize a volume into an annotation value."""
        return volume.model_dump_json(by_alias=True)

    def decode(
        self, props: Mapping[str, str], *, resource: str | None = None
    ) -> Volume | None:
        """Recover a volume from resource definition properties.

        Parameters
        ----------
        props
            Properties of a LINSTOR resource definition.
        resource
            Name of the resource definition, used only for error reporting.

        Returns
        -------
        Volume or None
            The stored volume, or `None` if there is no annotation, which
            means the resource was not created by this system.

        Raises
        ------
        CodecError
            Raised if the annotation is present but cannot be parsed or does
            not contain a volume name.
        """
        annotation = props.get(self.property_key)
        if annotation is None:
            return None
        try:
            volume = Volume.model_validate_json(annotation)
        except ValidationError as e:
            msg = f"Failed to unmarshal annotations: {e!s}"
            raise CodecError(
                msg, resource=resource, annotation=annotation
            ) from e
        if not volume.name:
            msg = "Failed to extract volume name from annotations"
            raise CodecError(msg, resource=resource, annotation=annotation)
        return volume

    def decode_resource_definition(
        self, resource_definition: ResourceDefinition
    ) -> Volume | None:
        """Recover a volume from a LINSTOR resource definition.

        Parameters
        ----------
        resource_definition
            Resource definition from the LINSTOR listing.

        Returns
        -------
        Volume or None
            The stored volume, or `None` if the resource definition was not
            created by this system.

        Raises
        ------
        CodecError
            Raised if the annotation is present but invalid.
        """
        name = resource_definition.name
        volume = self.decode(resource_definition.props, resource=name)
        if volume:
            self._logger.debug(
                "Converted resource definition to volume",
                resource=name,
                volume=volume.model_dump(),
            )
        return volume
