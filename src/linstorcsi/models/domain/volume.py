"""Models for volumes and their assignments to nodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "Assignment",
    "Volume",
]


class Volume(BaseModel):
    """A volume as seen by the storage orchestration API.

    This record is serialized into an annotation on the LINSTOR resource
    definition when the volume is created and is recovered from there on
    lookup, so the serialized field names are part of the stored format and
    must not change.
    """

    model_config = ConfigDict(extra="ignore", validate_by_name=True)

    id: Annotated[
        str,
        Field(
            title="Volume ID",
            description=(
                "LINSTOR resource name of the volume. Must be a legal LINSTOR"
                " resource name when the volume is created."
            ),
            alias="ID",
        ),
    ]

    name: Annotated[
        str,
        Field(
            title="Volume name",
            description="Name requested by the caller, kept verbatim",
            alias="Name",
        ),
    ]

    size_bytes: Annotated[
        int,
        Field(
            title="Requested size",
            description=(
                "Size in bytes agreed with the caller. The allocated size may"
                " be larger."
            ),
            alias="SizeBytes",
            ge=0,
        ),
    ] = 0

    parameters: Annotated[
        dict[str, str],
        Field(
            title="Volume parameters",
            description=(
                "Opaque configuration directives such as placement rules,"
                " storage pool, filesystem options and encryption"
            ),
            alias="Parameters",
        ),
    ] = {}

    @field_validator("parameters", mode="before")
    @classmethod
    def _validate_parameters(cls, v: Any) -> Any:
        # Annotations written by the Go driver store a missing map as null.
        return {} if v is None else v

    def get_parameter(self, key: str) -> str | None:
        """Look up a parameter ignoring the case of its key.

        Parameters
        ----------
        key
            Parameter key in any case.

        Returns
        -------
        str or None
            Value of the first parameter whose key matches, or `None`.
        """
        key = key.lower()
        for parameter, value in self.parameters.items():
            if parameter.lower() == key:
                return value
        return None


@dataclass
class Assignment:
    """Binding of a volume to a node, recomputed on demand."""

    volume: Volume
    """Volume that is assigned."""

    node: str
    """Name of the node the volume is assigned to."""

    path: str
    """Device path of the volume on that node."""
