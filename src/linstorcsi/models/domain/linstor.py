"""Data types for interacting with the LINSTOR controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "ApiCallResult",
    "DeploymentConfig",
    "LinstorNode",
    "NodeConnectionStatus",
    "ResourceDefinition",
    "ResourceFlag",
    "ResourceVolume",
]


API_ERROR_MASK = 0xC000000000000000
"""Bits of a LINSTOR return code that mark the result as an error."""


class NodeConnectionStatus(StrEnum):
    """Connection status of a LINSTOR satellite as seen by the controller."""

    OFFLINE = "OFFLINE"
    CONNECTED = "CONNECTED"
    ONLINE = "ONLINE"
    VERSION_MISMATCH = "VERSION_MISMATCH"
    FULL_SYNC_FAILED = "FULL_SYNC_FAILED"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    UNKNOWN = "UNKNOWN"
    HOSTNAME_MISMATCH = "HOSTNAME_MISMATCH"
    OTHER_CONTROLLER = "OTHER_CONTROLLER"
    AUTHENTICATED = "AUTHENTICATED"
    NO_STLT_CONN = "NO_STLT_CONN"


class ResourceFlag(StrEnum):
    """Resource flags set by the translation layer."""

    DISKLESS = "DISKLESS"


@dataclass
class DeploymentConfig:
    """Everything LINSTOR needs to deploy the resource behind a volume."""

    name: str
    """LINSTOR resource name."""

    size_kib: int
    """Size of the single volume of the resource, in KiB."""

    node_list: list[str] = field(default_factory=list)
    """Nodes that get a diskful replica."""

    client_list: list[str] = field(default_factory=list)
    """Nodes that get a diskless assignment."""

    layer_list: list[str] = field(default_factory=list)
    """Device layer stack, top first, such as ``drbd storage``."""

    replicas_on_same: list[str] = field(default_factory=list)
    """Auto-placement: node properties that all replicas must share."""

    replicas_on_different: list[str] = field(default_factory=list)
    """Auto-placement: node properties that all replicas must differ in."""

    storage_pool: str | None = None
    """Storage pool for diskful replicas."""

    diskless_storage_pool: str | None = None
    """Storage pool for diskless assignments."""

    auto_place: int = 0
    """Number of replicas to place automatically, or 0 to disable."""

    do_not_place_with_regex: str | None = None
    """Auto-placement: avoid nodes holding resources matching this regex."""

    encryption: bool = False
    """Whether the volume is encrypted."""

    annotations: dict[str, str] = field(default_factory=dict)
    """Annotations stored as auxiliary resource definition properties."""


class ApiCallResult(BaseModel):
    """One entry of the result list returned by mutating LINSTOR calls."""

    model_config = ConfigDict(extra="ignore")

    ret_code: Annotated[int, Field(title="Return code")]

    message: Annotated[str, Field(title="Message")] = ""

    cause: Annotated[str | None, Field(title="Cause")] = None

    details: Annotated[str | None, Field(title="Details")] = None

    @property
    def is_error(self) -> bool:
        """Whether this result reports a failure."""
        return (self.ret_code & API_ERROR_MASK) == API_ERROR_MASK


class LinstorNode(BaseModel):
    """A LINSTOR node, with only the fields used here."""

    model_config = ConfigDict(extra="ignore")

    name: Annotated[str, Field(title="Node name")]

    connection_status: Annotated[
        NodeConnectionStatus, Field(title="Connection status")
    ] = NodeConnectionStatus.UNKNOWN


class ResourceDefinition(BaseModel):
    """A LINSTOR resource definition as returned by the listing call."""

    model_config = ConfigDict(extra="ignore")

    name: Annotated[str, Field(title="Resource name")]

    props: Annotated[
        dict[str, str], Field(title="Resource definition properties")
    ] = {}


class ResourceVolume(BaseModel):
    """A volume of a resource deployed on a particular node."""

    model_config = ConfigDict(extra="ignore")

    volume_number: Annotated[int, Field(title="Volume number")] = 0

    device_path: Annotated[str | None, Field(title="Device path")] = None

    provider_kind: Annotated[str | None, Field(title="Storage provider")] = (
        None
    )

    flags: Annotated[list[str], Field(title="Volume flags")] = []

    @property
    def is_diskless(self) -> bool:
        """Whether the volume on this node has no local storage."""
        return self.provider_kind == "DISKLESS"
