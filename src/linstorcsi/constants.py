"""Global constants."""

from datetime import timedelta
from pathlib import Path

__all__ = [
    "ALERT_HOOK_ENV_VAR",
    "ANNOTATIONS_KEY",
    "AUX_PROPERTY_PREFIX",
    "CONFIG_FILE",
    "CONFIG_FILE_ENV_VAR",
    "ENV_PREFIX",
    "FALLBACK_PREFIX",
    "LINSTOR_REQUEST_TIMEOUT",
    "MINIMUM_VOLUME_SIZE",
    "RESERVED_RESOURCE_NAMES",
    "RESOURCE_NAME_PATTERN",
    "RESOURCE_NAME_PREFIX",
    "ROOT_LOGGER",
    "ParameterKey",
]

ANNOTATIONS_KEY = "csi-volume-annotations"
"""Default key under which the serialized volume is stored."""

AUX_PROPERTY_PREFIX = "Aux/"
"""Namespace LINSTOR reserves for user-defined properties.

Annotations are written as resource definition properties under this prefix,
so the stored key is ``Aux/csi-volume-annotations`` by default.
"""

CONFIG_FILE = Path("/etc/linstor-csi/config.yaml")
"""Default path to the configuration file."""

ENV_PREFIX = "LINSTOR_CSI_"
"""Prefix for environment variables that override configuration."""

ALERT_HOOK_ENV_VAR = f"{ENV_PREFIX}ALERT_HOOK"
"""Environment variable holding the Slack webhook for alerts."""

CONFIG_FILE_ENV_VAR = f"{ENV_PREFIX}CONFIG_FILE"
"""Environment variable overriding the configuration file path."""

FALLBACK_PREFIX = "csi-"
"""Prefix of generated resource names used when a name cannot be used."""

LINSTOR_REQUEST_TIMEOUT = timedelta(seconds=60)
"""Default timeout for a single call to the LINSTOR controller."""

MINIMUM_VOLUME_SIZE = 4096
"""Smallest volume, in bytes, that LINSTOR will allocate."""

RESERVED_RESOURCE_NAMES = frozenset({"all"})
"""Resource names LINSTOR refuses because they have special meaning."""

RESOURCE_NAME_PATTERN = r"^[A-Za-z_][A-Za-z0-9\-_]{1,47}$"
"""Pattern every LINSTOR resource name must match."""

RESOURCE_NAME_PREFIX = "LS_"
"""Prefix used to turn an otherwise unusable name into a legal one."""

ROOT_LOGGER = "linstorcsi"
"""Name of the logger used for all log messages."""


class ParameterKey:
    """Volume parameter keys understood by the translation layer.

    All keys except `MOUNT_OPTS` and `FS_OPTS` are matched
    case-insensitively, so they are given here in lowercase. Those two are
    only read when mounting and must match exactly.
    """

    NODE_LIST = "nodelist"
    LAYER_LIST = "layerlist"
    CLIENT_LIST = "clientlist"
    REPLICAS_ON_SAME = "replicasonsame"
    REPLICAS_ON_DIFFERENT = "replicasondifferent"
    AUTO_PLACE = "autoplace"
    DO_NOT_PLACE_WITH_REGEX = "donotplacewithregex"
    SIZE_KIB = "sizekib"
    STORAGE_POOL = "storagepool"
    DISKLESS_STORAGE_POOL = "disklessstoragepool"
    ENCRYPTION = "encryption"
    BLOCK_SIZE = "blocksize"
    FORCE = "force"
    FILESYSTEM = "filesystem"
    MOUNT_OPTS = "mountOpts"
    FS_OPTS = "fsOpts"
