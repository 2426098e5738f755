"""Unit conversions between requested bytes and LINSTOR allocations."""

from __future__ import annotations

import bitmath

from .constants import MINIMUM_VOLUME_SIZE
from .exceptions import CapacityError

__all__ = [
    "allocation_size_kib",
    "bytes_to_kib",
    "size_to_bytes",
]


def allocation_size_kib(required_bytes: int, limit_bytes: int = 0) -> int:
    """Return the smallest number of KiB that can hold the required bytes.

    LINSTOR allocates volumes in whole KiB and refuses to create volumes
    smaller than `~linstorcsi.constants.MINIMUM_VOLUME_SIZE`, so the request
    is raised to that minimum and then rounded up. For example, 5000 bytes
    require 5 KiB. The arithmetic is done on integers so that sizes beyond
    the precision of a float are never rounded down.

    Parameters
    ----------
    required_bytes
        Number of bytes the volume must be able to hold.
    limit_bytes
        Maximum size of the volume in bytes, or 0 for no limit.

    Returns
    -------
    int
        Allocation size in KiB.

    Raises
    ------
    CapacityError
        Raised if the LINSTOR minimum volume size exceeds the limit, or if
        the rounded allocation exceeds the limit. In the latter case the
        exception carries the rounded allocation in ``allocated_kib``.
    """
    unlimited = limit_bytes == 0
    if not unlimited and MINIMUM_VOLUME_SIZE > limit_bytes:
        msg = (
            "LINSTOR's minimum volume size exceeds the maximum size limit of"
            " the requested volume"
        )
        raise CapacityError(
            msg, required_bytes=required_bytes, limit_bytes=limit_bytes
        )

    allocated_kib = bytes_to_kib(max(required_bytes, MINIMUM_VOLUME_SIZE))
    if not unlimited and allocated_kib * 1024 > limit_bytes:
        allocated = bitmath.KiB(allocated_kib).best_prefix()
        limit = bitmath.Byte(limit_bytes).best_prefix()
        msg = (
            f"Got request for {required_bytes} bytes of storage (needed to"
            f" allocate {allocated}), but size is limited to {limit}"
        )
        raise CapacityError(
            msg,
            required_bytes=required_bytes,
            limit_bytes=limit_bytes,
            allocated_kib=allocated_kib,
        )
    return allocated_kib


def bytes_to_kib(size_bytes: int) -> int:
    """Convert a volume size to KiB, rounding any partial KiB up.

    This is the plain conversion used when building a deployment from a
    volume that already exists. It applies neither the LINSTOR minimum nor a
    limit; use `allocation_size_kib` to validate a new request.

    Parameters
    ----------
    size_bytes
        Size in bytes.

    Returns
    -------
    int
        Size in KiB.
    """
    kib, remainder = divmod(size_bytes, 1024)
    if remainder:
        kib += 1
    return kib


def size_to_bytes(size: str) -> int:
    """Convert a human-readable size to a number of bytes.

    Parameters
    ----------
    size
        Size as a string, such as ``10Gi``, ``512MiB`` or ``4096``.

    Returns
    -------
    int
        Equivalent number of bytes.

    Raises
    ------
    ValueError
        Raised if the input string is not a valid size.
    """
    return int(bitmath.parse_string_unsafe(size).bytes)
