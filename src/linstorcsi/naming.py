"""Derivation of legal LINSTOR resource names."""

from __future__ import annotations

import re

from .constants import (
    RESERVED_RESOURCE_NAMES,
    RESOURCE_NAME_PATTERN,
    RESOURCE_NAME_PREFIX,
)
from .exceptions import ResourceNameError

__all__ = ["canonicalize", "validate_resource_name"]

_ALPHA_REGEX = re.compile("[A-Za-z]")
_ILLEGAL_CHARACTER_REGEX = re.compile(r"[^A-Za-z0-9\-_]")
_RESOURCE_NAME_REGEX = re.compile(RESOURCE_NAME_PATTERN)


def validate_resource_name(name: str) -> None:
    """Check that a string is a valid LINSTOR resource name.

    Parameters
    ----------
    name
        Candidate resource name.

    Raises
    ------
    ResourceNameError
        Raised if the name is reserved, has no alphabetic character, or does
        not match the resource name pattern.
    """
    if name in RESERVED_RESOURCE_NAMES:
        raise ResourceNameError(name, "reserved by LINSTOR")
    if not _ALPHA_REGEX.search(name):
        raise ResourceNameError(name, "no alphabetic (A-Za-z) character")
    if not _RESOURCE_NAME_REGEX.match(name):
        msg = f"does not match {RESOURCE_NAME_PATTERN}"
        raise ResourceNameError(name, msg)


def _is_valid(name: str) -> bool:
    try:
        validate_resource_name(name)
    except ResourceNameError:
        return False
    return True


def canonicalize(name: str) -> str:
    """Turn an arbitrary name into a legal LINSTOR resource name.

    A name that is already legal is returned unchanged, so applying this
    function to its own output is a no-op. Otherwise, illegal characters are
    replaced with underscores and, if that is still not enough, a fixed
    prefix is added.

    The result tries to stay close to the input but is neither injective
    (``a.b`` and ``a_b`` produce the same name) nor guaranteed to be stable
    across releases. Store the output rather than recomputing it.

    Parameters
    ----------
    name
        Any string, such as a volume name chosen by a user.

    Returns
    -------
    str
        Legal resource name.

    Raises
    ------
    ResourceNameError
        Raised if the name is empty or reserved, or if no legal name could
        be derived, such as for names longer than LINSTOR permits.
    """
    if not name:
        raise ResourceNameError(name, "empty name")
    if name in RESERVED_RESOURCE_NAMES:
        raise ResourceNameError(name, "reserved by LINSTOR")
    if _is_valid(name):
        return name

    candidate = _ILLEGAL_CHARACTER_REGEX.sub("_", name)
    if _is_valid(candidate):
        return candidate

    candidate = RESOURCE_NAME_PREFIX + candidate
    if _is_valid(candidate):
        return candidate

    raise ResourceNameError(name, "cannot derive a legal resource name")
