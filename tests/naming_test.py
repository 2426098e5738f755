"""Test derivation of LINSTOR resource names."""

from __future__ import annotations

import pytest

from linstorcsi.exceptions import ResourceNameError
from linstorcsi.naming import canonicalize, validate_resource_name


def test_validate() -> None:
    validate_resource_name("pvc-1234")
    validate_resource_name("_x")
    validate_resource_name("A" * 48)

    with pytest.raises(ResourceNameError, match="reserved"):
        validate_resource_name("all")
    with pytest.raises(ResourceNameError, match="alphabetic"):
        validate_resource_name("1234")
    with pytest.raises(ResourceNameError, match="alphabetic"):
        validate_resource_name("")
    with pytest.raises(ResourceNameError, match="does not match"):
        validate_resource_name("a")
    with pytest.raises(ResourceNameError, match="does not match"):
        validate_resource_name("1abc")
    with pytest.raises(ResourceNameError, match="does not match"):
        validate_resource_name("A" * 49)
    with pytest.raises(ResourceNameError, match="does not match"):
        validate_resource_name("my.volume")


def test_canonicalize() -> None:
    assert canonicalize("pvc-1234") == "pvc-1234"
    assert canonicalize("my.volume!name") == "my_volume_name"
    assert canonicalize("1") == "LS_1"
    assert canonicalize("1.5") == "LS_1_5"
    assert canonicalize("x") == "LS_x"


def test_canonicalize_idempotent() -> None:
    for name in ("pvc-1234", "my.volume!name", "1", "x", "a b c"):
        canonical = canonicalize(name)
        validate_resource_name(canonical)
        assert canonicalize(canonical) == canonical


def test_canonicalize_failure() -> None:
    with pytest.raises(ResourceNameError, match="empty"):
        canonicalize("")
    with pytest.raises(ResourceNameError, match="reserved"):
        canonicalize("all")
    with pytest.raises(ResourceNameError):
        canonicalize("a" * 49)
    with pytest.raises(ResourceNameError):
        canonicalize("1" * 46)
