"""Test unit conversions."""

from __future__ import annotations

import pytest

from linstorcsi.exceptions import CapacityError
from linstorcsi.units import allocation_size_kib, bytes_to_kib, size_to_bytes


def test_allocation_size_kib() -> None:
    assert allocation_size_kib(1025) == 4
    assert allocation_size_kib(4097) == 5
    assert allocation_size_kib(100 * 1024 + 1) == 101
    assert allocation_size_kib(100, 4096) == 4
    assert allocation_size_kib(0) == 4
    assert allocation_size_kib(10 * 1024 * 1024 * 1024) == 10 * 1024 * 1024
    assert allocation_size_kib(8192, 8192) == 8


def test_allocation_size_over_limit() -> None:
    with pytest.raises(CapacityError) as excinfo:
        allocation_size_kib(5000, 4096)
    assert excinfo.value.allocated_kib == 5
    assert excinfo.value.required_bytes == 5000
    assert excinfo.value.limit_bytes == 4096

    with pytest.raises(CapacityError) as excinfo:
        allocation_size_kib(0, 100)
    assert "minimum volume size" in str(excinfo.value)
    assert excinfo.value.allocated_kib is None


def test_bytes_to_kib() -> None:
    assert bytes_to_kib(0) == 0
    assert bytes_to_kib(1) == 1
    assert bytes_to_kib(1024) == 1
    assert bytes_to_kib(1025) == 2
    assert bytes_to_kib(1024 * 1024) == 1024


def test_size_to_bytes() -> None:
    assert size_to_bytes("4096") == 4096
    assert size_to_bytes("12Ki") == 12 * 1024
    assert size_to_bytes("12MiB") == 12 * 1024 * 1024
    assert size_to_bytes("1Gi") == 1024 * 1024 * 1024

    with pytest.raises(ValueError, match="not a valid"):
        size_to_bytes("nope")


def test_allocation_size_large() -> None:
    required = 2**53 + 1
    assert allocation_size_kib(required) == 2**43 + 1
    assert allocation_size_kib(required) * 1024 >= required
    assert allocation_size_kib(2**62 - 1) == 2**52
    assert allocation_size_kib(required, 2**53 + 1024) == 2**43 + 1

    with pytest.raises(CapacityError) as excinfo:
        allocation_size_kib(required, 2**53)
    assert excinfo.value.allocated_kib == 2**43 + 1
