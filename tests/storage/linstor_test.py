"""Tests for the LINSTOR controller client."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
import respx
import structlog
from httpx import AsyncClient, ConnectError, Response

from linstorcsi.constants import ROOT_LOGGER
from linstorcsi.exceptions import LinstorApiError
from linstorcsi.models.domain.linstor import (
    ApiCallResult,
    DeploymentConfig,
    NodeConnectionStatus,
)
from linstorcsi.storage.linstor import LinstorStorageClient

from ..support.constants import TEST_LINSTOR_URL
from ..support.linstor import ERROR_RET_CODE, SUCCESS_RET_CODE

RD_URL = f"{TEST_LINSTOR_URL}/v1/resource-definitions"


@pytest_asyncio.fixture
async def client() -> AsyncIterator[LinstorStorageClient]:
    logger = structlog.get_logger(ROOT_LOGGER)
    async with AsyncClient() as http_client:
        yield LinstorStorageClient(TEST_LINSTOR_URL + "/", http_client, logger)


def test_api_call_result() -> None:
    assert ApiCallResult(ret_code=ERROR_RET_CODE).is_error
    assert ApiCallResult(ret_code=0xC000000000000001).is_error
    assert not ApiCallResult(ret_code=SUCCESS_RET_CODE).is_error
    assert not ApiCallResult(ret_code=0x4000000000000001).is_error
    assert not ApiCallResult(ret_code=0).is_error


@pytest.mark.asyncio
async def test_list(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    respx_mock.get(RD_URL).mock(
        return_value=Response(
            200,
            json=[
                {"name": "pvc-1", "props": {"Aux/key": "value"}, "flags": []},
                {"name": "other", "uuid": "1234"},
            ],
        )
    )
    definitions = await client.list_resource_definitions()
    assert [d.name for d in definitions] == ["pvc-1", "other"]
    assert definitions[0].props == {"Aux/key": "value"}
    assert definitions[1].props == {}


@pytest.mark.asyncio
async def test_list_errors(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    route = respx_mock.get(RD_URL)

    route.mock(return_value=Response(500, text="Internal error"))
    with pytest.raises(LinstorApiError) as excinfo:
        await client.list_resource_definitions()
    assert excinfo.value.status == 500
    assert excinfo.value.method == "GET"
    assert excinfo.value.url == RD_URL
    assert excinfo.value.body == "Internal error"

    route.mock(return_value=Response(200, json={"not": "a list"}))
    with pytest.raises(LinstorApiError, match="Cannot parse"):
        await client.list_resource_definitions()

    route.mock(side_effect=ConnectError)
    with pytest.raises(LinstorApiError, match="ConnectError"):
        await client.list_resource_definitions()


@pytest.mark.asyncio
async def test_error_results(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    results = [
        {"ret_code": SUCCESS_RET_CODE, "message": "Created"},
        {"ret_code": ERROR_RET_CODE, "message": "No space"},
        {"ret_code": ERROR_RET_CODE, "message": "Bad pool"},
    ]
    respx_mock.post(RD_URL).mock(return_value=Response(201, json=results))
    config = DeploymentConfig(name="pvc-1", size_kib=4)

    with pytest.raises(LinstorApiError) as excinfo:
        await client.create_and_assign(config)
    assert excinfo.value.method == "POST"
    assert "No space; Bad pool" in str(excinfo.value)


@pytest.mark.asyncio
async def test_delete(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    config = DeploymentConfig(name="pvc-1", size_kib=4)
    route = respx_mock.delete(f"{RD_URL}/pvc-1")

    route.mock(return_value=Response(404))
    await client.delete(config)

    route.mock(return_value=Response(200, json=[]))
    await client.delete(config)

    route.mock(return_value=Response(503))
    with pytest.raises(LinstorApiError) as excinfo:
        await client.delete(config)
    assert excinfo.value.status == 503
    assert excinfo.value.method == "DELETE"


@pytest.mark.asyncio
async def test_device_path(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    config = DeploymentConfig(name="pvc-1", size_kib=4)
    url = f"{RD_URL}/pvc-1/resources/node-a/volumes"
    volumes = [
        {
            "volume_number": 1,
            "device_path": "/dev/drbd1001",
            "provider_kind": "LVM",
        },
        {
            "volume_number": 0,
            "device_path": "/dev/drbd1000",
            "provider_kind": "DISKLESS",
        },
    ]
    respx_mock.get(url).mock(return_value=Response(200, json=volumes))

    path = await client.get_device_path(config, "node-a", diskful=False)
    assert path == "/dev/drbd1000"
    with pytest.raises(LinstorApiError, match="diskless"):
        await client.get_device_path(config, "node-a", diskful=True)


@pytest.mark.asyncio
async def test_get_node(
    client: LinstorStorageClient, respx_mock: respx.Router
) -> None:
    url = f"{TEST_LINSTOR_URL}/v1/nodes"
    node = {"name": "node-a", "connection_status": "ONLINE"}
    respx_mock.get(f"{url}/node-a").mock(return_value=Response(200, json=node))
    respx_mock.get(f"{url}/node-b").mock(return_value=Response(404))
    respx_mock.get(f"{url}/node-c").mock(
        return_value=Response(200, json={"name": "node-c"})
    )
    respx_mock.get(f"{url}/node-d").mock(return_value=Response(500))

    linstor_node = await client.get_node("node-a")
    assert linstor_node
    assert linstor_node.connection_status == NodeConnectionStatus.ONLINE
    assert await client.get_node("node-b") is None
    linstor_node = await client.get_node("node-c")
    assert linstor_node
    assert linstor_node.connection_status == NodeConnectionStatus.UNKNOWN
    with pytest.raises(LinstorApiError):
        await client.get_node("node-d")
