"""Client for the LINSTOR controller REST API."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from httpx import AsyncClient, HTTPError, Response
from pydantic import TypeAdapter, ValidationError
from structlog.stdlib import BoundLogger

from ..constants import AUX_PROPERTY_PREFIX
from ..exceptions import LinstorApiError
from ..models.domain.linstor import (
    ApiCallResult,
    DeploymentConfig,
    LinstorNode,
    ResourceDefinition,
    ResourceFlag,
    ResourceVolume,
)

__all__ = ["LinstorStorageClient"]

_API_RESULTS = TypeAdapter(list[ApiCallResult])
_RESOURCE_DEFINITIONS = TypeAdapter(list[ResourceDefinition])
_RESOURCE_VOLUMES = TypeAdapter(list[ResourceVolume])


class LinstorStorageClient:
    """Issue resource operations against a LINSTOR controller.

    Every method performs one or more blocking request/response exchanges
    with the controller and keeps no state between calls.

    Parameters
    ----------
    base_url
        Base URL of the LINSTOR controller, such as
        ``http://linstor-controller:3370``.
    http_client
        Client to use to make requests.
    logger
        Logger for log messages.
    """

    def __init__(
        self, base_url: str, http_client: AsyncClient, logger: BoundLogger
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client
        self._logger = logger

    async def create_and_assign(self, config: DeploymentConfig) -> None:
        """Create the resource and place its replicas.

        Creates the resource definition carrying the annotations as
        auxiliary properties and its single volume definition, then assigns
        the resource as described by the configuration.

        Parameters
        ----------
        config
            Deployment configuration of the resource.

        Raises
        ------
        LinstorApiError
            Raised if any call to the controller fails.
        """
        props = {
            AUX_PROPERTY_PREFIX + k: v for k, v in config.annotations.items()
        }
        body: dict[str, Any] = {
            "resource_definition": {"name": config.name, "props": props}
        }
        await self._post("/v1/resource-definitions", body)
        self._logger.debug("Created resource definition", resource=config.name)

        volume_definition: dict[str, Any] = {"size_kib": config.size_kib}
        if config.encryption:
            volume_definition["flags"] = ["ENCRYPTED"]
        body = {"volume_definition": volume_definition}
        await self._post(self._path(config.name, "volume-definitions"), body)
        self._logger.debug(
            "Created volume definition",
            resource=config.name,
            size_kib=config.size_kib,
            encryption=config.encryption,
        )

        await self.assign(config)

    async def assign(self, config: DeploymentConfig) -> None:
        """Deploy the resource on the nodes named by the configuration.

        Auto-placement runs first if requested, then diskful replicas are
        created on ``node_list`` and diskless assignments on
        ``client_list``.

        Parameters
        ----------
        config
            Deployment configuration of the resource.

        Raises
        ------
        LinstorApiError
            Raised if any call to the controller fails.
        """
        if config.auto_place > 0:
            await self._autoplace(config)
        resources = [
            self._build_resource(config, node, diskless=False)
            for node in config.node_list
        ]
        resources.extend(
            self._build_resource(config, node, diskless=True)
            for node in config.client_list
        )
        if resources:
            path = self._path(config.name, "resources")
            await self._post(path, resources)
            self._logger.debug(
                "Assigned resource",
                resource=config.name,
                nodes=config.node_list,
                clients=config.client_list,
            )

    async def delete(self, config: DeploymentConfig) -> None:
        """Delete the resource definition and all its resources.

        Deleting a resource that does not exist is not an error.

        Parameters
        ----------
        config
            Deployment configuration of the resource.

        Raises
        ------
        LinstorApiError
            Raised if the call to the controller fails.
        """
        await self._delete(self._path(config.name))

    async def unassign(self, config: DeploymentConfig, node: str) -> None:
        """Remove the resource from one node.

        Removing a resource from a node that does not have it is not an
        error.

        Parameters
        ----------
        config
            Deployment configuration of the resource.
        node
            Node from which to remove the resource.

        Raises
        ------
        LinstorApiError
            Raised if the call to the controller fails.
        """
        await self._delete(self._path(config.name, "resources", node))

    async def list_resource_definitions(self) -> list[ResourceDefinition]:
        """List all resource definitions known to the controller.

        Returns
        -------
        list of ResourceDefinition
            All resource definitions, whether created by us or not.

        Raises
        ------
        LinstorApiError
            Raised if the call to the controller fails.
        """
        url = self._base_url + "/v1/resource-definitions"
        r = await self._get(url)
        try:
            definitions = _RESOURCE_DEFINITIONS.validate_json(r.content)
        except ValidationError as e:
            msg = f"Cannot parse resource definitions: {e!s}"
            raise LinstorApiError(msg, method="GET", url=url) from e
        self._logger.debug(
            f"Listed {len(definitions)} resource definitions",
            count=len(definitions),
        )
        return definitions

    async def get_device_path(
        self, config: DeploymentConfig, node: str, *, diskful: bool
    ) -> str:
        """Get the device path of the resource on a node.

        Parameters
        ----------
        config
            Deployment configuration of the resource.
        node
            Node on which the resource is deployed.
        diskful
            If `True`, the resource must have local storage on that node.

        Returns
        -------
        str
            Path of the block device for the first volume of the resource.

        Raises
        ------
        LinstorApiError
            Raised if the call fails, the resource has no volume on that
            node, or the volume is diskless when local storage is required.
        """
        path = self._path(config.name, "resources", node, "volumes")
        url = self._base_url + path
        r = await self._get(url)
        try:
            volumes = _RESOURCE_VOLUMES.validate_json(r.content)
        except ValidationError as e:
            msg = f"Cannot parse volumes of {config.name} on {node}: {e!s}"
            raise LinstorApiError(msg, method="GET", url=url) from e
        volumes.sort(key=lambda v: v.volume_number)
        if not volumes or not volumes[0].device_path:
            msg = f"Resource {config.name} has no device on node {node}"
            raise LinstorApiError(msg, method="GET", url=url)
        if diskful and volumes[0].is_diskless:
            msg = f"Resource {config.name} is diskless on node {node}"
            raise LinstorApiError(msg, method="GET", url=url)
        return volumes[0].device_path

    async def get_node(self, node: str) -> LinstorNode | None:
        """Get a node from the controller.

        Parameters
        ----------
        node
            Name of the node.

        Returns
        -------
        LinstorNode or None
            The node, or `None` if the controller does not know it.

        Raises
        ------
        LinstorApiError
            Raised if the call to the controller fails.
        """
        url = self._base_url + f"/v1/nodes/{quote(node, safe='')}"
        r = await self._get(url, allow_missing=True)
        if r.status_code == 404:
            return None
        try:
            return LinstorNode.model_validate_json(r.content)
        except ValidationError as e:
            msg = f"Cannot parse node {node}: {e!s}"
            raise LinstorApiError(msg, method="GET", url=url) from e

    async def _autoplace(self, config: DeploymentConfig) -> None:
        select_filter: dict[str, Any] = {"place_count": config.auto_place}
        if config.storage_pool:
            select_filter["storage_pool"] = config.storage_pool
        if config.replicas_on_same:
            select_filter["replicas_on_same"] = config.replicas_on_same
        if config.replicas_on_different:
            select_filter["replicas_on_different"] = (
                config.replicas_on_different
            )
        if config.do_not_place_with_regex:
            select_filter["not_place_with_rsc_regex"] = (
                config.do_not_place_with_regex
            )
        if config.layer_list:
            select_filter["layer_stack"] = config.layer_list
        body: dict[str, Any] = {"select_filter": select_filter}
        if config.layer_list:
            body["layer_list"] = config.layer_list
        await self._post(self._path(config.name, "autoplace"), body)
        self._logger.debug(
            "Auto-placed resource",
            resource=config.name,
            place_count=config.auto_place,
        )

    def _build_resource(
        self, config: DeploymentConfig, node: str, *, diskless: bool
    ) -> dict[str, Any]:
        resource: dict[str, Any] = {"node_name": node}
        if diskless:
            pool = config.diskless_storage_pool
        else:
            pool = config.storage_pool
        if pool:
            resource["props"] = {"StorPoolName": pool}
        if diskless:
            resource["flags"] = [ResourceFlag.DISKLESS.value]
        result: dict[str, Any] = {"resource": resource}
        if config.layer_list:
            result["layer_list"] = config.layer_list
        return result

    async def _delete(self, path: str) -> None:
        url = self._base_url + path
        try:
            r = await self._client.delete(url)
            if r.status_code == 404:
                self._logger.debug("Object already deleted", url=url)
                return
            r.raise_for_status()
        except HTTPError as e:
            raise LinstorApiError.from_exception(e) from e
        self._check_results(r, "DELETE", url)

    async def _get(self, url: str, *, allow_missing: bool = False) -> Response:
        try:
            r = await self._client.get(url)
            if not (allow_missing and r.status_code == 404):
                r.raise_for_status()
        except HTTPError as e:
            raise LinstorApiError.from_exception(e) from e
        return r

    async def _post(self, path: str, body: Any) -> None:
        url = self._base_url + path
        try:
            r = await self._client.post(url, json=body)
            r.raise_for_status()
        except HTTPError as e:
            raise LinstorApiError.from_exception(e) from e
        self._check_results(r, "POST", url)

    def _check_results(self, r: Response, method: str, url: str) -> None:
        """Raise an exception if any returned API call result is an error.

        LINSTOR may report failures inside a successful HTTP response, so the
        return codes have to be checked as well.
        """
        if not r.content:
            return
        try:
            results = _API_RESULTS.validate_json(r.content)
        except ValidationError as e:
            msg = f"Cannot parse response from LINSTOR: {e!s}"
            raise LinstorApiError(msg, method=method, url=url) from e
        errors = [result for result in results if result.is_error]
        if errors:
            msg = "; ".join(e.message for e in errors)
            raise LinstorApiError(
                f"LINSTOR reported errors: {msg}",
                method=method,
                url=url,
                body=r.text,
            )

    def _path(self, resource: str, *parts: str) -> str:
        escaped = [quote(p, safe="") for p in (resource, *parts)]
        return "/v1/resource-definitions/" + "/".join(escaped)
