"""Unit tests for the API backed resource clients."""

import pytest
from unittest.mock import AsyncMock
from kubernetes_asyncio.client import ApiException, V1ObjectMeta, V1Service
from blockclaim.resources.base import compute_hash
from blockclaim.resources.core import DeploymentClient, ServiceClient
from blockclaim.resources.custom import GROUP, VERSION, BlockVolumeClient, VolumeClaimClient
from blockclaim.utils.patch import PatchType
from tests.unit.conftest import api_error, make_claim

TARGET = dict(group=GROUP, version=VERSION, namespace="default", plural="volumeclaims")


@pytest.fixture
def claim_client(api_client):
    client = VolumeClaimClient(api_client)
    client.api = AsyncMock()
    return client


class TestCustomResourceClient:
    """Tests for custom resource CRUD."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, claim_client):
        claim_client.api.get_namespaced_custom_object.side_effect = api_error(404, "NotFound")
        assert await claim_client.get("default", "data") is None

    @pytest.mark.asyncio
    async def test_get_other_errors_propagate(self, claim_client):
        claim_client.api.get_namespaced_custom_object.side_effect = api_error(403, "Forbidden")
        with pytest.raises(ApiException):
            await claim_client.get("default", "data")

    @pytest.mark.asyncio
    async def test_list_with_selector(self, claim_client):
        claim_client.api.list_namespaced_custom_object.return_value = {
            "items": [make_claim("a")]
        }
        items = await claim_client.list("default", {"blockclaim.io/volume": "a"})
        assert [i["metadata"]["name"] for i in items] == ["a"]
        claim_client.api.list_namespaced_custom_object.assert_awaited_once_with(
            **TARGET, label_selector="blockclaim.io/volume=a"
        )

    @pytest.mark.asyncio
    async def test_list_across_namespaces(self, claim_client):
        claim_client.api.list_cluster_custom_object.return_value = {"items": []}
        assert await claim_client.list() == []
        claim_client.api.list_cluster_custom_object.assert_awaited_once_with(
            group=GROUP, version=VERSION, plural="volumeclaims"
        )

    @pytest.mark.asyncio
    async def test_update_writes_status_subresource(self, claim_client):
        body = make_claim("data", status={"phase": "Bound"})
        replaced = dict(make_claim("data"), metadata={"name": "data", "resourceVersion": "7"})
        claim_client.api.replace_namespaced_custom_object.return_value = replaced
        claim_client.api.replace_namespaced_custom_object_status.return_value = body

        await claim_client.update(body)

        status_call = claim_client.api.replace_namespaced_custom_object_status.await_args
        assert status_call.kwargs["body"]["status"] == {"phase": "Bound"}
        assert status_call.kwargs["body"]["metadata"]["resourceVersion"] == "7"

    @pytest.mark.asyncio
    async def test_update_without_status_is_one_write(self, claim_client):
        claim_client.api.replace_namespaced_custom_object.return_value = make_claim("data")
        await claim_client.update(make_claim("data"))
        claim_client.api.replace_namespaced_custom_object_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_patch_status_subresource(self, claim_client):
        await claim_client.patch(
            "default", "data", b'{"status": {"capacity": "10G"}}', subresource="status"
        )
        claim_client.api.patch_namespaced_custom_object_status.assert_awaited_once_with(
            **TARGET,
            name="data",
            body={"status": {"capacity": "10G"}},
            _content_type=PatchType.MERGE,
        )

    @pytest.mark.asyncio
    async def test_json_patch(self, claim_client):
        await claim_client.patch(
            "default",
            "data",
            b'[{"op": "remove", "path": "/metadata/finalizers"}]',
            PatchType.JSON,
        )
        kwargs = claim_client.api.patch_namespaced_custom_object.await_args.kwargs
        assert kwargs["_content_type"] == PatchType.JSON
        assert kwargs["body"] == [{"op": "remove", "path": "/metadata/finalizers"}]

    @pytest.mark.asyncio
    async def test_unknown_subresource(self, claim_client):
        with pytest.raises(ValueError):
            await claim_client.patch("default", "data", b"{}", subresource="scale")

    @pytest.mark.asyncio
    async def test_delete_missing_is_ignored(self, claim_client):
        claim_client.api.delete_namespaced_custom_object.side_effect = api_error(404, "NotFound")
        await claim_client.delete("default", "data")

    @pytest.mark.asyncio
    async def test_plural_names(self, api_client):
        assert BlockVolumeClient(api_client).plural == "blockvolumes"
        assert VolumeClaimClient(api_client).api_version == "blockclaim.io/v1alpha1"


class TestGetOrCreate:
    """Tests for the shared get-or-create."""

    @pytest.mark.asyncio
    async def test_existing_object_is_returned(self, claim_client):
        claim_client.api.get_namespaced_custom_object.return_value = make_claim("data")
        obj, created = await claim_client.get_or_create(make_claim("data"))
        assert not created
        claim_client.api.create_namespaced_custom_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_object_is_created(self, claim_client):
        claim_client.api.get_namespaced_custom_object.side_effect = api_error(404, "NotFound")
        claim_client.api.create_namespaced_custom_object.return_value = make_claim("data")
        obj, created = await claim_client.get_or_create(make_claim("data"))
        assert created
        assert obj["metadata"]["name"] == "data"

    @pytest.mark.asyncio
    async def test_creation_race_rereads(self, claim_client):
        claim_client.api.get_namespaced_custom_object.side_effect = [
            api_error(404, "NotFound"),
            make_claim("data"),
        ]
        claim_client.api.create_namespaced_custom_object.side_effect = api_error(
            409, "AlreadyExists"
        )
        obj, created = await claim_client.get_or_create(make_claim("data"))
        assert not created
        assert obj["metadata"]["name"] == "data"


class TestCoreClients:
    """Tests for Service and Deployment clients."""

    @pytest.mark.asyncio
    async def test_service_results_are_dicts(self, api_client):
        client = ServiceClient(api_client)
        client.api = AsyncMock()
        client.api.read_namespaced_service.return_value = V1Service(
            metadata=V1ObjectMeta(name="data")
        )
        assert await client.get("default", "data") == {"metadata": {"name": "data"}}

    @pytest.mark.asyncio
    async def test_missing_deployment_returns_none(self, api_client):
        client = DeploymentClient(api_client)
        client.api = AsyncMock()
        client.api.read_namespaced_deployment.side_effect = api_error(404, "NotFound")
        assert await client.get("default", "data-target") is None

    @pytest.mark.asyncio
    async def test_deployment_delete_is_foreground(self, api_client):
        client = DeploymentClient(api_client)
        client.api = AsyncMock()
        await client.delete("default", "data-target")
        body = client.api.delete_namespaced_deployment.await_args.kwargs["body"]
        assert body.propagation_policy == "Foreground"

    @pytest.mark.asyncio
    async def test_dict_passthrough(self, api_client):
        client = ServiceClient(api_client)
        body = {"metadata": {"name": "data"}}
        assert client.to_dict(body) is body
        assert client.to_dict(None) is None


class TestComputeHash:
    def test_key_order_does_not_matter(self):
        assert compute_hash({"a": 1, "b": 2}) == compute_hash({"b": 2, "a": 1})

    def test_strings_and_length(self):
        assert len(compute_hash("default/data/pool-a")) == 16
        assert compute_hash("default/data/pool-a") != compute_hash("default/data/pool-b")

    def test_unsupported_type(self):
        with pytest.raises(ValueError):
            compute_hash(42)
