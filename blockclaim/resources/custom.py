from typing import Dict, List, Optional
from kubernetes_asyncio.client import ApiClient, ApiException, CustomObjectsApi
from blockclaim.resources.base import (
    KubernetesResourceClient,
    Selector,
    name_of,
    namespace_of,
    selector_str,
)
from blockclaim.utils.errors import not_found_error
from blockclaim.utils.patch import PatchType

GROUP = "blockclaim.io"
VERSION = "v1alpha1"


class CustomResourceClient(KubernetesResourceClient):
    """CRUD over a namespaced custom resource."""

    group: str = GROUP
    version: str = VERSION
    plural: str

    def __init__(self, api_client: ApiClient, kind: str, plural: str) -> None:
        super().__init__(api_client)
        self.KIND = kind
        self.plural = plural
        self.api = CustomObjectsApi(api_client)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"

    async def get(self, namespace: str, name: str) -> Optional[Dict]:
        try:
            return await self.api.get_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=namespace,
                plural=self.plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def list(self, namespace: str = None, selector: Selector = None) -> List[Dict]:
        label_selector = selector_str(selector)
        kwargs = {"label_selector": label_selector} if label_selector else {}
        if namespace:
            result = await self.api.list_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=namespace,
                plural=self.plural,
                **kwargs,
            )
        else:
            result = await self.api.list_cluster_custom_object(
                group=self.group,
                version=self.version,
                plural=self.plural,
                **kwargs,
            )
        return (result or {}).get("items", [])

    async def create(self, body: Dict) -> Dict:
        return await self.api.create_namespaced_custom_object(
            group=self.group,
            version=self.version,
            namespace=namespace_of(body),
            plural=self.plural,
            body=body,
        )

    async def update(self, body: Dict) -> Dict:
        """Replace the object and then its status subresource.

        The main endpoint ignores status changes, so a body carrying a status
        is written in two steps; the second uses the resource version returned
        by the first.
        """
        namespace, name = namespace_of(body), name_of(body)
        updated = await self.api.replace_namespaced_custom_object(
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.plural,
            name=name,
            body=body,
        )
        if "status" not in body:
            return updated
        status_body = dict(updated)
        status_body["status"] = body["status"]
        return await self.api.replace_namespaced_custom_object_status(
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.plural,
            name=name,
            body=status_body,
        )

    async def patch(
        self,
        namespace: str,
        name: str,
        patch_bytes: bytes,
        patch_type: str = PatchType.MERGE,
        subresource: str = None,
    ) -> Dict:
        if subresource == "status":
            patch_fn = self.api.patch_namespaced_custom_object_status
        elif subresource is None:
            patch_fn = self.api.patch_namespaced_custom_object
        else:
            raise ValueError(f"Unsupported subresource: {subresource}")
        return await patch_fn(
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.plural,
            name=name,
            body=self.decode_patch(patch_bytes),
            _content_type=patch_type,
        )

    async def delete(self, namespace: str, name: str) -> None:
        try:
            await self.api.delete_namespaced_custom_object(
                group=self.group,
                version=self.version,
                namespace=namespace,
                plural=self.plural,
                name=name,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise


class VolumeClaimClient(CustomResourceClient):
    KIND = "VolumeClaim"
    PLURAL_NAME = "volumeclaims"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client, self.KIND, self.PLURAL_NAME)


class BlockVolumeClient(CustomResourceClient):
    KIND = "BlockVolume"
    PLURAL_NAME = "blockvolumes"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client, self.KIND, self.PLURAL_NAME)


class VolumeReplicaClient(CustomResourceClient):
    KIND = "VolumeReplica"
    PLURAL_NAME = "volumereplicas"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client, self.KIND, self.PLURAL_NAME)


class StoragePoolClient(CustomResourceClient):
    KIND = "StoragePool"
    PLURAL_NAME = "storagepools"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client, self.KIND, self.PLURAL_NAME)
