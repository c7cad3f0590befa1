from typing import Dict, List, Optional
from kubernetes_asyncio.client import (
    ApiClient,
    ApiException,
    AppsV1Api,
    CoreV1Api,
    V1DeleteOptions,
)
from blockclaim.resources.base import (
    KubernetesResourceClient,
    Selector,
    name_of,
    namespace_of,
    selector_str,
)
from blockclaim.utils.errors import not_found_error
from blockclaim.utils.patch import PatchType


class ServiceClient(KubernetesResourceClient):
    """Volume endpoints are plain Services."""

    KIND = "Service"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client)
        self.api = CoreV1Api(api_client)

    async def get(self, namespace: str, name: str) -> Optional[Dict]:
        try:
            service = await self.api.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.to_dict(service)

    async def list(self, namespace: str = None, selector: Selector = None) -> List[Dict]:
        label_selector = selector_str(selector)
        kwargs = {"label_selector": label_selector} if label_selector else {}
        if namespace:
            result = await self.api.list_namespaced_service(namespace=namespace, **kwargs)
        else:
            result = await self.api.list_service_for_all_namespaces(**kwargs)
        return [self.to_dict(item) for item in result.items]

    async def create(self, body: Dict) -> Dict:
        service = await self.api.create_namespaced_service(
            namespace=namespace_of(body), body=body
        )
        return self.to_dict(service)

    async def update(self, body: Dict) -> Dict:
        service = await self.api.replace_namespaced_service(
            name=name_of(body), namespace=namespace_of(body), body=body
        )
        return self.to_dict(service)

    async def patch(
        self,
        namespace: str,
        name: str,
        patch_bytes: bytes,
        patch_type: str = PatchType.MERGE,
        subresource: str = None,
    ) -> Dict:
        if subresource == "status":
            patch_fn = self.api.patch_namespaced_service_status
        else:
            patch_fn = self.api.patch_namespaced_service
        service = await patch_fn(
            name=name,
            namespace=namespace,
            body=self.decode_patch(patch_bytes),
            _content_type=patch_type,
        )
        return self.to_dict(service)

    async def delete(self, namespace: str, name: str) -> None:
        try:
            await self.api.delete_namespaced_service(
                name=name, namespace=namespace, body=V1DeleteOptions()
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise


class DeploymentClient(KubernetesResourceClient):
    """Volume target workloads are Deployments."""

    KIND = "Deployment"

    def __init__(self, api_client: ApiClient) -> None:
        super().__init__(api_client)
        self.api = AppsV1Api(api_client)

    async def get(self, namespace: str, name: str) -> Optional[Dict]:
        try:
            deployment = await self.api.read_namespaced_deployment(
                name=name, namespace=namespace
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise
        return self.to_dict(deployment)

    async def list(self, namespace: str = None, selector: Selector = None) -> List[Dict]:
        label_selector = selector_str(selector)
        kwargs = {"label_selector": label_selector} if label_selector else {}
        if namespace:
            result = await self.api.list_namespaced_deployment(namespace=namespace, **kwargs)
        else:
            result = await self.api.list_deployment_for_all_namespaces(**kwargs)
        return [self.to_dict(item) for item in result.items]

    async def create(self, body: Dict) -> Dict:
        deployment = await self.api.create_namespaced_deployment(
            namespace=namespace_of(body), body=body
        )
        return self.to_dict(deployment)

    async def update(self, body: Dict) -> Dict:
        deployment = await self.api.replace_namespaced_deployment(
            name=name_of(body), namespace=namespace_of(body), body=body
        )
        return self.to_dict(deployment)

    async def patch(
        self,
        namespace: str,
        name: str,
        patch_bytes: bytes,
        patch_type: str = PatchType.MERGE,
        subresource: str = None,
    ) -> Dict:
        if subresource == "status":
            patch_fn = self.api.patch_namespaced_deployment_status
        else:
            patch_fn = self.api.patch_namespaced_deployment
        deployment = await patch_fn(
            name=name,
            namespace=namespace,
            body=self.decode_patch(patch_bytes),
            _content_type=patch_type,
        )
        return self.to_dict(deployment)

    async def delete(self, namespace: str, name: str) -> None:
        try:
            await self.api.delete_namespaced_deployment(
                name=name,
                namespace=namespace,
                body=V1DeleteOptions(propagation_policy="Foreground"),
            )
        except ApiException as ex:
            if not_found_error(ex):
                return
            raise
