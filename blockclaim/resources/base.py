import json
import mmh3
import hashlib
import logging
from typing import Any, Dict, List, Optional, Tuple, Union
from kubernetes_asyncio.client import ApiClient
from blockclaim.common.models.labels import Labels
from blockclaim.utils.errors import already_exists_error
from blockclaim.utils.helpers import canonicalize_dict
from blockclaim.utils.patch import PatchType

HASH_ANNOTATION = "blockclaim.io/resource-hash"

Selector = Union[Labels, Dict[str, str], str, None]

logger = logging.getLogger(__name__)


def compute_hash(data: Any) -> str:
    """Compute a murmur3 hash, returned as the first 16 hex chars of its sha256."""
    if isinstance(data, dict):
        _data = canonicalize_dict(data)
    elif isinstance(data, str):
        _data = data.encode()
    else:
        raise ValueError(f"Hash of {type(data)} is not supported.")
    mumur_str = str(mmh3.hash128(_data))

    hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
    full_hash = hash_obj.hexdigest()

    # First 16 characters keep labels/annotations readable
    return full_hash[:16]


def prepare_hash_annotation(hash: Union[str, int]) -> Dict[str, str]:
    """Prepare hash annotation for k8s resources."""
    return {HASH_ANNOTATION: str(hash)}


def selector_str(selector: Selector) -> Optional[str]:
    """Render a label selector in the `k=v,k2=v2` form the API expects."""
    if selector is None:
        return None
    if isinstance(selector, Labels):
        return selector.as_str() or None
    if isinstance(selector, dict):
        return Labels(dict(selector)).as_str() or None
    return selector or None


def name_of(body: Dict) -> str:
    return body["metadata"]["name"]


def namespace_of(body: Dict) -> Optional[str]:
    return body["metadata"].get("namespace")


class ResourceClient:
    """CRUD capability for one kind of resource.

    Objects go in and come out as plain JSON-able dicts so the controller never
    depends on the client library's model classes.
    """

    KIND: str = None

    async def get(self, namespace: str, name: str) -> Optional[Dict]:
        """Retrieve the latest state of an object, or None when it does not exist."""
        raise NotImplementedError()

    async def list(self, namespace: str = None, selector: Selector = None) -> List[Dict]:
        raise NotImplementedError()

    async def create(self, body: Dict) -> Dict:
        raise NotImplementedError()

    async def update(self, body: Dict) -> Dict:
        """Replace the object, including its status."""
        raise NotImplementedError()

    async def patch(
        self,
        namespace: str,
        name: str,
        patch_bytes: bytes,
        patch_type: str = PatchType.MERGE,
        subresource: str = None,
    ) -> Dict:
        raise NotImplementedError()

    async def delete(self, namespace: str, name: str) -> None:
        raise NotImplementedError()

    async def get_or_create(self, body: Dict) -> Tuple[Dict, bool]:
        """Return the existing object named by `body` or create it.

        Returns:
            The object and whether it was created by this call.
        """
        namespace, name = namespace_of(body), name_of(body)
        existing = await self.get(namespace, name)
        if existing is not None:
            return existing, False
        try:
            return await self.create(body), True
        except Exception as ex:
            if not already_exists_error(ex):
                raise
            # Lost a creation race against a concurrent writer
            logger.debug(f"{self.KIND} {namespace}/{name} already exists, re-reading")
            existing = await self.get(namespace, name)
            if existing is None:
                raise
            return existing, False

    @staticmethod
    def decode_patch(patch_bytes: bytes) -> Any:
        return json.loads(patch_bytes)


class KubernetesResourceClient(ResourceClient):
    """Base for clients backed by a shared kubernetes_asyncio ApiClient."""

    def __init__(self, api_client: ApiClient) -> None:
        self.api_client = api_client

    def to_dict(self, obj: Any) -> Optional[Dict]:
        """Convert a model returned by the API into a plain dict."""
        if obj is None or isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)
