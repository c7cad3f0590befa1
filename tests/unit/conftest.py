"""Shared fixtures: an in-memory API server stand-in and a wired controller."""

import copy
import itertools
import json
import pytest
import pytest_asyncio
from typing import Any, Dict, List, Optional, Tuple
from kubernetes_asyncio.client import ApiClient, ApiException
from blockclaim.controller.context import ControllerContext
from blockclaim.controller.recorder import EventRecorder
from blockclaim.resources.base import ResourceClient, selector_str
from blockclaim.resources.manifests import ManifestBuilder
from blockclaim.types.settings import Settings
from blockclaim.utils.patch import PatchType, apply_merge_patch

NAMESPACE = "default"


def api_error(status: int, reason: str) -> ApiException:
    ex = ApiException(status=status, reason=reason)
    ex.body = json.dumps({"reason": reason, "message": f"{reason} ({status})"})
    return ex


def _pointer(path: str) -> List[str]:
    return [p.replace("~1", "/").replace("~0", "~") for p in path.lstrip("/").split("/")]


def apply_json_patch(doc: Dict[str, Any], ops: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Apply the add/remove/replace/test subset of RFC 6902 used by the controller."""
    doc = copy.deepcopy(doc)
    for op in ops:
        *parents, last = _pointer(op["path"])
        target = doc
        for part in parents:
            target = target[int(part)] if isinstance(target, list) else target[part]
        if isinstance(target, list):
            index = len(target) if last == "-" else int(last)
            if op["op"] == "test":
                if target[index] != op["value"]:
                    raise api_error(422, "Invalid")
            elif op["op"] == "remove":
                del target[index]
            elif op["op"] == "add":
                target.insert(index, op["value"])
            elif op["op"] == "replace":
                target[index] = op["value"]
        else:
            if op["op"] == "test":
                if target.get(last) != op["value"]:
                    raise api_error(422, "Invalid")
            elif op["op"] == "remove":
                if last not in target:
                    raise api_error(422, "Invalid")
                del target[last]
            elif op["op"] in ("add", "replace"):
                target[last] = op["value"]
    return doc


class FakeResourceClient(ResourceClient):
    """Stores objects in memory and records every mutating call."""

    _ips = itertools.count(10)

    def __init__(self, kind: str) -> None:
        self.KIND = kind
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[Any, ...]] = []
        # Operation name -> exception raised by the next call of that operation
        self.failures: Dict[str, Exception] = {}
        self._versions = itertools.count(1)
        self._uids = itertools.count(1)

    def _fail(self, op: str) -> None:
        ex = self.failures.pop(op, None)
        if ex is not None:
            raise ex

    def _stamp(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body["metadata"]["resourceVersion"] = str(next(self._versions))
        return body

    def seed(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Store an object without recording a call."""
        body = copy.deepcopy(body)
        metadata = body.setdefault("metadata", {})
        metadata.setdefault("namespace", NAMESPACE)
        metadata.setdefault("uid", f"{self.KIND.lower()}-{next(self._uids)}")
        self._stamp(body)
        self.objects[(metadata["namespace"], metadata["name"])] = body
        return copy.deepcopy(body)

    def stored(self, name: str, namespace: str = NAMESPACE) -> Optional[Dict[str, Any]]:
        return self.objects.get((namespace, name))

    @property
    def mutations(self) -> List[Tuple[Any, ...]]:
        return list(self.calls)

    async def get(self, namespace, name):
        self._fail("get")
        obj = self.objects.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    async def list(self, namespace=None, selector=None):
        self._fail("list")
        wanted = {}
        rendered = selector_str(selector)
        if rendered:
            wanted = dict(part.split("=", 1) for part in rendered.split(","))
        items = []
        for (ns, name), obj in sorted(self.objects.items()):
            if namespace and ns != namespace:
                continue
            labels = obj["metadata"].get("labels") or {}
            if all(labels.get(k) == v for k, v in wanted.items()):
                items.append(copy.deepcopy(obj))
        return items

    async def create(self, body):
        self._fail("create")
        body = copy.deepcopy(body)
        metadata = body["metadata"]
        key = (metadata.get("namespace"), metadata["name"])
        self.calls.append(("create", key[0], key[1]))
        if key in self.objects:
            raise api_error(409, "AlreadyExists")
        metadata["uid"] = f"{self.KIND.lower()}-{next(self._uids)}"
        if self.KIND == "Service":
            body.setdefault("spec", {})["clusterIP"] = f"10.96.0.{next(self._ips)}"
        self.objects[key] = self._stamp(body)
        return copy.deepcopy(body)

    async def update(self, body):
        self._fail("update")
        body = copy.deepcopy(body)
        metadata = body["metadata"]
        key = (metadata.get("namespace"), metadata["name"])
        self.calls.append(("update", key[0], key[1]))
        if key not in self.objects:
            raise api_error(404, "NotFound")
        self.objects[key] = self._stamp(body)
        return copy.deepcopy(body)

    async def patch(self, namespace, name, patch_bytes, patch_type=PatchType.MERGE, subresource=None):
        self._fail("patch")
        patch = json.loads(patch_bytes)
        self.calls.append(("patch", namespace, name, patch_type, subresource, patch))
        key = (namespace, name)
        if key not in self.objects:
            raise api_error(404, "NotFound")
        if patch_type == PatchType.JSON:
            patched = apply_json_patch(self.objects[key], patch)
        else:
            patched = apply_merge_patch(self.objects[key], patch)
        self.objects[key] = self._stamp(patched)
        return copy.deepcopy(patched)

    async def delete(self, namespace, name):
        self._fail("delete")
        self.calls.append(("delete", namespace, name))
        self.objects.pop((namespace, name), None)


class FakeRecorder(EventRecorder):
    def __init__(self) -> None:
        self.events: List[Tuple[str, str, str, str]] = []

    def normal(self, body, reason, message):
        self.events.append(("Normal", reason, message, body["metadata"]["name"]))

    def warning(self, body, reason, message):
        self.events.append(("Warning", reason, message, body["metadata"]["name"]))

    def reasons(self) -> List[str]:
        return [reason for _, reason, _, _ in self.events]


def make_claim(
    name: str = "data",
    namespace: str = NAMESPACE,
    capacity: str = "5G",
    replicas: int = 3,
    node_id: str = "node-1",
    status: Dict[str, Any] = None,
    finalizers: List[str] = None,
    deletion_timestamp: str = None,
) -> Dict[str, Any]:
    metadata = {"name": name, "namespace": namespace, "uid": f"uid-{name}"}
    if finalizers is not None:
        metadata["finalizers"] = list(finalizers)
    if deletion_timestamp:
        metadata["deletionTimestamp"] = deletion_timestamp
    body = {
        "apiVersion": "blockclaim.io/v1alpha1",
        "kind": "VolumeClaim",
        "metadata": metadata,
        "spec": {"nodeID": node_id, "capacity": capacity, "replicaCount": replicas},
    }
    if status is not None:
        body["status"] = status
    return body


def make_volume(
    name: str = "data",
    namespace: str = NAMESPACE,
    capacity: str = "5G",
    conditions: List[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body = {
        "apiVersion": "blockclaim.io/v1alpha1",
        "kind": "BlockVolume",
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-volume-{name}"},
        "spec": {
            "capacity": capacity,
            "nodeID": "node-1",
            "endpointRef": {
                "name": name,
                "namespace": namespace,
                "clusterIP": "10.96.0.1",
                "port": 3260,
            },
            "replicationFactor": 3,
            "consistencyFactor": 2,
        },
    }
    if conditions is not None:
        body["status"] = {"conditions": conditions}
    return body


def make_replica(volume_name: str, pool: str, namespace: str = NAMESPACE) -> Dict[str, Any]:
    return {
        "apiVersion": "blockclaim.io/v1alpha1",
        "kind": "VolumeReplica",
        "metadata": {
            "name": f"{volume_name}-{pool}",
            "namespace": namespace,
            "labels": {
                "blockclaim.io/volume": volume_name,
                "blockclaim.io/pool": pool,
            },
        },
        "spec": {"poolRef": pool, "capacity": "5G"},
    }


def make_pool(name: str, free: str = "100G", phase: str = "Online", namespace: str = NAMESPACE):
    return {
        "apiVersion": "blockclaim.io/v1alpha1",
        "kind": "StoragePool",
        "metadata": {"name": name, "namespace": namespace},
        "status": {"phase": phase, "free": free, "total": "200G"},
    }


@pytest.fixture
def settings():
    return Settings(
        worker_count=2,
        resync_interval_seconds=0.05,
        queue_base_delay_seconds=0.001,
        queue_max_delay_seconds=0.01,
    )


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def claims():
    return FakeResourceClient("VolumeClaim")


@pytest.fixture
def volumes():
    return FakeResourceClient("BlockVolume")


@pytest.fixture
def replicas():
    return FakeResourceClient("VolumeReplica")


@pytest.fixture
def pools():
    client = FakeResourceClient("StoragePool")
    client.seed(make_pool("pool-a", free="100G"))
    client.seed(make_pool("pool-b", free="80G"))
    client.seed(make_pool("pool-c", free="60G"))
    client.seed(make_pool("pool-d", free="500G", phase="Offline"))
    return client


@pytest.fixture
def endpoints():
    return FakeResourceClient("Service")


@pytest.fixture
def targets():
    return FakeResourceClient("Deployment")


@pytest_asyncio.fixture
async def api_client():
    async with ApiClient() as client:
        yield client


@pytest.fixture
def manifests(settings, api_client):
    return ManifestBuilder(settings, api_client)


@pytest.fixture
def context(settings, claims, volumes, replicas, pools, endpoints, targets, manifests, recorder):
    return ControllerContext(
        settings,
        claims=claims,
        volumes=volumes,
        replicas=replicas,
        pools=pools,
        endpoints=endpoints,
        targets=targets,
        manifests=manifests,
        recorder=recorder,
    )


def all_mutations(context: ControllerContext) -> List[Tuple[Any, ...]]:
    return [
        call
        for client in (
            context.claims,
            context.volumes,
            context.replicas,
            context.endpoints,
            context.targets,
        )
        for call in client.mutations
    ]
