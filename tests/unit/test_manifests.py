"""Unit tests for the desired state of provisioned objects."""

import pytest
from blockclaim.resources.base import HASH_ANNOTATION, compute_hash
from blockclaim.resources.manifests import ManifestBuilder
from blockclaim.resources.volumeclaim import BlockVolume, VolumeClaim
from blockclaim.types.settings import Settings
from tests.unit.conftest import make_claim, make_volume


def endpoint_with_ip(manifests, claim, cluster_ip="10.96.0.7"):
    body = manifests.build_endpoint(claim)
    body["spec"]["clusterIP"] = cluster_ip
    return body


def owner_of(body):
    [owner] = body["metadata"]["ownerReferences"]
    return owner


class TestBuildEndpoint:
    """Tests for the Service fronting a volume target."""

    @pytest.mark.asyncio
    async def test_service(self, manifests):
        claim = VolumeClaim(make_claim("data"))
        body = manifests.build_endpoint(claim)

        assert body["kind"] == "Service"
        assert body["metadata"]["name"] == "data"
        assert body["metadata"]["namespace"] == "default"
        ports = {p["name"]: p["port"] for p in body["spec"]["ports"]}
        assert ports == {"iscsi": 3260, "exporter": 9500}
        assert body["spec"]["selector"] == {
            "blockclaim.io/volume": "data",
            "blockclaim.io/component-type": "target",
        }

    @pytest.mark.asyncio
    async def test_owned_by_claim(self, manifests):
        claim = VolumeClaim(make_claim("data"))
        owner = owner_of(manifests.build_endpoint(claim))
        assert owner["kind"] == "VolumeClaim"
        assert owner["name"] == "data"
        assert owner["uid"] == "uid-data"


class TestBuildVolume:
    """Tests for the volume record."""

    @pytest.mark.asyncio
    async def test_spec(self, manifests):
        claim = VolumeClaim(make_claim("data", capacity="5G", replicas=3))
        body = manifests.build_volume(claim, endpoint_with_ip(manifests, claim))
        spec = body["spec"]

        assert body["kind"] == "BlockVolume"
        assert body["metadata"]["name"] == "data"
        assert spec["capacity"] == "5G"
        assert spec["nodeID"] == "node-1"
        assert spec["replicationFactor"] == 3
        assert spec["consistencyFactor"] == 2
        assert spec["endpointRef"] == {
            "name": "data",
            "namespace": "default",
            "clusterIP": "10.96.0.7",
            "port": 3260,
        }
        assert spec["targetPortal"] == "10.96.0.7:3260"
        assert spec["iqn"].endswith(":data")
        assert body["metadata"]["annotations"][HASH_ANNOTATION] == compute_hash(spec)
        assert owner_of(body)["kind"] == "VolumeClaim"

    @pytest.mark.asyncio
    async def test_consistency_factor_is_a_majority(self, manifests):
        for replicas, quorum in ((1, 1), (2, 2), (4, 3), (5, 3)):
            claim = VolumeClaim(make_claim("data", replicas=replicas))
            spec = manifests.build_volume(claim, endpoint_with_ip(manifests, claim))["spec"]
            assert spec["consistencyFactor"] == quorum

    @pytest.mark.asyncio
    async def test_endpoint_without_address(self, manifests):
        claim = VolumeClaim(make_claim("data"))
        spec = manifests.build_volume(claim, manifests.build_endpoint(claim))["spec"]
        assert spec["targetPortal"] is None


class TestBuildTarget:
    """Tests for the target Deployment."""

    @pytest.mark.asyncio
    async def test_deployment(self, manifests):
        volume = BlockVolume(make_volume("data"))
        body = manifests.build_target(volume)
        spec = body["spec"]
        pod = spec["template"]["spec"]

        assert body["kind"] == "Deployment"
        assert body["metadata"]["name"] == "data-target"
        assert spec["replicas"] == 1
        assert spec["strategy"]["type"] == "Recreate"
        assert spec["selector"]["matchLabels"] == {
            "blockclaim.io/volume": "data",
            "blockclaim.io/component-type": "target",
        }
        template_labels = spec["template"]["metadata"]["labels"]
        for key, value in spec["selector"]["matchLabels"].items():
            assert template_labels[key] == value
        assert [c["name"] for c in pod["containers"]] == ["target", "exporter", "mgmt"]
        assert owner_of(body)["kind"] == "BlockVolume"
        assert owner_of(body)["uid"] == "uid-volume-data"
        assert body["metadata"]["annotations"][HASH_ANNOTATION] == compute_hash(spec)

    @pytest.mark.asyncio
    async def test_mgmt_container_env(self, manifests):
        body = manifests.build_target(BlockVolume(make_volume("data")))
        [mgmt] = [c for c in body["spec"]["template"]["spec"]["containers"] if c["name"] == "mgmt"]
        env = {e["name"]: e for e in mgmt["env"]}
        assert env["VOLUME_ID"]["value"] == "uid-volume-data"
        assert env["RESYNC_INTERVAL"]["value"] == "30"
        assert env["NODE_NAME"]["valueFrom"]["fieldRef"]["fieldPath"] == "spec.nodeName"
        assert env["POD_NAME"]["valueFrom"]["fieldRef"]["fieldPath"] == "metadata.name"

    @pytest.mark.asyncio
    async def test_tolerations_and_volumes(self, manifests):
        pod = manifests.build_target(BlockVolume(make_volume("data")))["spec"]["template"]["spec"]
        assert {t["key"] for t in pod["tolerations"]} == {
            "node.kubernetes.io/not-ready",
            "node.kubernetes.io/unreachable",
        }
        for toleration in pod["tolerations"]:
            assert toleration["effect"] == "NoExecute"
            assert toleration["tolerationSeconds"] == 30
        volumes = {v["name"]: v for v in pod["volumes"]}
        assert set(volumes) == {"sockfile", "conf", "tmp"}
        assert volumes["tmp"]["hostPath"] == {
            "path": "/var/blockclaim/shared-data-target",
            "type": "DirectoryOrCreate",
        }

    @pytest.mark.asyncio
    async def test_settings_flow_into_target(self, api_client):
        settings = Settings(target_image="registry.local/target:1.0", target_dir="/data/")
        manifests = ManifestBuilder(settings, api_client)
        pod = manifests.build_target(BlockVolume(make_volume("data")))["spec"]["template"]["spec"]
        [target] = [c for c in pod["containers"] if c["name"] == "target"]
        assert target["image"] == "registry.local/target:1.0"
        assert target["securityContext"]["privileged"] is True
        tmp = [v for v in pod["volumes"] if v["name"] == "tmp"][0]
        assert tmp["hostPath"]["path"] == "/data/shared-data-target"


class TestBuildReplica:
    """Tests for replica records."""

    @pytest.mark.asyncio
    async def test_replica_is_deterministic(self, manifests):
        claim, volume = VolumeClaim(make_claim("data")), BlockVolume(make_volume("data"))
        first = manifests.build_replica(claim, volume, "pool-a")
        second = manifests.build_replica(claim, volume, "pool-a")
        other = manifests.build_replica(claim, volume, "pool-b")

        assert first == second
        assert first["metadata"]["name"] == "data-pool-a"
        assert first["spec"]["replicaID"] != other["spec"]["replicaID"]

    @pytest.mark.asyncio
    async def test_replica_spec(self, manifests):
        claim, volume = VolumeClaim(make_claim("data")), BlockVolume(make_volume("data", capacity="8G"))
        body = manifests.build_replica(claim, volume, "pool-a")
        assert body["spec"]["poolRef"] == "pool-a"
        assert body["spec"]["capacity"] == "8G"
        assert body["spec"]["endpointRef"] == volume.endpoint_ref
        assert owner_of(body)["kind"] == "BlockVolume"
