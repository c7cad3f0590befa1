class VolumeClaimResources:
    """Encapsulates the naming scheme used by resources which the operator manages."""

    @classmethod
    def endpoint_name(self, claim_name: str):
        return claim_name

    @classmethod
    def volume_name(self, claim_name: str):
        return claim_name

    @classmethod
    def target_name(self, volume_name: str):
        return f"{volume_name}-target"

    @classmethod
    def replica_name(self, volume_name: str, pool_name: str):
        return f"{volume_name}-{pool_name}"

    @classmethod
    def iqn(self, volume_name: str):
        return f"iqn.2016-09.com.blockclaim:{volume_name}"

    @classmethod
    def target_dir(self, base_dir: str, volume_name: str):
        return f"{base_dir.rstrip('/')}/shared-{volume_name}-target"
