from typing import Dict


class ResourceLabels:
    BLOCKCLAIM_DOMAIN: str = "blockclaim.io/"

    BLOCKCLAIM_KIND_LABEL = BLOCKCLAIM_DOMAIN + "kind"

    # Selector key binding replicas (and the target workload) to their volume
    BLOCKCLAIM_VOLUME_LABEL = BLOCKCLAIM_DOMAIN + "volume"

    BLOCKCLAIM_POOL_LABEL = BLOCKCLAIM_DOMAIN + "pool"

    BLOCKCLAIM_COMPONENT_TYPE_LABEL = BLOCKCLAIM_DOMAIN + "component-type"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_NAME_LABEL = KUBERNETES_DOMAIN + "name"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    APPLICATION_NAME = "blockclaim"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels are dictionary."""
        return self._labels.copy()

    def as_str(self):
        """Return labels as comma separated string (a label selector)."""
        return ",".join([f"{k}={v}" for k, v in self._labels.items()])

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_blockclaim_kind(self, kind: str) -> "Labels":
        return self.include(self.BLOCKCLAIM_KIND_LABEL, kind)

    def include_blockclaim_volume(self, volume_name: str) -> "Labels":
        return self.include(self.BLOCKCLAIM_VOLUME_LABEL, volume_name)

    def include_blockclaim_pool(self, pool_name: str) -> "Labels":
        return self.include(self.BLOCKCLAIM_POOL_LABEL, pool_name)

    def include_blockclaim_component_type(self, type: str) -> "Labels":
        return self.include(self.BLOCKCLAIM_COMPONENT_TYPE_LABEL, type)

    def include_kubernetes_name(self, name: str) -> "Labels":
        return self.include(self.KUBERNETES_NAME_LABEL, name)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL,
            self.get_or_valid_instance_label_value(
                f"{self.APPLICATION_NAME}-{instance_name}"
            ),
        )

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def get_or_valid_instance_label_value(self, instance: str):
        """Trim an instance name into a valid label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not instance:
            return ""
        value = instance[:63]
        return value.rstrip(".-_")

    def contains(self, other: "Labels"):
        """Returns True if all labels in `other` are contained."""
        return all(
            key in self._labels and self._labels[key] == value
            for key, value in other.as_dict().items()
        )

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def empty(cls) -> "Labels":
        return Labels({})

    @classmethod
    def volume_selector(cls, volume_name: str) -> "Labels":
        """Selector matching every object owned by `volume_name`."""
        return Labels().include_blockclaim_volume(volume_name)

    @classmethod
    def generate_default_labels(
        cls,
        volume_name: str,
        resource_kind: str,
        component_type: str,
        managed_by: str,
    ) -> "Labels":
        labels = Labels()
        return (
            labels.include_blockclaim_kind(resource_kind)
            .include_blockclaim_volume(volume_name)
            .include_blockclaim_component_type(component_type)
            .include_kubernetes_name(component_type)
            .include_kubernetes_instance(volume_name)
            .include_kubernetes_part_of(volume_name)
            .include_kubernetes_managed_by(managed_by)
        )
