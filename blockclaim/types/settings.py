import os
from typing import Any, Optional

_TRUE, _FALSE = {"True", "true", "yes", "1"}, {"False", "false", "no", "0"}


def _getenv(name: str, *default: Any) -> Any:
    try:
        v = os.environ[name]
        if v in _TRUE:
            return True
        elif v in _FALSE:
            return False
        else:
            return v
    except KeyError:
        pass
    if default:
        return default[0]
    raise KeyError(name)


# ------------------------------------------------
# ---- Defaults and environment variables ----
# ------------------------------------------------

#: Number of workers draining the claim work queue concurrently
WORKER_COUNT = int(_getenv("WORKER_COUNT", 2))

#: Seconds between full resyncs of every volume claim
RESYNC_INTERVAL_SECONDS = float(_getenv("RESYNC_INTERVAL_SECONDS", 30.0))

#: Initial requeue delay of a failing key; doubles on every consecutive failure
QUEUE_BASE_DELAY_SECONDS = float(_getenv("QUEUE_BASE_DELAY_SECONDS", 0.005))

#: Upper bound of the per-key requeue delay
QUEUE_MAX_DELAY_SECONDS = float(_getenv("QUEUE_MAX_DELAY_SECONDS", 1000.0))

#: Overall requeue rate (keys per second) shared by all failing keys
QUEUE_QPS = float(_getenv("QUEUE_QPS", 10.0))

#: Burst size of the overall requeue rate
QUEUE_BURST = int(_getenv("QUEUE_BURST", 100))

#: Namespace holding StoragePool resources; defaults to the claim's namespace
POOL_NAMESPACE = _getenv("POOL_NAMESPACE", None)

#: Image of the volume target container
TARGET_IMAGE = _getenv("TARGET_IMAGE", "blockclaim/volume-target:ci")

#: Image of the volume metrics exporter sidecar
TARGET_MONITOR_IMAGE = _getenv("TARGET_MONITOR_IMAGE", "blockclaim/volume-exporter:ci")

#: Image of the volume management sidecar
TARGET_MGMT_IMAGE = _getenv("TARGET_MGMT_IMAGE", "blockclaim/volume-mgmt:ci")

#: Host directory under which per-volume target directories are created
TARGET_DIR = _getenv("TARGET_DIR", "/var/blockclaim")

#: Port the volume target serves on
TARGET_PORT = int(_getenv("TARGET_PORT", 3260))

#: Service account of the target workload pods
TARGET_SERVICE_ACCOUNT = _getenv("TARGET_SERVICE_ACCOUNT", "blockclaim-operator")

#: Expose prometheus metrics
METRICS_ENABLED = bool(_getenv("METRICS_ENABLED", True))

#: Port of the prometheus metrics server
METRICS_PORT = int(_getenv("METRICS_PORT", 8000))


class Settings:
    """Operator settings"""

    worker_count: int = WORKER_COUNT
    resync_interval_seconds: float = RESYNC_INTERVAL_SECONDS
    queue_base_delay_seconds: float = QUEUE_BASE_DELAY_SECONDS
    queue_max_delay_seconds: float = QUEUE_MAX_DELAY_SECONDS
    queue_qps: float = QUEUE_QPS
    queue_burst: int = QUEUE_BURST
    pool_namespace: Optional[str] = POOL_NAMESPACE
    target_image: str = TARGET_IMAGE
    target_monitor_image: str = TARGET_MONITOR_IMAGE
    target_mgmt_image: str = TARGET_MGMT_IMAGE
    target_dir: str = TARGET_DIR
    target_port: int = TARGET_PORT
    target_service_account: str = TARGET_SERVICE_ACCOUNT
    metrics_enabled: bool = METRICS_ENABLED
    metrics_port: int = METRICS_PORT

    def __init__(
        self,
        *args,
        worker_count: int = None,
        resync_interval_seconds: float = None,
        queue_base_delay_seconds: float = None,
        queue_max_delay_seconds: float = None,
        queue_qps: float = None,
        queue_burst: int = None,
        pool_namespace: str = None,
        target_image: str = None,
        target_monitor_image: str = None,
        target_mgmt_image: str = None,
        target_dir: str = None,
        target_port: int = None,
        target_service_account: str = None,
        metrics_enabled: bool = None,
        metrics_port: int = None,
        **kwargs,
    ):
        if worker_count is not None:
            self.worker_count = worker_count

        if resync_interval_seconds is not None:
            self.resync_interval_seconds = resync_interval_seconds

        if queue_base_delay_seconds is not None:
            self.queue_base_delay_seconds = queue_base_delay_seconds

        if queue_max_delay_seconds is not None:
            self.queue_max_delay_seconds = queue_max_delay_seconds

        if queue_qps is not None:
            self.queue_qps = queue_qps

        if queue_burst is not None:
            self.queue_burst = queue_burst

        if pool_namespace is not None:
            self.pool_namespace = pool_namespace

        if target_image is not None:
            self.target_image = target_image

        if target_monitor_image is not None:
            self.target_monitor_image = target_monitor_image

        if target_mgmt_image is not None:
            self.target_mgmt_image = target_mgmt_image

        if target_dir is not None:
            self.target_dir = target_dir

        if target_port is not None:
            self.target_port = target_port

        if target_service_account is not None:
            self.target_service_account = target_service_account

        if metrics_enabled is not None:
            self.metrics_enabled = metrics_enabled

        if metrics_port is not None:
            self.metrics_port = metrics_port

        if self.worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {self.worker_count}")
