import asyncio
import kopf
import logging
import blockclaim.handlers.volumeclaim as volumeclaim
import blockclaim.handlers.probes as probes
from blockclaim.controller.context import ControllerContext
from blockclaim.types.settings import Settings
from blockclaim.sensors import init_metrics_server, SensorDelegate, PrometheusMonitor
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient


@kopf.on.startup()
async def setup(
    settings: kopf.OperatorSettings, memo: kopf.Memo, logger: logging.Logger, **kwargs
):
    # Load Kubernetes config - try in-cluster first (for production), then local kubeconfig (for dev)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        logger.info("In-cluster config not found, trying local kubeconfig")
        try:
            await config.load_kube_config()
            logger.info("Loaded local Kubernetes configuration")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    memo.conf = Settings()

    # One ApiClient shared by every resource client to prevent connection leaks
    memo.api_client = ApiClient()
    logger.info("Shared Kubernetes API client initialized")

    sensor_delegate = SensorDelegate()
    if memo.conf.metrics_enabled:
        sensor_delegate.add(PrometheusMonitor())
        try:
            init_metrics_server(memo.conf.metrics_port)
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            # Don't fail operator startup if metrics server fails
            logger.warning("Continuing without metrics server")
    memo.sensor = sensor_delegate

    memo.context = ControllerContext.from_api_client(
        memo.api_client, memo.conf, sensor=sensor_delegate
    )
    memo.tasks = [
        asyncio.create_task(memo.context.workers.run(), name="volumeclaim-workers"),
        asyncio.create_task(memo.context.resyncer.run(), name="volumeclaim-resyncer"),
    ]
    logger.info(
        f"Volume claim controller started with {memo.conf.worker_count} workers, "
        f"resync every {memo.conf.resync_interval_seconds}s"
    )

    # Post only warnings and errors as Kubernetes events
    settings.posting.enabled = True
    settings.posting.level = logging.WARNING


@kopf.on.cleanup()
async def cleanup(memo: kopf.Memo, logger: logging.Logger, **kwargs):
    """Cleanup handler for operator shutdown."""
    logger.info("Shutting down operator...")

    context = getattr(memo, "context", None)
    if context is not None:
        context.stop.set()
        results = await asyncio.gather(*memo.tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Controller task failed: {result}")
        logger.info("Volume claim controller stopped")

    api_client = getattr(memo, "api_client", None)
    if api_client is not None:
        await api_client.close()
        logger.info("Shared API client closed")

    logger.info("Operator shutdown complete")


__all__ = [
    "volumeclaim",
    "probes",
]
