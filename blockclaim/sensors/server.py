"""HTTP server for exposing Prometheus metrics.

Uses the prometheus_client HTTP server in a background thread so scraping
never blocks the operator event loop.
"""

import logging
from threading import Thread
from prometheus_client import start_http_server
from blockclaim.types.settings import METRICS_PORT

logger = logging.getLogger(__name__)


def start_metrics_server(port: int = METRICS_PORT) -> None:
    """Start Prometheus metrics HTTP server.

    Metrics are served at http://0.0.0.0:port/metrics.

    Args:
        port: Port to listen on
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
        logger.info(f"Metrics available at http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {port}: {e}")
        raise


def init_metrics_server(port: int = METRICS_PORT) -> None:
    """Start the metrics server in a daemon thread so it doesn't block shutdown."""
    thread = Thread(target=start_metrics_server, args=(port,), daemon=True)
    thread.start()

    logger.info(f"Metrics server initialization complete (port: {port})")
