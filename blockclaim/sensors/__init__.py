"""Volume claim controller sensor framework.

Non-invasive instrumentation of controller lifecycle events through a hook
based pattern.

Key components:
- OperatorSensor: Base class defining lifecycle hooks
- SensorDelegate: Fan-out of events to multiple sensor backends
- PrometheusMonitor: Prometheus metrics exporter

Usage:
    from blockclaim.sensors import SensorDelegate, PrometheusMonitor

    delegate = SensorDelegate()
    delegate.add(PrometheusMonitor())
"""

from blockclaim.sensors.base import OperatorSensor
from blockclaim.sensors.delegate import SensorDelegate
from blockclaim.sensors.prometheus import PrometheusMonitor
from blockclaim.sensors.server import init_metrics_server

__all__ = [
    'OperatorSensor',
    'SensorDelegate',
    'PrometheusMonitor',
    'init_metrics_server',
]
