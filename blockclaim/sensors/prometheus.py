"""Prometheus monitoring backend for the volume claim controller.

PrometheusMonitor collects controller lifecycle events and exposes them as
Prometheus metrics in three groups:

1. Reconciliation loop health - sync duration, queue depth and wait, retries, errors
2. Provisioned resource operations - operation counts and latency
3. Storage outcomes - replicas created, resize results
"""

from typing import Dict, Optional, Any
import time
import logging

from prometheus_client import CollectorRegistry, Counter, Histogram, Gauge, REGISTRY

from blockclaim.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class PrometheusMonitor(OperatorSensor):
    """Prometheus metrics monitor.

    Metric families:
    - blockclaim_reconcile_* - claim sync loop
    - blockclaim_queue_* - work queue
    - blockclaim_resource_* - provisioned resource operations
    - blockclaim_replicas_* / blockclaim_resize_* - storage outcomes
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        super().__init__()

        # =============================================================================
        # Reconciliation Loop Metrics
        # =============================================================================

        self.reconcile_duration = Histogram(
            'blockclaim_reconcile_duration_seconds',
            'Time spent syncing a volume claim',
            labelnames=['namespace', 'observed_state', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )

        self.reconcile_total = Counter(
            'blockclaim_reconcile_total',
            'Total number of volume claim syncs',
            labelnames=['namespace', 'observed_state', 'result'],
            registry=registry,
        )

        self.reconcile_errors = Counter(
            'blockclaim_reconcile_errors_total',
            'Total number of failed volume claim syncs',
            labelnames=['namespace', 'error_type'],
            registry=registry,
        )

        self.queue_depth = Gauge(
            'blockclaim_queue_depth',
            'Number of keys waiting in the work queue',
            registry=registry,
        )

        self.queue_wait_seconds = Histogram(
            'blockclaim_queue_wait_seconds',
            'Time a key spent in the work queue before a worker picked it up',
            buckets=[0.001, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
            registry=registry,
        )

        self.queue_retries = Counter(
            'blockclaim_queue_retries_total',
            'Total number of rate limited requeues',
            registry=registry,
        )

        # =============================================================================
        # Resource Operation Metrics
        # =============================================================================

        self.resource_sync_duration = Histogram(
            'blockclaim_resource_sync_duration_seconds',
            'Time spent ensuring a provisioned resource',
            labelnames=['namespace', 'resource_type', 'operation', 'result'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        self.resource_sync_total = Counter(
            'blockclaim_resource_sync_total',
            'Total number of provisioned resource operations',
            labelnames=['namespace', 'resource_type', 'operation', 'result'],
            registry=registry,
        )

        # =============================================================================
        # Storage Metrics
        # =============================================================================

        self.replicas_created = Counter(
            'blockclaim_replicas_created_total',
            'Total number of volume replicas created',
            labelnames=['namespace'],
            registry=registry,
        )

        self.resize_duration = Histogram(
            'blockclaim_resize_duration_seconds',
            'Time spent driving a volume resize',
            labelnames=['namespace', 'result'],
            buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        self.resize_total = Counter(
            'blockclaim_resize_total',
            'Total number of volume resizes',
            labelnames=['namespace', 'result'],
            registry=registry,
        )

        logger.info("PrometheusMonitor initialized with all metrics")

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        observed_state: str,
    ) -> Optional[Dict[str, Any]]:
        """Record sync start time."""
        return {
            'start_time': time.time(),
            'observed_state': observed_state,
        }

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record sync duration and result."""
        if state:
            duration = time.time() - state['start_time']
            result = 'success' if success else 'failure'

            self.reconcile_duration.labels(
                namespace=namespace,
                observed_state=state['observed_state'],
                result=result,
            ).observe(duration)

            self.reconcile_total.labels(
                namespace=namespace,
                observed_state=state['observed_state'],
                result=result,
            ).inc()

        if error:
            self.reconcile_errors.labels(
                namespace=namespace,
                error_type=error.__class__.__name__,
            ).inc()

    def on_reconcile_queued(self, key: str, queue_depth: int) -> None:
        self.queue_depth.set(queue_depth)

    def on_reconcile_dequeued(self, key: str, wait_time: float) -> None:
        self.queue_wait_seconds.observe(wait_time)

    def on_reconcile_requeued(self, key: str, requeues: int, delay: float) -> None:
        self.queue_retries.inc()

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(
        self,
        claim_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
    ) -> Optional[Dict[str, Any]]:
        return {'start_time': time.time()}

    def on_resource_sync_complete(
        self,
        claim_name: str,
        resource_name: str,
        namespace: str,
        resource_type: str,
        state: Optional[Dict[str, Any]],
        operation: str,
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Record resource operation duration and result."""
        result = 'success' if success else 'failure'
        if state:
            self.resource_sync_duration.labels(
                namespace=namespace,
                resource_type=resource_type,
                operation=operation,
                result=result,
            ).observe(time.time() - state['start_time'])

        self.resource_sync_total.labels(
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            result=result,
        ).inc()

    # =============================================================================
    # Replica And Resize Hooks
    # =============================================================================

    def on_replicas_created(self, name: str, namespace: str, count: int) -> None:
        self.replicas_created.labels(namespace=namespace).inc(count)

    def on_resize_start(
        self, name: str, namespace: str, from_capacity: str, to_capacity: str
    ) -> Optional[Dict[str, Any]]:
        return {'start_time': time.time()}

    def on_resize_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
    ) -> None:
        result = 'success' if success else 'failure'
        if state:
            self.resize_duration.labels(namespace=namespace, result=result).observe(
                time.time() - state['start_time']
            )
        self.resize_total.labels(namespace=namespace, result=result).inc()
