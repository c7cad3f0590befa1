"""Sensor delegation for fan-out pattern.

SensorDelegate routes sensor events to multiple monitoring backends at once.
Each backend receives the same events and keeps independent state, and a
failing backend never breaks the controller or the other backends.
"""

from typing import Set, Dict, Optional, Any
import logging

from blockclaim.sensors.base import OperatorSensor

logger = logging.getLogger(__name__)


class SensorDelegate(OperatorSensor):
    """Delegate sensor that fans out events to multiple backends.

    State tracking is handled per-sensor: start hooks return a dict mapping
    each sensor to its own state and complete hooks hand each sensor back
    its entry.

    Example:
        delegate = SensorDelegate()
        delegate.add(PrometheusMonitor())

        state = delegate.on_reconcile_start("data", "default", "New")
        delegate.on_reconcile_complete("data", "default", state, True)
    """

    def __init__(self) -> None:
        self._sensors: Set[OperatorSensor] = set()

    def add(self, sensor: OperatorSensor) -> None:
        logger.info(f"Adding sensor: {sensor.__class__.__name__}")
        self._sensors.add(sensor)

    def remove(self, sensor: OperatorSensor) -> None:
        logger.info(f"Removing sensor: {sensor.__class__.__name__}")
        self._sensors.discard(sensor)

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._sensors)} sensors")
        self._sensors.clear()

    def __len__(self) -> int:
        return len(self._sensors)

    def _start(self, hook: str, *args: Any) -> Optional[Dict[OperatorSensor, Any]]:
        if not self._sensors:
            return None
        states = {}
        for sensor in self._sensors:
            try:
                state = getattr(sensor, hook)(*args)
                if state is not None:
                    states[sensor] = state
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )
        return states if states else None

    def _complete(
        self, hook: str, state: Optional[Dict[OperatorSensor, Any]], *args: Any, **kwargs: Any
    ) -> None:
        """Call a complete hook; the sensor's own state is passed as `state`."""
        for sensor in self._sensors:
            try:
                sensor_state = state.get(sensor) if state else None
                getattr(sensor, hook)(*args, state=sensor_state, **kwargs)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    def _notify(self, hook: str, *args: Any) -> None:
        for sensor in self._sensors:
            try:
                getattr(sensor, hook)(*args)
            except Exception as e:
                logger.error(
                    f"Error in {sensor.__class__.__name__}.{hook}: {e}",
                    exc_info=True,
                )

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(self, name, namespace, observed_state):
        return self._start("on_reconcile_start", name, namespace, observed_state)

    def on_reconcile_complete(self, name, namespace, state, success, error=None):
        self._complete(
            "on_reconcile_complete",
            state,
            name=name,
            namespace=namespace,
            success=success,
            error=error,
        )

    def on_reconcile_queued(self, key, queue_depth):
        self._notify("on_reconcile_queued", key, queue_depth)

    def on_reconcile_dequeued(self, key, wait_time):
        self._notify("on_reconcile_dequeued", key, wait_time)

    def on_reconcile_requeued(self, key, requeues, delay):
        self._notify("on_reconcile_requeued", key, requeues, delay)

    # =============================================================================
    # Resource Operation Hooks
    # =============================================================================

    def on_resource_sync_start(self, claim_name, resource_name, namespace, resource_type):
        return self._start(
            "on_resource_sync_start", claim_name, resource_name, namespace, resource_type
        )

    def on_resource_sync_complete(
        self,
        claim_name,
        resource_name,
        namespace,
        resource_type,
        state,
        operation,
        success,
        error=None,
    ):
        self._complete(
            "on_resource_sync_complete",
            state,
            claim_name=claim_name,
            resource_name=resource_name,
            namespace=namespace,
            resource_type=resource_type,
            operation=operation,
            success=success,
            error=error,
        )

    # =============================================================================
    # Replica And Resize Hooks
    # =============================================================================

    def on_replicas_created(self, name, namespace, count):
        self._notify("on_replicas_created", name, namespace, count)

    def on_resize_start(self, name, namespace, from_capacity, to_capacity):
        return self._start("on_resize_start", name, namespace, from_capacity, to_capacity)

    def on_resize_complete(self, name, namespace, state, success):
        self._complete(
            "on_resize_complete", state, name=name, namespace=namespace, success=success
        )

    def asdict(self) -> Dict[str, Any]:
        return {
            sensor.__class__.__name__: sensor.asdict() for sensor in self._sensors
        }
