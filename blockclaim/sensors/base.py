"""Base sensor classes for operator monitoring.

This module defines the base OperatorSensor class that provides lifecycle hooks
for monitoring controller events. All hooks are no-ops by default, allowing
subclasses to override only the events they care about.

The hook pattern:
- Hooks come in pairs: on_X_start() and on_X_complete()
- Start hooks return an optional state dict for tracking multi-phase operations
- Complete hooks receive the state dict from their corresponding start hook
- All hooks are optional - sensors only implement what they need
"""

from typing import Dict, Optional, Any
import logging

logger = logging.getLogger(__name__)


class OperatorSensor:
    """Base sensor class for volume claim controller monitoring.

    Hooks cover the reconciliation lifecycle (work queue and sync loop),
    operations on provisioned resources, replica distribution and resizes.

    Example:
        class LoggingSensor(OperatorSensor):
            def on_reconcile_start(self, name, namespace, observed_state) -> Dict:
                return {'start_time': time.time()}

            def on_reconcile_complete(self, name, namespace, state, success, error=None):
                duration = time.time() - state['start_time']
                logger.info(f"Reconciled {name} in {duration}s")
    """

    # =============================================================================
    # Reconciliation Lifecycle Hooks
    # =============================================================================

    def on_reconcile_start(
        self,
        name: str,
        namespace: str,
        observed_state: str,
    ) -> Optional[Dict[str, Any]]:
        """Called when a claim sync begins.

        Args:
            name: VolumeClaim name
            namespace: Kubernetes namespace
            observed_state: State the claim was observed in (New, Provisioning,
                Bound, Resizing, Terminating)

        Returns:
            Optional state dict passed to on_reconcile_complete
        """
        pass

    def on_reconcile_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
        error: Optional[Exception] = None,
    ) -> None:
        """Called when a claim sync completes.

        Args:
            name: VolumeClaim name
            namespace: Kubernetes namespace
            state: State dict returned from on_reconcile_start
            success: Whether the sync succeeded
            error: Exception if the sync failed
        """
        pass

    def on_reconcile_queued(self, key: str, queue_depth: int) -> None:
        """Called when a key is added to the work queue."""
        pass

    def on_reconcile_dequeued(self, key: str, wait_time: float) -> None:
        """Called when a worker takes a key off the work queue.

        Args:
            key: `namespace/name` work queue key
            wait_time: Time spent in queue (seconds)
        """
        pass

    def on_reconcile_requeued(self, key: str, requeues: int, delay: float) -> None:
        """Called when a failed key is scheduled for a rate limited retry."""
        pass

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
        """Called before a provisioned resource is ensured.

        Args:
            claim_name: Owning VolumeClaim name
            resource_name: Actual K8s resource name being synced
            namespace: Kubernetes namespace
            resource_type: Type of resource (Service, BlockVolume, Deployment, ...)

        Returns:
            Optional state dict passed to on_resource_sync_complete
        """
        pass

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
        """Called after a provisioned resource is ensured.

        Args:
            operation: Operation performed (created, no-op)
        """
        pass

    # =============================================================================
    # Replica And Resize Hooks
    # =============================================================================

    def on_replicas_created(self, name: str, namespace: str, count: int) -> None:
        """Called after the distributor created `count` replicas for a claim."""
        pass

    def on_resize_start(
        self, name: str, namespace: str, from_capacity: str, to_capacity: str
    ) -> Optional[Dict[str, Any]]:
        pass

    def on_resize_complete(
        self,
        name: str,
        namespace: str,
        state: Optional[Dict[str, Any]],
        success: bool,
    ) -> None:
        pass

    # =============================================================================
    # Utility Methods
    # =============================================================================

    def asdict(self) -> Dict[str, Any]:
        """Return sensor state as dictionary.

        Overridden by sensors that maintain state.
        """
        return {}
