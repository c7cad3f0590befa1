import logging
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional, Union
from blockclaim.controller.queue import WorkQueue
from blockclaim.utils.errors import InvalidKeyError
from blockclaim.utils.helpers import meta_namespace_key

logger = logging.getLogger(__name__)


class ClaimEvent:
    """Notification types delivered by the event source."""

    ADDED = "Added"
    UPDATED = "Updated"
    DELETED = "Deleted"


class Tombstone(NamedTuple):
    """Final state of an object whose deletion was observed late.

    `obj` is the last state known before the object disappeared and may be
    missing entirely.
    """

    key: str
    obj: Optional[Dict[str, Any]] = None


WorkFilter = Callable[[Dict[str, Any]], Awaitable[bool]]


class EventIngestor:
    """Turns claim notifications into work queue keys.

    Adds and deletes are always queued. An update is queued only when
    `has_pending_work` says the new object still needs reconciling, which
    keeps periodic resyncs of converged claims off the queue.
    """

    queue: WorkQueue

    def __init__(self, queue: WorkQueue, has_pending_work: WorkFilter) -> None:
        self.queue = queue
        self.has_pending_work = has_pending_work

    async def handle(
        self,
        event_type: str,
        obj: Union[Dict[str, Any], Tombstone],
        old: Dict[str, Any] = None,
    ) -> None:
        if event_type == ClaimEvent.ADDED:
            await self.on_add(obj)
        elif event_type == ClaimEvent.UPDATED:
            await self.on_update(old, obj)
        elif event_type == ClaimEvent.DELETED:
            await self.on_delete(obj)
        else:
            logger.warning(f"Ignoring unknown event type {event_type!r}")

    async def on_add(self, obj: Dict[str, Any]) -> None:
        self.enqueue(obj)

    async def on_update(self, old: Optional[Dict[str, Any]], new: Dict[str, Any]) -> None:
        try:
            pending = await self.has_pending_work(new)
        except Exception as e:
            logger.warning(f"Couldn't check pending work, queuing anyway: {e}")
            pending = True
        if pending:
            self.enqueue(new)

    async def on_delete(self, obj: Union[Dict[str, Any], Tombstone]) -> None:
        if isinstance(obj, Tombstone):
            if obj.key:
                self.queue.add(obj.key)
                return
            obj = obj.obj
        self.enqueue(obj)

    def enqueue(self, obj: Optional[Dict[str, Any]]) -> None:
        try:
            key = meta_namespace_key(obj)
        except InvalidKeyError as e:
            logger.error(f"Couldn't get key for object: {e}")
            return
        self.queue.add(key)
