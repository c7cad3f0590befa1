import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional
from blockclaim.controller.events import EventIngestor, Tombstone
from blockclaim.controller.queue import WorkQueue
from blockclaim.resources.base import ResourceClient
from blockclaim.utils.errors import InvalidKeyError
from blockclaim.utils.helpers import meta_namespace_key

logger = logging.getLogger(__name__)

SyncHandler = Callable[[str], Awaitable[None]]


class WorkerPool:
    """Fixed number of workers draining the work queue.

    A failed key is requeued with rate limiting; a successful one has its
    backoff reset. Workers stop once `stop` is set, after finishing the key in
    hand.
    """

    queue: WorkQueue

    def __init__(
        self,
        queue: WorkQueue,
        handler: SyncHandler,
        workers: int = 2,
        stop: asyncio.Event = None,
    ) -> None:
        self.queue = queue
        self.handler = handler
        self.workers = workers
        self.stop = stop or asyncio.Event()
        self._tasks: List[asyncio.Task] = []

    async def run(self) -> None:
        """Start the workers and wait until they have all exited."""
        logger.info(f"Starting {self.workers} workers")
        self._tasks = [
            asyncio.create_task(self._worker(idx), name=f"worker-{idx}")
            for idx in range(self.workers)
        ]
        await self.stop.wait()
        logger.info("Shutting down workers")
        self.queue.shut_down()
        await asyncio.gather(*self._tasks)
        logger.info("Workers stopped")

    async def _worker(self, idx: int) -> None:
        while not self.stop.is_set():
            key = await self.queue.get()
            if key is None:
                break
            await self.process(key)

    async def process(self, key: str) -> bool:
        """Sync one key; returns whether the sync succeeded."""
        try:
            await self.handler(key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Error syncing {key!r} (retry {self.queue.num_requeues(key) + 1}): {e}",
                exc_info=True,
            )
            self.queue.add_rate_limited(key)
            return False
        else:
            self.queue.forget(key)
            logger.debug(f"Successfully synced {key!r}")
            return True
        finally:
            self.queue.done(key)


class Resyncer:
    """Periodically replays every claim through the event ingestor.

    Each tick delivers every listed claim as an update; a claim listed on the
    previous tick but missing now is delivered as a tombstoned delete.
    """

    def __init__(
        self,
        claims: ResourceClient,
        ingestor: EventIngestor,
        interval: float,
        stop: asyncio.Event = None,
        namespace: Optional[str] = None,
    ) -> None:
        self.claims = claims
        self.ingestor = ingestor
        self.interval = interval
        self.stop = stop or asyncio.Event()
        self.namespace = namespace
        self._last: Dict[str, Dict] = {}

    async def run(self) -> None:
        while not self.stop.is_set():
            try:
                await asyncio.wait_for(self.stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            else:
                break
            try:
                await self.resync()
            except Exception as e:
                logger.error(f"Resync of volume claims failed: {e}", exc_info=True)

    async def resync(self) -> int:
        """Run one tick; returns the number of claims listed."""
        seen = {}
        for body in await self.claims.list(self.namespace):
            try:
                key = meta_namespace_key(body)
            except InvalidKeyError as e:
                logger.error(f"Couldn't get key for object: {e}")
                continue
            seen[key] = body
            await self.ingestor.on_update(self._last.get(key), body)
        for key, body in self._last.items():
            if key not in seen:
                await self.ingestor.on_delete(Tombstone(key, body))
        self._last = seen
        return len(seen)
