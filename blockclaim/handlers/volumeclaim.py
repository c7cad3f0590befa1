import kopf
from logging import Logger
from blockclaim.controller.events import ClaimEvent
from blockclaim.resources.custom import GROUP, VERSION, VolumeClaimClient

KIND = VolumeClaimClient.KIND

# Watch event types mapped onto ingestion notifications. The initial listing
# arrives with no type and counts as an add.
EVENT_TYPES = {
    None: ClaimEvent.ADDED,
    "ADDED": ClaimEvent.ADDED,
    "MODIFIED": ClaimEvent.UPDATED,
    "DELETED": ClaimEvent.DELETED,
}


@kopf.on.event(GROUP, VERSION, VolumeClaimClient.PLURAL_NAME)
async def on_volume_claim_event(event, memo: kopf.Memo, logger: Logger, **kwargs):
    """Feed claim watch events into the controller's work queue."""
    event_type = EVENT_TYPES.get(event.get("type"))
    if event_type is None:
        logger.debug(f"Ignoring {KIND} watch event {event.get('type')!r}")
        return
    await memo.context.ingestor.handle(event_type, event.get("object"))
