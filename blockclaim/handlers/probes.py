import datetime
import kopf


# Liveness probe
@kopf.on.probe(id='now')
def get_current_timestamp(**kwargs):
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


@kopf.on.probe(id='queue')
def get_queue_depth(memo: kopf.Memo, **kwargs):
    context = getattr(memo, "context", None)
    return context.queue.depth if context is not None else 0
