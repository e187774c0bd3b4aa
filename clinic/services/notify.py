import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

GROUP = "updates"


def broadcast_change(entity: str, action: str, record_id=None) -> bool:
    """Tell websocket listeners that a record changed. False when there is no channel layer."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    event = {
        "type": "entity.changed",
        "entity": entity,
        "action": action,
        "id": None if record_id is None else str(record_id),
        "ts": timezone.now().isoformat(),
    }
    async_to_sync(channel_layer.group_send)(GROUP, event)
    logger.debug("Broadcast %s %s %s", action, entity, record_id)
    return True
