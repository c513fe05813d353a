"""
Presence-changed notifications.

Every accepted location ping is published on a Redis pub/sub channel; live
tracking consumers (websocket gateways, dispatch consoles) subscribe there.
"""

import json
import logging
from typing import Any, Dict

from taximeter.app.core.config import settings

logger = logging.getLogger("taximeter.presence")


async def publish_presence_changed(redis, event: Dict[str, Any]) -> bool:
    """
    Publish a presence-changed event.

    A failed publish is logged and reported as False; the location write it
    follows is already committed and stays valid.
    """
    try:
        await redis.publish(settings.presence_channel, json.dumps(event, default=str))
        return True
    except Exception:
        logger.exception(
            "Presence notification not published",
            extra={"driver_id": event.get("driverId"), "channel": settings.presence_channel},
        )
        return False
