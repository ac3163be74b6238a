"""Event notifier - best-effort publication of custody events to Redis."""

import abc
import json
import logging
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict

import redis

from config import get_redis_host_and_port
from custody.domain.events import Event

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "custody"


def event_payload(event: Event) -> Dict[str, Any]:
    """Convert event to a JSON-ready dict, handling datetimes and enums."""
    payload = asdict(event)
    for key, value in payload.items():
        if isinstance(value, datetime):
            payload[key] = value.isoformat()
        elif isinstance(value, Enum):
            payload[key] = value.value
    return payload


class AbstractNotifier(abc.ABC):

    @abc.abstractmethod
    def emit(self, event_name: str, payload: Dict[str, Any]):
        raise NotImplementedError


class RedisNotifier(AbstractNotifier):
    """Publishes each event as JSON on channel ``custody:<EventName>``."""

    def __init__(self, client: redis.Redis = None):
        self.client = client or redis.Redis(**get_redis_host_and_port())

    def emit(self, event_name: str, payload: Dict[str, Any]):
        channel = f"{CHANNEL_PREFIX}:{event_name}"
        logger.info("publishing: channel=%s, payload=%s", channel, payload)
        self.client.publish(channel, json.dumps(payload))
