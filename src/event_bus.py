"""
Event Bus Client for the BOM Costing Service

Publishes BOM and cost change notifications via Redis pub/sub, with an
HTTP webhook fallback when Redis is unavailable or nobody is listening.
"""

import json
import logging
from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum
import httpx
import redis
from uuid import uuid4

from .config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

SOURCE_MODULE = "bom"


class BomOutboundEvent(str, Enum):
    """Events this service publishes"""
    BOM_SEEDED = "bom_seeded"
    BOM_REPLACED = "bom_replaced"
    BOM_REBUILT = "bom_rebuilt"
    COST_SETTINGS_UPDATED = "cost_settings_updated"


class EventBus:
    """Redis pub/sub event bus for inter-module communication."""

    def __init__(self, redis_url: Optional[str] = None, webhook_url: Optional[str] = None):
        self.redis_url = settings.redis_url if redis_url is None else redis_url
        self.webhook_url = settings.event_webhook_url if webhook_url is None else webhook_url
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> Optional[redis.Redis]:
        """Lazy initialization of Redis client."""
        if not self.redis_url:
            return None

        if self._client is None:
            try:
                self._client = redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5
                )
                self._client.ping()
            except (redis.RedisError, ValueError) as e:
                logger.warning(f"Failed to connect to Redis: {e}")
                self._client = None

        return self._client

    def is_connected(self) -> bool:
        """Check if Redis is connected."""
        if not self.client:
            return False
        try:
            self.client.ping()
            return True
        except redis.RedisError:
            return False

    def publish(
        self,
        event_type: BomOutboundEvent,
        payload: Dict[str, Any],
        target_module: Optional[str] = None
    ) -> str:
        """Publish an event. Failures are logged, never raised."""
        event_id = str(uuid4())

        event = {
            "event_id": event_id,
            "event_type": event_type.value if isinstance(event_type, BomOutboundEvent) else event_type,
            "source_module": SOURCE_MODULE,
            "target_module": target_module,
            "payload": payload,
            "timestamp": datetime.utcnow().isoformat()
        }

        if self.client:
            try:
                channel = f"bom:events:{target_module}" if target_module else "bom:events:broadcast"
                receivers = self.client.publish(channel, json.dumps(event))
                logger.info(f"Published event {event['event_type']} to {channel} ({receivers} receivers)")
                if receivers > 0:
                    return event_id
            except redis.RedisError as e:
                logger.warning(f"Failed to publish to Redis: {e}")

        if self.webhook_url:
            try:
                response = httpx.post(self.webhook_url, json=event, timeout=10.0)
                if response.status_code < 300:
                    logger.info(f"Published event {event['event_type']} via HTTP webhook")
                else:
                    logger.warning(f"Webhook rejected event {event['event_type']}: {response.status_code}")
            except httpx.HTTPError as e:
                logger.warning(f"Failed to publish via HTTP fallback: {e}")
        else:
            logger.debug(f"Event {event['event_type']} not delivered: no transport configured")

        return event_id

    def disconnect(self):
        """Close Redis connection."""
        if self._client:
            self._client.close()
            self._client = None


# Global event bus instance
event_bus = EventBus()


def publish_bom_rebuilt(project_id: int, item_count: int, features: Dict[str, Any]) -> str:
    """Notify listeners that a features cascade rebuilt a project's BOM."""
    return event_bus.publish(
        BomOutboundEvent.BOM_REBUILT,
        {
            "project_id": project_id,
            "item_count": item_count,
            "features": features,
        }
    )


def publish_bom_replaced(project_id: int, item_count: int, seeded: bool = False) -> str:
    """Notify listeners that a project's BOM was seeded or fully replaced."""
    return event_bus.publish(
        BomOutboundEvent.BOM_SEEDED if seeded else BomOutboundEvent.BOM_REPLACED,
        {
            "project_id": project_id,
            "item_count": item_count,
        }
    )


def publish_cost_settings_updated(project_id: int, settings_record: Dict[str, Any],
                                  landed_cost: float) -> str:
    """Notify listeners that a project's costing inputs changed."""
    return event_bus.publish(
        BomOutboundEvent.COST_SETTINGS_UPDATED,
        {
            "project_id": project_id,
            "settings": settings_record,
            "landed_cost": landed_cost,
        }
    )
