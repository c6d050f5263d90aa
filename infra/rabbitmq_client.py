"""
RabbitMQ push backend.

Purpose:
- Publish disruption notifications to a durable topic exchange; the routing key
  is the push topic (metro_disruptions, green_line, ...)
- A push gateway binds one queue per topic and delivers to subscribed devices
- Direct-to-device messages go to the "device.<token>" routing key

Production notes:
- Messages are persistent; the gateway should ack after delivery
- Bind a dead-letter exchange on the gateway side for undeliverable messages
"""
import json
import logging
import uuid
from typing import Any, Dict, Optional

import aio_pika  # async RabbitMQ client

from config.settings import settings
from services.push_backends import PushBackend

logger = logging.getLogger(__name__)


class RabbitMQPushBackend(PushBackend):
    def __init__(self, url: str | None = None, exchange_name: str | None = None):
        self.url = url or settings.RABBITMQ_URL
        self.exchange_name = exchange_name or settings.PUSH_EXCHANGE
        self._connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
        self._channel: Optional[aio_pika.abc.AbstractChannel] = None
        self._exchange: Optional[aio_pika.abc.AbstractExchange] = None

    async def _ensure_connection(self):
        """
        Lazily connect to RabbitMQ and declare the exchange.
        """
        if self._connection and not self._connection.is_closed and self._exchange is not None:
            return
        logger.info("[RabbitMQPushBackend] Connecting to %s", self.url)
        self._connection = await aio_pika.connect_robust(self.url)
        self._channel = await self._connection.channel(publisher_confirms=True)
        self._exchange = await self._channel.declare_exchange(
            self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
        )
        logger.info("[RabbitMQPushBackend] Connected, exchange '%s' declared", self.exchange_name)

    async def _publish(self, routing_key: str, message: Dict[str, Any]) -> str:
        await self._ensure_connection()
        assert self._exchange is not None
        message_id = str(uuid.uuid4())
        body = json.dumps(message).encode("utf-8")
        await self._exchange.publish(
            aio_pika.Message(
                body=body,
                content_type="application/json",
                message_id=message_id,
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=routing_key,
        )
        logger.info("[RabbitMQPushBackend] Published %s to %s", message_id, routing_key)
        return message_id

    async def publish(self, topic: str, message: Dict[str, Any]) -> str:
        return await self._publish(topic, {**message, "topic": topic})

    async def send_to_token(self, token: str, message: Dict[str, Any]) -> str:
        return await self._publish(f"device.{token}", {**message, "token": token})

    async def close(self):
        if self._connection and not self._connection.is_closed:
            await self._connection.close()
            logger.info("[RabbitMQPushBackend] Disconnected")
        self._connection = None
        self._channel = None
        self._exchange = None
