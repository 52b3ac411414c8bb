"""
Kafka Order Event Publisher

Publishes order events (JSON) to the orders topic. Used to feed the order
service in development and integration tests.

PARTITION KEY:
- Key = order_uid, so redeliveries and republished copies of one order land
  on the same partition and keep their relative order

DELIVERY:
- enable.idempotence + acks=all: the broker does not store duplicates
  caused by producer retries
- Delivery reports arrive through the callback during poll()/flush()
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from confluent_kafka import KafkaError, KafkaException, Producer

from src.producer.config import ProducerConfig


class OrderProducer:
    """
    Kafka producer for order events.

    Attributes:
        topic: Target topic
        producer: confluent_kafka.Producer (or a test double)
        delivered: Successful delivery reports seen so far
        failed: Failed delivery reports seen so far
    """

    def __init__(
        self,
        config: ProducerConfig,
        delivery_callback: Optional[Callable] = None,
        kafka_producer: Optional[Any] = None,
    ):
        """
        Args:
            config: Producer configuration
            delivery_callback: Replaces the default logging callback
            kafka_producer: Pre-built producer (tests); built from config otherwise

        Raises:
            KafkaException: If the Kafka client cannot be created
        """
        self.config = config
        self.topic = config.kafka_topic_orders
        self.logger = logging.getLogger(__name__)
        self.delivery_callback = delivery_callback or self._default_delivery_callback
        self.delivered = 0
        self.failed = 0

        if kafka_producer is not None:
            self.producer = kafka_producer
            return

        producer_config = config.get_kafka_config()
        try:
            self.producer = Producer(producer_config)
        except KafkaException as e:
            self.logger.error(
                "Failed to initialize Kafka producer",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

        self.logger.info(
            "Kafka producer initialized",
            extra={
                "bootstrap_servers": config.kafka_bootstrap_servers,
                "topic": self.topic,
                "client_id": config.producer_client_id,
                "idempotence": config.enable_idempotence,
            },
        )

    def _default_delivery_callback(self, err: Optional[KafkaError], msg) -> None:
        """Log each delivery report. Runs inside poll()/flush()."""
        order_uid = msg.key().decode("utf-8") if msg is not None and msg.key() else None

        if err is not None:
            self.failed += 1
            self.logger.error(
                "Message delivery failed",
                extra={
                    "correlation_id": order_uid,
                    "error": err.str(),
                    "error_code": err.code(),
                    "topic": msg.topic() if msg is not None else None,
                },
            )
            return

        self.delivered += 1
        self.logger.debug(
            "Message delivered",
            extra={
                "correlation_id": order_uid,
                "topic": msg.topic(),
                "partition": msg.partition(),
                "offset": msg.offset(),
            },
        )

    def produce_order(self, order: Dict[str, Any]) -> None:
        """
        Publish one order event (asynchronous; call flush() to wait for delivery).

        Raises:
            ValueError: Event has no order_uid (nothing to key on)
            BufferError: Local producer queue is full
            KafkaException: Kafka client error
        """
        order_uid = order.get("order_uid")
        if not isinstance(order_uid, str) or not order_uid:
            raise ValueError("Order event missing 'order_uid' (required for the partition key)")

        self.produce_raw(json.dumps(order).encode("utf-8"), key=order_uid)

        self.logger.debug(
            "Order published to Kafka",
            extra={
                "correlation_id": order_uid,
                "topic": self.topic,
                "items_count": len(order.get("items", [])),
            },
        )

    def produce_raw(self, value: bytes, key: Optional[str] = None) -> None:
        """Publish an arbitrary payload, e.g. a malformed event for testing the consumer."""
        try:
            self.producer.produce(
                topic=self.topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                on_delivery=self.delivery_callback,
            )
            # Serve delivery callbacks of earlier messages
            self.producer.poll(0)

        except BufferError:
            self.logger.error(
                "Producer buffer full",
                exc_info=True,
                extra={"correlation_id": key},
            )
            raise

        except KafkaException:
            self.logger.error(
                "Kafka error publishing order",
                exc_info=True,
                extra={"correlation_id": key},
            )
            raise

    def flush(self, timeout: float = 30.0) -> int:
        """
        Wait for all pending messages to be delivered.

        Returns:
            Number of messages still queued (0 = all delivered)
        """
        remaining = self.producer.flush(timeout)

        if remaining > 0:
            self.logger.warning(
                "Producer flush timeout",
                extra={"remaining_messages": remaining, "timeout": timeout},
            )
        else:
            self.logger.info("All messages delivered", extra={"delivered": self.delivered})

        return remaining

    def close(self, timeout: float = 30.0) -> None:
        """Flush pending messages before the process exits."""
        self.logger.info("Shutting down producer")
        remaining = self.flush(timeout=timeout)

        if remaining > 0:
            self.logger.error(
                f"Producer closed with {remaining} messages undelivered",
                extra={"remaining_messages": remaining},
            )
