"""
Kafka Order Consumer

Reads order events from the orders topic and hands them to the order service.

CONSUMER LOOP:
┌─────────────────────────────────────────────────────────────────────────┐
│  1. Poll for a message (bounded by poll_timeout_seconds)                │
│  2. Decode value (bytes → JSON object)                                  │
│  3. Validate (JSON object → Order, all violations collected)            │
│  4. service.create_order (PostgreSQL, then cache)                       │
│  5. Commit the message offset                                           │
│  6. Repeat until stop()                                                 │
└─────────────────────────────────────────────────────────────────────────┘

ACKNOWLEDGEMENT RULES:
- Success                 → commit
- DecodeError             → log, commit (poison message, skipped)
- OrderValidationError    → log, commit (poison message, skipped)
- PersistenceError        → retry in-process while transient, then ask the
                            RedeliveryPolicy; by default no commit, the
                            partition is rewound to the message offset and the
                            next poll redelivers it
- Unexpected exception    → same as a persistence failure

Offsets are committed synchronously and only after the order is in
PostgreSQL, so delivery is at-least-once. confluent_kafka does not redeliver
an uncommitted message on its own while the consumer stays in the group;
the explicit seek() does that.

SHUTDOWN:
stop() only flips a flag. The message being handled is always finished; the
flag is checked before the next poll. The Kafka client is closed when the
loop exits. The database pool belongs to main and is closed there.
"""

import logging
import threading
import time
from typing import Any, Optional

from confluent_kafka import Consumer, KafkaError, KafkaException, Message, TopicPartition

from src.order_service.config import ServiceConfig
from src.order_service.errors import DecodeError, OrderValidationError, PersistenceError
from src.order_service.ports import OrderCreator
from src.order_service.redelivery import RedeliveryPolicy
from src.order_service.schemas import Order
from src.order_service.validator import OrderValidator, decode_order_event
from src.shared.logger import CorrelationAdapter

_FATAL_ERROR_CODES = (
    KafkaError._ALL_BROKERS_DOWN,
    KafkaError._AUTHENTICATION,
    KafkaError.TOPIC_AUTHORIZATION_FAILED,
    KafkaError.GROUP_AUTHORIZATION_FAILED,
)


class OrderConsumer:
    """
    Kafka consumer for order events.

    Attributes:
        config: Service configuration
        consumer: confluent_kafka Consumer (or a test double with the same methods)
        service: Where valid orders are sent
        validator: Turns decoded events into Orders
        redelivery_policy: Decides what happens after a storage failure
        running: Loop flag, cleared by stop()
        messages_processed: Orders stored and acknowledged
        messages_skipped: Poison messages acknowledged without storing
        messages_failed: Messages left unacknowledged for redelivery
    """

    def __init__(
        self,
        config: ServiceConfig,
        service: OrderCreator,
        validator: OrderValidator,
        kafka_consumer: Optional[Any] = None,
        redelivery_policy: Optional[RedeliveryPolicy] = None,
    ):
        self.config = config
        self.service = service
        self.validator = validator
        self.redelivery_policy = redelivery_policy or RedeliveryPolicy.from_config(config)
        self.logger = logging.getLogger(__name__)

        # Metrics counters
        self.messages_processed = 0
        self.messages_skipped = 0
        self.messages_failed = 0
        self.running = True

        # Wakes backoff sleeps early when stop() is called
        self._stop_event = threading.Event()
        self._closed = False

        self.consumer = kafka_consumer if kafka_consumer is not None else self._create_consumer()
        self.consumer.subscribe([config.kafka_topic_orders])

        self.logger.info(
            "Order consumer initialized",
            extra={
                "topic": config.kafka_topic_orders,
                "group_id": config.consumer_group_id,
                "bootstrap_servers": config.kafka_bootstrap_servers,
            },
        )

    def _create_consumer(self) -> Consumer:
        kafka_config = self.config.get_kafka_config()
        self.logger.debug("Creating Kafka consumer", extra={"config": kafka_config})
        return Consumer(kafka_config)

    # ==========================================================================
    # LOOP
    # ==========================================================================

    def start(self) -> None:
        """
        Consume until stop() is called or a fatal Kafka error occurs.

        Blocking; main runs it in a background thread. The Kafka client is
        closed on the way out.
        """
        self.logger.info("Starting consumer loop...")

        try:
            while self.running:
                msg = self.consumer.poll(timeout=self.config.poll_timeout_seconds)

                if msg is None:
                    continue

                if msg.error():
                    self._handle_kafka_error(msg.error())
                    continue

                self._process_message(msg)

        except Exception:
            self.logger.error("Fatal error in consumer loop", exc_info=True)
            raise
        finally:
            self._shutdown()

    def process_messages(self, max_messages: int, timeout: Optional[float] = None) -> int:
        """
        Handle at most max_messages messages, then return.

        Stops early when a poll comes back empty or stop() is called. Does not
        close the Kafka client.

        Returns:
            Number of messages handled (acknowledged or not)
        """
        poll_timeout = self.config.poll_timeout_seconds if timeout is None else timeout
        handled = 0

        while self.running and handled < max_messages:
            msg = self.consumer.poll(timeout=poll_timeout)
            if msg is None:
                break
            if msg.error():
                self._handle_kafka_error(msg.error())
                continue

            self._process_message(msg)
            handled += 1

        return handled

    # ==========================================================================
    # MESSAGE HANDLING
    # ==========================================================================

    def _process_message(self, msg: Message) -> bool:
        """
        Handle one message and acknowledge it or leave it for redelivery.

        Returns:
            True if the offset was committed
        """
        start_time = time.time()
        order_uid = None

        try:
            data = decode_order_event(msg.value())
            if isinstance(data.get("order_uid"), str):
                order_uid = data["order_uid"]

            order = self.validator.validate(data)
            order_logger = CorrelationAdapter(self.logger, {"correlation_id": order.order_uid})
            order_logger.debug(
                "Processing message",
                extra={"partition": msg.partition(), "offset": msg.offset()},
            )

            self._create_with_retry(order, order_logger)

        except DecodeError as e:
            self.messages_skipped += 1
            self.logger.warning(
                "Undecodable message skipped",
                extra={"error": str(e), "partition": msg.partition(), "offset": msg.offset()},
            )
            self._commit(msg)
            return True

        except OrderValidationError as e:
            self.messages_skipped += 1
            self.logger.warning(
                "Invalid order skipped",
                extra={
                    "correlation_id": order_uid,
                    "violations": [v._asdict() for v in e.violations],
                    "partition": msg.partition(),
                    "offset": msg.offset(),
                },
            )
            self._commit(msg)
            return True

        except PersistenceError as e:
            if self.redelivery_policy.should_redeliver(e):
                self.messages_failed += 1
                self.logger.error(
                    "Failed to store order, message will be redelivered",
                    extra={
                        "correlation_id": order_uid,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "transient": e.transient,
                    },
                )
                self._rewind(msg)
                return False

            self.messages_skipped += 1
            self.logger.warning(
                "Order not stored, message acknowledged by redelivery policy",
                extra={"correlation_id": order_uid, "error": str(e)},
            )
            self._commit(msg)
            return True

        except Exception:
            self.messages_failed += 1
            self.logger.error(
                "Unexpected error processing message, message will be redelivered",
                exc_info=True,
                extra={"correlation_id": order_uid},
            )
            self._rewind(msg)
            return False

        self._commit(msg)
        self.messages_processed += 1
        processing_time = (time.time() - start_time) * 1000

        order_logger.info(
            "Order processed successfully",
            extra={
                "items_count": len(order.items),
                "processing_time_ms": round(processing_time, 2),
                "messages_processed": self.messages_processed,
            },
        )
        return True

    def _create_with_retry(self, order: Order, logger: CorrelationAdapter) -> None:
        """
        Call service.create_order, retrying transient storage failures.

        Exponential backoff: retry_backoff_ms, then x2 per attempt, up to
        max_retries attempts in total.

        Raises:
            PersistenceError: Non-transient failure, or retries exhausted
        """
        for attempt in range(self.config.max_retries):
            try:
                self.service.create_order(order)
                return
            except PersistenceError as e:
                if not e.transient or not self.running:
                    raise
                if attempt == self.config.max_retries - 1:
                    logger.error(
                        "Max retries exhausted, giving up",
                        extra={"attempts": self.config.max_retries},
                    )
                    raise

                backoff_s = self.config.retry_backoff_ms * (2**attempt) / 1000
                logger.warning(
                    f"Database error, retrying in {backoff_s}s",
                    extra={
                        "attempt": attempt + 1,
                        "max_retries": self.config.max_retries,
                        "error": str(e),
                    },
                )
                self._stop_event.wait(backoff_s)

    def _commit(self, msg: Message) -> None:
        """Synchronously commit the offset after msg."""
        try:
            self.consumer.commit(message=msg, asynchronous=False)
        except KafkaException:
            # Not fatal: the message is handed out again after a restart or rebalance
            self.logger.error(
                "Failed to commit offset",
                exc_info=True,
                extra={"partition": msg.partition(), "offset": msg.offset()},
            )

    def _rewind(self, msg: Message) -> None:
        """Seek the partition back to msg so the next poll returns it again."""
        try:
            self.consumer.seek(TopicPartition(msg.topic(), msg.partition(), msg.offset()))
        except KafkaException:
            self.logger.error(
                "Failed to rewind partition",
                exc_info=True,
                extra={"partition": msg.partition(), "offset": msg.offset()},
            )

        backoff_s = self.config.redelivery_backoff_ms / 1000
        if backoff_s > 0:
            self._stop_event.wait(backoff_s)

    def _handle_kafka_error(self, error: KafkaError) -> None:
        """
        Handle errors delivered through poll().

        _PARTITION_EOF is informational. Broker-down and authorization errors
        (or any error librdkafka marks fatal) stop the consumer.
        """
        if error.code() == KafkaError._PARTITION_EOF:
            self.logger.debug("Reached end of partition")
            return

        self.logger.error(
            f"Kafka error: {error.str()}",
            extra={"error_code": error.code(), "error_name": error.name()},
        )

        if error.fatal() or error.code() in _FATAL_ERROR_CODES:
            self.logger.critical("Fatal Kafka error, shutting down")
            self.stop()

    # ==========================================================================
    # SHUTDOWN
    # ==========================================================================

    def stop(self) -> None:
        """Ask the loop to exit before its next poll. Safe to call more than once."""
        if self.running:
            self.logger.info("Stopping consumer...")
        self.running = False
        self._stop_event.set()

    def _shutdown(self) -> None:
        """Close the Kafka client and log final counters."""
        if self._closed:
            return
        self._closed = True

        self.logger.info(
            "Consumer shutting down",
            extra={
                "messages_processed": self.messages_processed,
                "messages_skipped": self.messages_skipped,
                "messages_failed": self.messages_failed,
            },
        )

        try:
            self.consumer.close()
            self.logger.info("Kafka consumer closed")
        except KafkaException:
            self.logger.error("Error closing Kafka consumer", exc_info=True)

    def close(self) -> None:
        """Stop the loop and close the Kafka client (for callers of process_messages)."""
        self.stop()
        self._shutdown()
