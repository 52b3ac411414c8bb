"""
Order Event Publisher - Main Entry Point

Publishes order events to Kafka for the order service to consume.

RUN MODES:
- Generated: --count N publishes N Faker-generated orders (rate-limited)
- File:      --file PATH publishes the event(s) in a JSON file, either one
             object or a list of objects, exactly as written

USAGE:
    python -m src.producer.main --count 100
    python -m src.producer.main --count 10 --rate 2 --seed 7
    python -m src.producer.main --file samples/order.json
    python -m src.producer.main --bootstrap-servers kafka:9092 --topic orders
"""

import argparse
import json
import logging
import signal
import sys
import time
from typing import Any, Dict, List, Optional

from confluent_kafka import KafkaException

from src.producer.config import ProducerConfig, load_config
from src.producer.mock_data import MockDataGenerator
from src.producer.producer import OrderProducer
from src.shared.logger import setup_logger

# ==============================================================================
# GLOBAL STATE FOR SIGNAL HANDLING
# ==============================================================================

shutdown_requested = False


def signal_handler(signum, frame):
    """Stop publishing after the current event; pending messages are still flushed."""
    global shutdown_requested
    logging.getLogger(__name__).info(f"Received {signal.Signals(signum).name}, stopping producer...")
    shutdown_requested = True


# ==============================================================================
# PUBLISHING
# ==============================================================================


def load_events(path: str) -> List[Dict[str, Any]]:
    """
    Read events from a JSON file.

    Raises:
        ValueError: File holds neither an object nor a list of objects
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    events = data if isinstance(data, list) else [data]
    if not all(isinstance(event, dict) for event in events):
        raise ValueError(f"{path}: expected a JSON object or a list of JSON objects")
    return events


def publish(producer: OrderProducer, events, rate: int) -> int:
    """
    Publish events, at most rate per second.

    Returns:
        Number of events handed to the producer
    """
    logger = logging.getLogger(__name__)
    sleep_interval = 1.0 / rate
    published = 0

    for event in events:
        if shutdown_requested:
            break

        if event.get("order_uid"):
            producer.produce_order(event)
        else:
            # Unkeyed, e.g. a deliberately invalid event from --file
            producer.produce_raw(json.dumps(event).encode("utf-8"))
        published += 1

        if published % 100 == 0:
            logger.info("Production progress", extra={"orders_published": published})

        time.sleep(sleep_interval)

    return published


def run_producer(config: ProducerConfig, count: int = 0, file: Optional[str] = None) -> int:
    """
    Publish events, flush, and report.

    Returns:
        Exit code (0 = every event delivered, 1 = error)
    """
    logger = logging.getLogger(__name__)

    if file:
        try:
            events = load_events(file)
        except (OSError, ValueError) as e:
            logger.error("Failed to read events file", extra={"file": file, "error": str(e)})
            return 1
    else:
        generator = MockDataGenerator(seed=config.mock_seed)
        events = (generator.generate_order() for _ in range(count))

    try:
        producer = OrderProducer(config)
    except Exception:
        logger.error("Failed to initialize Kafka producer", exc_info=True)
        return 1

    start_time = time.time()
    published = 0
    try:
        published = publish(producer, events, config.producer_rate)
    except (BufferError, KafkaException):
        logger.error("Failed to publish order", exc_info=True)
    finally:
        producer.close(timeout=config.flush_timeout_seconds)

    logger.info(
        "Producer finished",
        extra={
            "orders_published": published,
            "delivered": producer.delivered,
            "failed": producer.failed,
            "elapsed_seconds": round(time.time() - start_time, 2),
        },
    )

    return 0 if producer.failed == 0 and producer.delivered == published else 1


# ==============================================================================
# CLI ARGUMENT PARSING
# ==============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish order events to Kafka",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.producer.main --count 100
  python -m src.producer.main --file samples/order.json
  python -m src.producer.main --count 10 --log-level DEBUG --log-format text
        """,
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--count", type=int, help="Number of generated orders to publish")
    source.add_argument("--file", type=str, help="JSON file with one event or a list of events")

    parser.add_argument("--bootstrap-servers", type=str, help="Kafka bootstrap servers (default: from config)")
    parser.add_argument("--topic", type=str, help="Kafka topic name (default: from config)")
    parser.add_argument("--rate", type=int, help="Orders per second (1-1000, default: from config)")
    parser.add_argument("--seed", type=int, help="Random seed for generated orders (default: from config)")

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Log output format (default: from config)",
    )

    args = parser.parse_args(argv)
    if args.count is not None and args.count < 1:
        parser.error("--count must be >= 1")
    return args


# ==============================================================================
# MAIN ENTRY POINT
# ==============================================================================


def main(argv=None) -> int:
    args = parse_args(argv)
    config = load_config()

    if args.bootstrap_servers:
        config.kafka_bootstrap_servers = args.bootstrap_servers
    if args.topic:
        config.kafka_topic_orders = args.topic
    if args.rate:
        config.producer_rate = args.rate
    if args.seed is not None:
        config.mock_seed = args.seed
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    setup_logger(
        name="src",
        service_name="order-producer",
        log_level=config.log_level,
        log_format=config.log_format,
    )

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return run_producer(config, count=args.count or 0, file=args.file)


if __name__ == "__main__":
    sys.exit(main())
