"""
Order Event Publisher Package

Generates and publishes order events to the Kafka orders topic, for local
development and integration tests of the order service.

PRODUCER CONCEPTS:
- **Serialization**: dict → JSON → bytes
- **Partition Key**: order_uid, so every copy of an order lands on one partition
- **Idempotence**: enable.idempotence + acks=all, no duplicates from retries
- **Delivery reports**: callbacks served by poll()/flush()

PACKAGE STRUCTURE:
- mock_data.py: Faker-based generator of valid order events
- producer.py: Kafka producer with delivery callbacks
- config.py: Producer configuration from environment variables
- main.py: CLI (--count N or --file PATH)

USAGE:
    python -m src.producer.main --count 10

    from src.producer.config import load_config
    from src.producer.mock_data import MockDataGenerator
    from src.producer.producer import OrderProducer

    producer = OrderProducer(load_config())
    producer.produce_order(MockDataGenerator().generate_order())
    producer.flush()
"""

__version__ = "1.0.0"

from src.producer.config import ProducerConfig, load_config

__all__ = [
    "ProducerConfig",
    "load_config",
]
