"""
Producer Configuration Module

Settings for the order event publisher, loaded from environment variables
(and a .env file) with Pydantic validation.

CONFIGURATION SOURCES (priority order):
1. Environment variables
2. .env file (loaded by python-dotenv)
3. Default values
"""

from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ProducerConfig(BaseSettings):
    """
    Publisher configuration.

    Example:
        >>> config = ProducerConfig()
        >>> config.kafka_topic_orders
        'orders'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === KAFKA CONNECTION ===
    kafka_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Kafka broker addresses (comma-separated for multiple brokers)",
    )

    kafka_topic_orders: str = Field(default="orders", description="Kafka topic for order events")

    # === PRODUCER SETTINGS ===
    producer_client_id: str = Field(default="order-producer", description="Producer client identifier")

    producer_rate: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Orders per second (1-1000)",
    )

    producer_compression: Literal["none", "gzip", "snappy", "lz4", "zstd"] = Field(
        default="snappy",
        description="Message compression codec",
    )

    producer_linger_ms: int = Field(
        default=10,
        ge=0,
        le=1000,
        description="Time to wait for batching messages (milliseconds)",
    )

    enable_idempotence: bool = Field(
        default=True,
        description="Idempotent producer (no broker-side duplicates on retry)",
    )

    flush_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long close() waits for outstanding delivery reports",
    )

    # === MOCK DATA SETTINGS ===
    mock_seed: int = Field(default=42, description="Random seed for reproducible mock orders")

    # === LOGGING ===
    log_level: str = Field(default="INFO", description="Logging level")

    log_format: str = Field(default="json", description="Log output format (json or text)")

    def get_kafka_config(self) -> dict:
        """Get confluent_kafka producer configuration dictionary."""
        return {
            "bootstrap.servers": self.kafka_bootstrap_servers,
            "client.id": self.producer_client_id,
            "compression.type": self.producer_compression,
            "linger.ms": self.producer_linger_ms,
            # Idempotence requires acks=all
            "acks": "all",
            "enable.idempotence": self.enable_idempotence,
        }


def load_config() -> ProducerConfig:
    """Load and validate producer configuration."""
    return ProducerConfig()
