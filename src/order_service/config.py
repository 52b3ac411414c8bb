"""
Order Service Configuration Module

Settings for the Kafka consumer, the PostgreSQL store, the read API and logging.
Loaded from environment variables (and a .env file) with Pydantic validation.

CONFIGURATION SOURCES (priority order):
1. Constructor arguments (tests)
2. Environment variables
3. .env file (loaded by python-dotenv)
4. Default values
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if present (local development)
load_dotenv()


class ServiceConfig(BaseSettings):
    """
    Order service configuration with validation.

    Covers the Kafka consumer, the database pool, processing/retry behaviour,
    the HTTP read API and logging.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === KAFKA CONSUMER SETTINGS ===
    kafka_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Kafka broker addresses",
    )

    kafka_topic_orders: str = Field(
        default="orders",
        description="Kafka topic carrying order events",
    )

    consumer_group_id: str = Field(
        default="order-service",
        description="Consumer group ID",
    )

    consumer_client_id: str = Field(
        default="order-service-consumer",
        description="Consumer client identifier",
    )

    consumer_auto_offset_reset: str = Field(
        default="earliest",
        description="Where to start consuming when the group has no offset: earliest or latest",
    )

    enable_auto_commit: bool = Field(
        default=False,
        description="Auto-commit offsets (False = commit only after handling)",
    )

    poll_timeout_seconds: float = Field(
        default=1.0,
        gt=0,
        le=30,
        description="How long one poll waits for a message; bounds shutdown latency",
    )

    # === DATABASE SETTINGS ===
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")

    postgres_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")

    postgres_db: str = Field(default="orders", description="PostgreSQL database name")

    postgres_user: str = Field(default="postgres", description="PostgreSQL username")

    postgres_password: str = Field(default="postgres", description="PostgreSQL password")

    database_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the postgres_* settings when set",
    )

    db_pool_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="SQLAlchemy connection pool size",
    )

    db_create_schema: bool = Field(
        default=True,
        description="Create missing tables on startup",
    )

    # === PROCESSING SETTINGS ===
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="In-process attempts for transient storage failures",
    )

    retry_backoff_ms: int = Field(
        default=500,
        ge=10,
        le=10000,
        description="Base backoff between in-process attempts (doubles each attempt)",
    )

    redelivery_backoff_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Pause before an unacknowledged message is fetched again",
    )

    skip_duplicate_orders: bool = Field(
        default=False,
        description="Acknowledge messages whose order_uid is already stored instead of redelivering",
    )

    # === HTTP READ API ===
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address")

    http_port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")

    http_shutdown_timeout: int = Field(
        default=5,
        ge=0,
        le=300,
        description="Seconds given to in-flight requests on shutdown",
    )

    # === LOGGING ===
    log_level: str = Field(default="INFO", description="Logging level")

    log_format: str = Field(default="json", description="Log output format (json or text)")

    def get_kafka_config(self) -> dict:
        """Get confluent_kafka consumer configuration dictionary."""
        return {
            "bootstrap.servers": self.kafka_bootstrap_servers,
            "group.id": self.consumer_group_id,
            "client.id": self.consumer_client_id,
            "auto.offset.reset": self.consumer_auto_offset_reset,
            "enable.auto.commit": self.enable_auto_commit,
        }

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


def load_config() -> ServiceConfig:
    """Load and validate service configuration."""
    return ServiceConfig()
