"""
Pytest Configuration and Shared Fixtures

Unit tests run without infrastructure: an in-memory SQLite database behind
the real DatabaseManager, and plain fakes for Kafka.
Integration tests use testcontainers to start real Kafka and PostgreSQL.

FIXTURE SCOPES:
- session: containers (started once, shared across all integration tests)
- function: database schema, configs and sample payloads (isolated per test)
"""

import copy
import os
from typing import Generator

import pytest
from testcontainers.kafka import KafkaContainer
from testcontainers.postgres import PostgresContainer

from src.order_service.config import ServiceConfig
from src.order_service.database import DatabaseManager
from src.order_service.models import Base
from src.producer.config import ProducerConfig

# ==============================================================================
# SAMPLE PAYLOADS
# ==============================================================================

SAMPLE_ORDER = {
    "order_uid": "b563feb7b2b84b6test",
    "track_number": "WBILMTESTTRACK",
    "entry": "WBIL",
    "delivery": {
        "name": "Test Testov",
        "phone": "+9720000000",
        "zip": "2639809",
        "city": "Kiryat Mozkin",
        "address": "Ploshad Mira 15",
        "region": "Kraiot",
        "email": "test@gmail.com",
    },
    "payment": {
        "transaction": "b563feb7b2b84b6test",
        "request_id": "",
        "currency": "USD",
        "provider": "wbpay",
        "amount": 1817,
        "payment_dt": 1637907727,
        "bank": "alpha",
        "delivery_cost": 1500,
        "goods_total": 317,
        "custom_fee": 0,
    },
    "items": [
        {
            "chrt_id": 9934930,
            "track_number": "WBILMTESTTRACK",
            "price": 453,
            "rid": "ab4219087a764ae0btest",
            "name": "Mascaras",
            "sale": 30,
            "size": "0",
            "total_price": 317,
            "nm_id": 2389222,
            "brand": "Vivienne Sabo",
            "status": 202,
        }
    ],
    "locale": "en",
    "internal_signature": "",
    "customer_id": "test",
    "delivery_service": "meest",
    "shardkey": "9",
    "sm_id": 99,
    "date_created": "2021-11-26T06:22:19Z",
    "oof_shard": "1",
}


def make_order_data(order_uid: str = SAMPLE_ORDER["order_uid"], **overrides) -> dict:
    """Copy of the sample event with a new order_uid (payment.transaction follows it)."""
    data = copy.deepcopy(SAMPLE_ORDER)
    data["order_uid"] = order_uid
    data["payment"]["transaction"] = order_uid
    data.update(overrides)
    return data


@pytest.fixture
def sample_order_data():
    """A valid order event as decoded from Kafka."""
    return make_order_data()


@pytest.fixture
def sample_invalid_order_data():
    """An order event that breaks several constraints at once."""
    data = make_order_data()
    del data["customer_id"]
    data["items"] = []
    data["delivery"]["email"] = "not-an-email"
    return data


# ==============================================================================
# UNIT FIXTURES (no containers)
# ==============================================================================


@pytest.fixture
def service_config() -> ServiceConfig:
    """ServiceConfig backed by in-memory SQLite with fast retry timings."""
    return ServiceConfig(
        _env_file=None,
        database_url="sqlite://",
        kafka_topic_orders="test-orders",
        max_retries=3,
        retry_backoff_ms=10,
        redelivery_backoff_ms=0,
    )


@pytest.fixture
def db_manager(service_config) -> Generator[DatabaseManager, None, None]:
    """DatabaseManager over a fresh in-memory SQLite database with the schema created."""
    manager = DatabaseManager(service_config)
    manager.create_schema()
    try:
        yield manager
    finally:
        manager.close()


# ==============================================================================
# POSTGRESQL FIXTURES
# ==============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """PostgreSQL testcontainer, started once per session."""
    with PostgresContainer("postgres:15", driver="psycopg2") as postgres:
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="session")
def kafka_container() -> Generator[KafkaContainer, None, None]:
    """Kafka testcontainer, started once per session."""
    with KafkaContainer() as kafka:
        kafka.get_bootstrap_server()
        yield kafka


@pytest.fixture(scope="function")
def integration_config(postgres_container, kafka_container, request) -> ServiceConfig:
    """
    ServiceConfig pointing at the test containers.

    Topic and consumer group are unique per test so tests never see each
    other's messages or offsets.
    """
    suffix = request.node.name.replace("[", "-").replace("]", "")
    return ServiceConfig(
        _env_file=None,
        kafka_bootstrap_servers=kafka_container.get_bootstrap_server(),
        kafka_topic_orders=f"orders-{suffix}",
        consumer_group_id=f"group-{suffix}",
        postgres_host=postgres_container.get_container_host_ip(),
        postgres_port=int(postgres_container.get_exposed_port(5432)),
        postgres_user=postgres_container.username,
        postgres_password=postgres_container.password,
        postgres_db=postgres_container.dbname,
        poll_timeout_seconds=1.0,
        retry_backoff_ms=10,
        redelivery_backoff_ms=0,
    )


@pytest.fixture(scope="function")
def pg_db_manager(integration_config) -> Generator[DatabaseManager, None, None]:
    """DatabaseManager on the PostgreSQL container; tables dropped after each test."""
    manager = DatabaseManager(integration_config)
    manager.create_schema()
    try:
        yield manager
    finally:
        Base.metadata.drop_all(manager.engine)
        manager.close()


@pytest.fixture(scope="function")
def producer_config(integration_config) -> ProducerConfig:
    """ProducerConfig publishing to the same topic the service consumes."""
    return ProducerConfig(
        _env_file=None,
        kafka_bootstrap_servers=integration_config.kafka_bootstrap_servers,
        kafka_topic_orders=integration_config.kafka_topic_orders,
        producer_client_id="test-producer",
        producer_rate=1000,
        mock_seed=42,
    )


# ==============================================================================
# TEST ENVIRONMENT CONFIGURATION
# ==============================================================================


def pytest_configure(config):
    """Register custom markers."""
    os.environ["ENVIRONMENT"] = "test"

    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires containers)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow (takes more than 5 seconds)")
    config.addinivalue_line("markers", "unit: mark test as unit test (no external dependencies)")
