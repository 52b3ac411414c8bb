"""
Order Service - Main Entry Point

Runs the Kafka consumer and the HTTP read API in one process.

USAGE:
    python -m src.order_service.main [--log-level LEVEL] [--log-format FORMAT]

STARTUP ORDER:
1. Load configuration, set up logging
2. Database pool (+ create missing tables)
3. Empty cache
4. Restore cache from the database (failure is logged, startup continues)
5. Consumer loop in a background thread
6. HTTP server (blocking)

GRACEFUL SHUTDOWN:
- SIGINT / SIGTERM stop the consumer (it finishes the current message) and
  the HTTP server (in-flight requests get http_shutdown_timeout seconds)
- A fatal consumer error also stops the HTTP server
- The database pool is closed only after both have stopped
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

import uvicorn

from src.order_service.api import create_app
from src.order_service.cache import OrderCache
from src.order_service.config import ServiceConfig, load_config
from src.order_service.consumer import OrderConsumer
from src.order_service.database import init_database
from src.order_service.redelivery import RedeliveryPolicy
from src.order_service.repository import OrderRepository
from src.order_service.service import OrderService
from src.order_service.validator import OrderValidator
from src.shared.logger import setup_logger, share_handlers

# ==============================================================================
# GLOBAL STATE
# ==============================================================================
# Signal handlers reach the running components through these

consumer_instance: Optional[OrderConsumer] = None
server_instance: Optional[uvicorn.Server] = None


def signal_handler(signum: int, frame) -> None:
    """Stop the consumer and the HTTP server (SIGINT, SIGTERM)."""
    signal_name = signal.Signals(signum).name
    logging.getLogger(__name__).info(f"Received {signal_name}, initiating graceful shutdown...")

    if consumer_instance:
        consumer_instance.stop()
    if server_instance:
        server_instance.should_exit = True


# ==============================================================================
# CLI ARGUMENT PARSING
# ==============================================================================


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Order Service (Kafka consumer + HTTP read API)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src.order_service.main
  python -m src.order_service.main --log-level DEBUG --log-format text

Environment Variables:
  KAFKA_BOOTSTRAP_SERVERS    Kafka broker addresses (default: localhost:9092)
  KAFKA_TOPIC_ORDERS         Topic to consume (default: orders)
  CONSUMER_GROUP_ID          Consumer group (default: order-service)
  POSTGRES_HOST              Database host (default: localhost)
  POSTGRES_PORT              Database port (default: 5432)
  POSTGRES_DB                Database name (default: orders)
  DATABASE_URL               Full SQLAlchemy URL (overrides POSTGRES_*)
  HTTP_HOST / HTTP_PORT      Read API bind address (default: 0.0.0.0:8080)
  SKIP_DUPLICATE_ORDERS      Acknowledge duplicate order_uid messages (default: false)
  LOG_LEVEL / LOG_FORMAT     Logging (default: INFO / json)
        """,
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides LOG_LEVEL env var)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Log output format (overrides LOG_FORMAT env var)",
    )

    return parser.parse_args(argv)


# ==============================================================================
# COMPONENT WIRING
# ==============================================================================


def build_server(config: ServiceConfig, service: OrderService) -> uvicorn.Server:
    uvicorn_config = uvicorn.Config(
        create_app(service),
        host=config.http_host,
        port=config.http_port,
        timeout_graceful_shutdown=config.http_shutdown_timeout,
        log_config=None,
    )
    return uvicorn.Server(uvicorn_config)


def run_consumer(consumer: OrderConsumer, server: uvicorn.Server) -> None:
    """Consumer thread body. When the loop ends for any reason, the HTTP server is asked to exit."""
    logger = logging.getLogger(__name__)
    try:
        consumer.start()
    except Exception:
        logger.critical("Consumer loop failed, stopping HTTP server")
    finally:
        server.should_exit = True


# ==============================================================================
# MAIN FUNCTION
# ==============================================================================


def main(argv=None) -> int:
    """
    Returns:
        Exit code (0 = success, 1 = startup failure)
    """
    global consumer_instance, server_instance

    args = parse_args(argv)

    try:
        config = load_config()
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    # Configure the package logger; every module logs through getLogger(__name__)
    package_logger = setup_logger(
        name="src",
        service_name="order-service",
        log_level=config.log_level,
        log_format=config.log_format,
    )
    # uvicorn.error and uvicorn.access propagate to "uvicorn"
    share_handlers(package_logger, "uvicorn")
    logger = logging.getLogger(__name__)

    logger.info(
        "Starting Order Service",
        extra={
            "kafka_bootstrap_servers": config.kafka_bootstrap_servers,
            "kafka_topic": config.kafka_topic_orders,
            "consumer_group": config.consumer_group_id,
            "database_host": config.postgres_host,
            "database_name": config.postgres_db,
            "http_port": config.http_port,
        },
    )

    try:
        db_manager = init_database(config)
    except Exception:
        logger.error("Failed to initialize database", exc_info=True)
        return 1

    cache = OrderCache()
    service = OrderService(OrderRepository(db_manager), cache)

    try:
        service.restore_cache()
    except Exception:
        logger.warning("Cache restore failed, starting with an empty cache", exc_info=True)

    try:
        consumer_instance = OrderConsumer(
            config,
            service,
            OrderValidator(),
            redelivery_policy=RedeliveryPolicy.from_config(config),
        )
    except Exception:
        logger.error("Failed to create Kafka consumer", exc_info=True)
        db_manager.close()
        return 1

    server_instance = build_server(config, service)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    consumer_thread = threading.Thread(
        target=run_consumer,
        args=(consumer_instance, server_instance),
        name="order-consumer",
        daemon=True,
    )
    consumer_thread.start()

    try:
        logger.info("Read API listening", extra={"host": config.http_host, "port": config.http_port})
        server_instance.run()
    except Exception:
        logger.error("HTTP server failed", exc_info=True)
    finally:
        consumer_instance.stop()
        consumer_thread.join()
        db_manager.close()
        logger.info("Order Service stopped")

    return 0


# ==============================================================================
# ENTRY POINT
# ==============================================================================

if __name__ == "__main__":
    sys.exit(main())
