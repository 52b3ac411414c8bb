"""
Order Service Package

Consumes order events from Kafka, stores each order in PostgreSQL, keeps an
in-memory copy of every stored order and serves lookups over HTTP.

ARCHITECTURE:
┌─────────────┐     ┌──────────────┐     ┌──────────────┐     ┌────────────────┐
│   Kafka     │────▶│ OrderConsumer│────▶│ OrderService │────▶│   PostgreSQL   │
│   orders    │     │ decode +     │     │ write-through│     │ orders         │
│   topic     │     │ validate     │     │ cache-aside  │     │ deliveries     │
└─────────────┘     └──────────────┘     └──────┬───────┘     │ payments, items│
                                                │             └────────────────┘
                    ┌──────────────┐     ┌──────▼───────┐
     HTTP GET ─────▶│   read API   │────▶│  OrderCache  │
  /order/{uid}      └──────────────┘     └──────────────┘

OFFSET MANAGEMENT:
1. Read message
2. Decode + validate; poison messages are acknowledged and skipped
3. Store (one transaction), then cache
4. Commit offset only after the store succeeded
5. Storage failure: no commit, the message is redelivered

Package components:
- config.py: Configuration from environment variables
- errors.py: Error taxonomy
- schemas.py / validator.py: Order aggregate and event validation
- models.py / database.py / repository.py: PostgreSQL storage
- cache.py: Concurrent in-memory order cache
- service.py / ports.py: Orchestration and role interfaces
- consumer.py / redelivery.py: Kafka loop and acknowledgement decisions
- api.py: FastAPI read endpoint
- main.py: Entry point with startup order and graceful shutdown
"""

__version__ = "1.0.0"

from src.order_service.config import ServiceConfig, load_config

__all__ = [
    "ServiceConfig",
    "load_config",
]
