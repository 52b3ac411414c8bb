"""
Order Service

Coordinates durable storage and the in-memory cache.

WRITE PATH (write-through):
    repository.create_order  ->  cache.set
    The cache is only updated after the transaction committed, so it never
    holds an order that is not in PostgreSQL.

READ PATH (cache-aside):
    cache.get  --hit-->  return
               --miss--> repository.get_order_by_uid -> cache.set -> return
    Misses are not cached: a lookup for an unknown order_uid goes to the
    database every time.

STARTUP:
    restore_cache() copies every stored order into the cache.
"""

import logging

from src.order_service.errors import PersistenceError
from src.order_service.ports import OrderRepositoryPort, OrderStore
from src.order_service.schemas import Order
from src.shared.logger import CorrelationAdapter


class OrderService:
    """Implements OrderCreator, OrderGetter and CacheRestorer."""

    def __init__(self, repository: OrderRepositoryPort, cache: OrderStore):
        self.repository = repository
        self.cache = cache
        self.logger = logging.getLogger(__name__)

    def create_order(self, order: Order) -> None:
        """
        Store the order, then cache it.

        Raises:
            DuplicateOrderError, PersistenceError: from the repository, with
                "service.create_order" added to the operation path. The cache
                is left untouched.
        """
        order_logger = CorrelationAdapter(self.logger, {"correlation_id": order.order_uid})

        try:
            self.repository.create_order(order)
        except PersistenceError as e:
            e.add_context("service.create_order")
            raise

        self.cache.set(order)
        order_logger.debug("Order stored and cached", extra={"items_count": len(order.items)})

    def get_order_by_uid(self, order_uid: str) -> Order:
        """
        Serve from cache, falling back to the repository on a miss.

        Raises:
            OrderNotFoundError: Not in cache and not in the database
            PersistenceError: Database lookup failed
        """
        order, found = self.cache.get(order_uid)
        if found:
            return order

        try:
            order = self.repository.get_order_by_uid(order_uid)
        except PersistenceError as e:
            e.add_context("service.get_order_by_uid")
            raise

        self.cache.set(order)
        CorrelationAdapter(self.logger, {"correlation_id": order_uid}).debug(
            "Cache miss filled from database"
        )
        return order

    def restore_cache(self) -> int:
        """
        Load all stored orders into the cache.

        Returns:
            Number of orders loaded
        """
        try:
            orders = self.repository.get_all_orders()
        except PersistenceError as e:
            e.add_context("service.restore_cache")
            raise

        self.cache.load_all(orders)
        self.logger.info("Cache restored from database", extra={"orders_loaded": len(orders)})
        return len(orders)
