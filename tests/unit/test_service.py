"""
Unit Tests for OrderService

Uses a fake repository so each storage outcome can be forced, and the real
OrderCache to observe write-through and cache-aside behaviour.
"""

from typing import Dict, List, Optional

import pytest

from src.order_service.cache import OrderCache
from src.order_service.errors import DuplicateOrderError, OrderNotFoundError, PersistenceError
from src.order_service.schemas import Order
from src.order_service.service import OrderService
from tests.conftest import make_order_data


class FakeRepository:
    """In-memory stand-in for OrderRepository that records calls."""

    def __init__(self):
        self.orders: Dict[str, Order] = {}
        self.fail_with: Optional[Exception] = None
        self.get_calls: List[str] = []

    def create_order(self, order: Order) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        if order.order_uid in self.orders:
            raise DuplicateOrderError("repository.create_order", order.order_uid)
        self.orders[order.order_uid] = order

    def get_order_by_uid(self, order_uid: str) -> Order:
        self.get_calls.append(order_uid)
        if self.fail_with is not None:
            raise self.fail_with
        if order_uid not in self.orders:
            raise OrderNotFoundError(order_uid)
        return self.orders[order_uid]

    def get_all_orders(self) -> List[Order]:
        if self.fail_with is not None:
            raise self.fail_with
        return list(self.orders.values())


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def cache():
    return OrderCache()


@pytest.fixture
def service(repository, cache):
    return OrderService(repository, cache)


@pytest.fixture
def order(sample_order_data):
    return Order.model_validate(sample_order_data)


# ==============================================================================
# CREATE (write-through)
# ==============================================================================


@pytest.mark.unit
def test_create_order_stores_then_caches(service, repository, cache, order):
    service.create_order(order)

    assert repository.orders[order.order_uid] is order
    assert cache.get(order.order_uid) == (order, True)


@pytest.mark.unit
def test_create_order_failure_leaves_cache_untouched(service, repository, cache, order):
    repository.fail_with = PersistenceError("repository.create_order", "failed to insert into payments")

    with pytest.raises(PersistenceError) as exc_info:
        service.create_order(order)

    assert exc_info.value.operation == "service.create_order: repository.create_order"
    assert str(exc_info.value) == (
        "service.create_order: repository.create_order: failed to insert into payments"
    )
    assert order.order_uid not in cache


@pytest.mark.unit
def test_create_duplicate_keeps_error_class(service, order):
    service.create_order(order)

    with pytest.raises(DuplicateOrderError) as exc_info:
        service.create_order(order)

    assert exc_info.value.operation.startswith("service.create_order")


# ==============================================================================
# GET (cache-aside)
# ==============================================================================


@pytest.mark.unit
def test_get_cache_hit_skips_repository(service, repository, cache, order):
    cache.set(order)

    assert service.get_order_by_uid(order.order_uid) is order
    assert repository.get_calls == []


@pytest.mark.unit
def test_get_cache_miss_fills_cache(service, repository, cache, order):
    repository.orders[order.order_uid] = order

    assert service.get_order_by_uid(order.order_uid) is order
    assert service.get_order_by_uid(order.order_uid) is order

    assert repository.get_calls == [order.order_uid]
    assert order.order_uid in cache


@pytest.mark.unit
def test_get_not_found_is_not_cached(service, repository, cache):
    for _ in range(2):
        with pytest.raises(OrderNotFoundError):
            service.get_order_by_uid("unknown")

    assert repository.get_calls == ["unknown", "unknown"]
    assert len(cache) == 0


@pytest.mark.unit
def test_get_storage_failure_propagates(service, repository):
    repository.fail_with = PersistenceError("repository.get_order_by_uid", "connection refused", transient=True)

    with pytest.raises(PersistenceError) as exc_info:
        service.get_order_by_uid("any")

    assert exc_info.value.operation == "service.get_order_by_uid: repository.get_order_by_uid"
    assert exc_info.value.transient is True


@pytest.mark.unit
def test_get_not_found_not_logged_as_error(service, caplog):
    with pytest.raises(OrderNotFoundError):
        service.get_order_by_uid("unknown")

    assert not [r for r in caplog.records if r.levelname in ("ERROR", "CRITICAL")]


# ==============================================================================
# RESTORE
# ==============================================================================


@pytest.mark.unit
def test_restore_cache_loads_everything(service, repository, cache):
    for i in range(3):
        o = Order.model_validate(make_order_data(f"order-{i}"))
        repository.orders[o.order_uid] = o

    assert service.restore_cache() == 3
    assert len(cache) == 3


@pytest.mark.unit
def test_restore_cache_empty_database(service, cache):
    assert service.restore_cache() == 0
    assert len(cache) == 0


@pytest.mark.unit
def test_restore_cache_failure_propagates(service, repository, cache):
    repository.fail_with = PersistenceError("repository.get_all_orders", "failed to load orders")

    with pytest.raises(PersistenceError) as exc_info:
        service.restore_cache()

    assert exc_info.value.operation.startswith("service.restore_cache")
    assert len(cache) == 0
