"""
Unit Tests for the In-Memory Order Cache
"""

import threading

import pytest

from src.order_service.cache import OrderCache
from src.order_service.schemas import Order
from tests.conftest import make_order_data


def _order(order_uid: str, **overrides) -> Order:
    return Order.model_validate(make_order_data(order_uid, **overrides))


@pytest.mark.unit
def test_get_miss_returns_none_and_false():
    cache = OrderCache()

    assert cache.get("missing") == (None, False)
    assert "missing" not in cache
    assert len(cache) == 0


@pytest.mark.unit
def test_set_then_get_returns_same_snapshot():
    cache = OrderCache()
    order = _order("order-1")

    cache.set(order)

    cached, found = cache.get("order-1")
    assert found is True
    assert cached is order
    assert "order-1" in cache


@pytest.mark.unit
def test_set_is_an_upsert():
    cache = OrderCache()
    cache.set(_order("order-1", customer_id="first"))
    cache.set(_order("order-1", customer_id="second"))

    cached, _ = cache.get("order-1")
    assert cached.customer_id == "second"
    assert len(cache) == 1


@pytest.mark.unit
def test_load_all_adds_every_order():
    cache = OrderCache(shards=4)
    orders = [_order(f"order-{i}") for i in range(20)]

    cache.load_all(orders)

    assert len(cache) == 20
    assert all(cache.get(o.order_uid)[0] is o for o in orders)


@pytest.mark.unit
def test_load_all_empty_is_noop():
    cache = OrderCache()

    cache.load_all([])

    assert len(cache) == 0


@pytest.mark.unit
def test_contains_non_string_key():
    assert 42 not in OrderCache()


@pytest.mark.unit
def test_rejects_zero_shards():
    with pytest.raises(ValueError):
        OrderCache(shards=0)


@pytest.mark.unit
def test_concurrent_writers_and_readers():
    cache = OrderCache(shards=8)
    orders = [_order(f"order-{i}") for i in range(200)]
    errors = []

    def writer(chunk):
        for order in chunk:
            cache.set(order)

    def reader():
        for order in orders:
            cached, found = cache.get(order.order_uid)
            if found and cached.order_uid != order.order_uid:
                errors.append(order.order_uid)

    threads = [threading.Thread(target=writer, args=(orders[i::4],)) for i in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(cache) == 200
