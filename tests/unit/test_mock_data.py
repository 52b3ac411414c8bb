"""
Unit Tests for MockDataGenerator

Generated events must be accepted by the order service's validator, so the
publisher can feed the service end to end.

TEST STRATEGY:
- Test reproducibility (same seed → same data)
- Test every generated event validates
- Test internal consistency (transaction, track numbers, totals)
"""

import pytest

from src.order_service.validator import OrderValidator
from src.producer.mock_data import MockDataGenerator


@pytest.mark.unit
def test_seed_reproducibility():
    """Same seed produces the same events."""
    gen1 = MockDataGenerator(seed=42)
    gen2 = MockDataGenerator(seed=42)

    assert [gen1.generate_order() for _ in range(3)] == [gen2.generate_order() for _ in range(3)]


@pytest.mark.unit
def test_different_seeds_produce_different_data():
    order1 = MockDataGenerator(seed=42).generate_order()
    order2 = MockDataGenerator(seed=100).generate_order()

    assert order1["order_uid"] != order2["order_uid"]


@pytest.mark.unit
def test_generated_orders_pass_validation():
    generator = MockDataGenerator(seed=7)
    validator = OrderValidator()

    for _ in range(50):
        event = generator.generate_order()
        order = validator.validate(event)
        assert order.order_uid == event["order_uid"]


@pytest.mark.unit
def test_order_uids_unique():
    generator = MockDataGenerator()

    uids = {generator.generate_order()["order_uid"] for _ in range(200)}

    assert len(uids) == 200


@pytest.mark.unit
def test_payment_transaction_matches_order_uid():
    order = MockDataGenerator().generate_order()

    assert order["payment"]["transaction"] == order["order_uid"]


@pytest.mark.unit
def test_items_share_order_track_number():
    order = MockDataGenerator().generate_order()

    assert 1 <= len(order["items"]) <= 5
    assert all(item["track_number"] == order["track_number"] for item in order["items"])


@pytest.mark.unit
def test_payment_totals_add_up():
    generator = MockDataGenerator(seed=3)

    for _ in range(20):
        order = generator.generate_order()
        payment = order["payment"]
        assert payment["goods_total"] == sum(item["total_price"] for item in order["items"])
        assert payment["amount"] == payment["goods_total"] + payment["delivery_cost"]


@pytest.mark.unit
def test_order_sequence_counter():
    generator = MockDataGenerator()

    for _ in range(5):
        generator.generate_order()

    assert generator.order_sequence == 5


@pytest.mark.unit
def test_date_created_is_utc_iso8601():
    order = MockDataGenerator().generate_order()

    assert order["date_created"].endswith("Z")
    assert len(order["date_created"]) == len("2024-01-01T00:00:00Z")
