"""
Mock Order Event Generator

Builds order events in the wire format the order service consumes. Used by
the publisher CLI and by tests.

Every generated event passes validation:
- payment.transaction equals order_uid
- 1-5 items, each with the order's track_number
- amounts are integers (minor currency units) and add up:
  goods_total = sum(items.total_price), amount = goods_total + delivery_cost

Faker provides names, phones and addresses; a seeded random.Random drives
everything else, so the same seed yields the same events.
"""

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from faker import Faker

RANDOM_SEED = 42

# (name, brand, price) catalogue, prices in minor units
PRODUCTS = [
    ("Mascaras", "Vivienne Sabo", 453),
    ("Lipstick", "Maybelline", 399),
    ("Face Cream", "Nivea", 289),
    ("Shampoo", "Head & Shoulders", 359),
    ("Sneakers", "Nike", 7990),
    ("T-Shirt", "Uniqlo", 1290),
    ("Backpack", "Xiaomi", 2490),
    ("Headphones", "JBL", 4590),
    ("Phone Case", "Spigen", 890),
    ("Notebook", "Moleskine", 1590),
]

CURRENCIES = ["USD", "EUR", "RUB"]
PROVIDERS = ["wbpay", "applepay", "googlepay"]
BANKS = ["alpha", "sber", "tinkoff"]
DELIVERY_SERVICES = ["meest", "cdek", "dhl"]
LOCALES = ["en", "ru"]


class MockDataGenerator:
    """
    Generates valid order events.

    Attributes:
        seed: Seed for Faker and the random source
        order_sequence: Number of orders generated so far
    """

    def __init__(self, seed: int = RANDOM_SEED):
        self.seed = seed
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.order_sequence = 0

    def generate_order_uid(self) -> str:
        """Unique 32-character hex order id (uuid4 bits drawn from the seeded source)."""
        return uuid.UUID(int=self.random.getrandbits(128), version=4).hex

    def generate_track_number(self) -> str:
        return "WBIL" + "".join(self.random.choices("ABCDEFGHIJKLMNOPQRSTUVWXYZ", k=10))

    def generate_delivery(self) -> Dict[str, str]:
        name = self.fake.name()
        local_part = "".join(ch for ch in name.lower() if ch.isalnum()) or "customer"
        return {
            "name": name,
            "phone": self.fake.phone_number(),
            "zip": self.fake.postcode(),
            "city": self.fake.city(),
            "address": self.fake.street_address(),
            "region": self.fake.state(),
            "email": f"{local_part}.{self.order_sequence}@example.com",
        }

    def generate_items(self, track_number: str, min_items: int = 1, max_items: int = 5) -> List[Dict[str, Any]]:
        """
        Random order lines, each priced from the catalogue with a random sale.

        Example:
            >>> MockDataGenerator().generate_items("WBILTEST", 1, 1)[0]["track_number"]
            'WBILTEST'
        """
        count = self.random.randint(min_items, max_items)
        items = []
        for name, brand, price in self.random.sample(PRODUCTS, count):
            sale = self.random.choice([0, 10, 20, 30])
            items.append(
                {
                    "chrt_id": self.random.randint(1_000_000, 9_999_999),
                    "track_number": track_number,
                    "price": price,
                    "rid": uuid.UUID(int=self.random.getrandbits(128), version=4).hex,
                    "name": name,
                    "sale": sale,
                    "size": self.random.choice(["0", "S", "M", "L"]),
                    "total_price": price * (100 - sale) // 100,
                    "nm_id": self.random.randint(1_000_000, 9_999_999),
                    "brand": brand,
                    "status": 202,
                }
            )
        return items

    def generate_order(self) -> Dict[str, Any]:
        """
        Generate one complete order event.

        Returns:
            Dict ready for json.dumps, keyed exactly like the consumed events
        """
        self.order_sequence += 1

        order_uid = self.generate_order_uid()
        track_number = self.generate_track_number()
        items = self.generate_items(track_number)
        goods_total = sum(item["total_price"] for item in items)
        delivery_cost = self.random.choice([0, 500, 1500])

        created = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(
            seconds=self.random.randint(0, 365 * 24 * 3600)
        )

        return {
            "order_uid": order_uid,
            "track_number": track_number,
            "entry": "WBIL",
            "delivery": self.generate_delivery(),
            "payment": {
                "transaction": order_uid,
                "request_id": "",
                "currency": self.random.choice(CURRENCIES),
                "provider": self.random.choice(PROVIDERS),
                "amount": goods_total + delivery_cost,
                "payment_dt": int(created.timestamp()),
                "bank": self.random.choice(BANKS),
                "delivery_cost": delivery_cost,
                "goods_total": goods_total,
                "custom_fee": 0,
            },
            "items": items,
            "locale": self.random.choice(LOCALES),
            "internal_signature": "",
            "customer_id": f"customer-{self.random.randint(1, 100):03d}",
            "delivery_service": self.random.choice(DELIVERY_SERVICES),
            "shardkey": str(self.random.randint(0, 9)),
            "sm_id": self.random.randint(1, 100),
            "date_created": created.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "oof_shard": str(self.random.randint(0, 9)),
        }
