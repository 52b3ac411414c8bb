"""
In-Memory Order Cache

Process-local mirror of stored orders, keyed by order_uid.

CONCURRENCY:
- Keys are striped across a fixed number of shards; each shard is a dict with
  its own lock. Readers and writers of different shards never contend.
- Callers need no locking of their own.

SEMANTICS:
- set() is an upsert and cannot fail; for concurrent sets of the same
  order_uid the last one to finish wins (no versioning).
- get() returns (order, True) on a hit and (None, False) on a miss.
- load_all() upserts entry by entry; a concurrent reader may see part of
  the batch. It is a warm-up, not a consistency barrier.
- No eviction, no TTL, no size limit: the cache grows with the number of
  orders seen during the process lifetime.
"""

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from src.order_service.schemas import Order

DEFAULT_SHARDS = 32


class _Shard:
    __slots__ = ("lock", "orders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.orders: Dict[str, Order] = {}


class OrderCache:
    """Striped-lock concurrent map of order_uid -> Order snapshot."""

    def __init__(self, shards: int = DEFAULT_SHARDS):
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards: List[_Shard] = [_Shard() for _ in range(shards)]

    def _shard(self, order_uid: str) -> _Shard:
        return self._shards[hash(order_uid) % len(self._shards)]

    def set(self, order: Order) -> None:
        shard = self._shard(order.order_uid)
        with shard.lock:
            shard.orders[order.order_uid] = order

    def get(self, order_uid: str) -> Tuple[Optional[Order], bool]:
        shard = self._shard(order_uid)
        with shard.lock:
            order = shard.orders.get(order_uid)
        return order, order is not None

    def load_all(self, orders: Iterable[Order]) -> None:
        for order in orders:
            self.set(order)

    def __contains__(self, order_uid: object) -> bool:
        if not isinstance(order_uid, str):
            return False
        return self.get(order_uid)[1]

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.orders)
        return total
