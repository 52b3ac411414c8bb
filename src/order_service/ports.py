"""
Role Interfaces

Narrow protocols at the seams between components. Each consumer of a
component depends only on the capability it uses, so tests can substitute
small fakes:

    OrderConsumer  --OrderCreator-->   OrderService
    read API       --OrderGetter-->    OrderService
    main           --CacheRestorer-->  OrderService
    OrderService   --OrderWriter / OrderReader / BulkOrderReader--> OrderRepository
    OrderService   --OrderStore-->     OrderCache
"""

from typing import Iterable, List, Optional, Protocol, Tuple

from src.order_service.schemas import Order


# ==============================================================================
# STORAGE SIDE
# ==============================================================================


class OrderWriter(Protocol):
    def create_order(self, order: Order) -> None: ...


class OrderReader(Protocol):
    def get_order_by_uid(self, order_uid: str) -> Order: ...


class BulkOrderReader(Protocol):
    def get_all_orders(self) -> List[Order]: ...


class OrderRepositoryPort(OrderWriter, OrderReader, BulkOrderReader, Protocol):
    """Everything OrderService needs from durable storage."""


class OrderStore(Protocol):
    """Cache capability used by OrderService."""

    def set(self, order: Order) -> None: ...

    def get(self, order_uid: str) -> Tuple[Optional[Order], bool]: ...

    def load_all(self, orders: Iterable[Order]) -> None: ...


# ==============================================================================
# SERVICE SIDE
# ==============================================================================


class OrderCreator(Protocol):
    """What the consumer loop calls."""

    def create_order(self, order: Order) -> None: ...


class OrderGetter(Protocol):
    """What the read API calls."""

    def get_order_by_uid(self, order_uid: str) -> Order: ...


class CacheRestorer(Protocol):
    """What startup calls."""

    def restore_cache(self) -> int: ...
