"""
Redelivery Policy

Single place that decides whether a message whose processing failed in
storage is acknowledged anyway or left for Kafka to hand out again.

DEFAULT:
    Never acknowledge a persistence failure. The consumer rewinds the
    partition to the failed offset and the next poll returns the same message.
    A permanently failing message (e.g. a duplicate order_uid) therefore
    blocks its partition until an operator intervenes.

skip_duplicate_orders=True:
    A DuplicateOrderError is acknowledged. The stored order already exists,
    so nothing is lost by moving past the message.
"""

from src.order_service.config import ServiceConfig
from src.order_service.errors import DuplicateOrderError


class RedeliveryPolicy:
    def __init__(self, skip_duplicate_orders: bool = False):
        self.skip_duplicate_orders = skip_duplicate_orders

    @classmethod
    def from_config(cls, config: ServiceConfig) -> "RedeliveryPolicy":
        return cls(skip_duplicate_orders=config.skip_duplicate_orders)

    def should_redeliver(self, error: Exception) -> bool:
        """True to leave the message unacknowledged, False to commit past it."""
        if isinstance(error, DuplicateOrderError):
            return not self.skip_duplicate_orders
        return True
