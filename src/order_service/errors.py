"""
Error Taxonomy

Every failure the pipeline distinguishes has its own exception class. The
component that detects a failure raises it; the edges map it to behaviour:

    Error                  Raised by     Consumer             Read API
    ---------------------  ------------  -------------------  --------
    DecodeError            validator     log, ack (skip)      -
    OrderValidationError   validator     log, ack (skip)      -
    PersistenceError       repository    no ack (redeliver)   500
    DuplicateOrderError    repository    no ack (redeliver)*  -
    OrderNotFoundError     repository    -                    404

    * unless skip_duplicate_orders is enabled, see redelivery.py

The cache never fails, so there is no cache error.
"""

from typing import List, NamedTuple, Optional


class OrderServiceError(Exception):
    """Base class for all order service errors."""


class DecodeError(OrderServiceError):
    """Event payload is not a JSON object."""


class FieldViolation(NamedTuple):
    """One violated field constraint, e.g. ("delivery.email", "email", "...")."""

    field: str
    constraint: str
    message: str


class OrderValidationError(OrderServiceError):
    """Decoded payload breaks one or more constraints; all of them are listed."""

    def __init__(self, violations: List[FieldViolation], order_uid: Optional[str] = None):
        self.violations = list(violations)
        self.order_uid = order_uid
        summary = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(f"order failed validation ({len(self.violations)} violations): {summary}")

    @property
    def fields(self) -> List[str]:
        return [v.field for v in self.violations]


class PersistenceError(OrderServiceError):
    """
    Storage failure.

    Attributes:
        operation: Dotted operation path, outermost first once context is added
            (e.g. "service.create_order: repository.create_order")
        message: What failed (e.g. "failed to insert into deliveries")
        transient: True when the underlying driver error looks retryable
            (connection lost, timeout); a hint only, the redelivery policy decides
    """

    def __init__(self, operation: str, message: str, transient: bool = False):
        self.operation = operation
        self.message = message
        self.transient = transient
        super().__init__(f"{operation}: {message}")

    def add_context(self, operation: str) -> "PersistenceError":
        """Prefix the operation path with the caller's operation and return self."""
        self.operation = f"{operation}: {self.operation}"
        self.args = (f"{self.operation}: {self.message}",)
        return self


class DuplicateOrderError(PersistenceError):
    """The order_uid already exists in storage (header primary key violation)."""

    def __init__(self, operation: str, order_uid: str):
        self.order_uid = order_uid
        super().__init__(operation, f"order {order_uid!r} already exists", transient=False)


class OrderNotFoundError(OrderServiceError):
    """No stored order has the requested order_uid."""

    def __init__(self, order_uid: str):
        self.order_uid = order_uid
        super().__init__(f"order {order_uid!r} not found")
