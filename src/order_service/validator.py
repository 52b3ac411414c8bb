"""
Event Decoding and Order Validation

Two steps turn a raw Kafka message value into an Order:

1. decode_order_event(raw) -> dict
   Bytes -> UTF-8 -> JSON object. Anything else raises DecodeError.

2. OrderValidator().validate(data) -> Order
   Checks every constraint independently and raises one OrderValidationError
   listing all violations (not just the first):
   - required fields present (required strings also non-empty)
   - items is a non-empty list
   - field types (integers are strict) and email format
   - string lengths and integer ranges that fit the storage columns
   - payment.transaction equals order_uid (the read path joins on it)

The validator holds no state and is safe to share between threads.
"""

import json
from typing import Any, Dict, List, Tuple, Union

from pydantic import ValidationError

from src.order_service.errors import DecodeError, FieldViolation, OrderValidationError
from src.order_service.schemas import Order

# pydantic error type -> constraint name reported in FieldViolation
_CONSTRAINTS = {
    "missing": "required",
    "string_too_short": "required",
    "too_short": "non_empty",
    "email": "email",
    "string_too_long": "max_length",
    "greater_than_equal": "range",
    "less_than_equal": "range",
    "int_type": "integer",
}


def decode_order_event(raw: Union[bytes, str, None]) -> Dict[str, Any]:
    """
    Decode a Kafka message value into a JSON object.

    Raises:
        DecodeError: Empty value, invalid UTF-8, invalid JSON, or JSON that is
            not an object
    """
    if raw is None:
        raise DecodeError("message has no value")

    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"message is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}")

    return data


class OrderValidator:
    """Stateless order validator; inject one instance where validation is needed."""

    def validate(self, data: Dict[str, Any]) -> Order:
        """
        Validate a decoded event and build the Order.

        Raises:
            OrderValidationError: With every violated constraint
        """
        order, violations = self._check_fields(data)
        violations.extend(self._check_transaction(data))

        if violations or order is None:
            order_uid = data.get("order_uid") if isinstance(data.get("order_uid"), str) else None
            raise OrderValidationError(violations, order_uid=order_uid)

        return order

    @staticmethod
    def _check_fields(data: Dict[str, Any]) -> Tuple[Any, List[FieldViolation]]:
        try:
            return Order.model_validate(data), []
        except ValidationError as e:
            violations = [
                FieldViolation(
                    field=".".join(str(part) for part in err["loc"]) or "<root>",
                    constraint=_CONSTRAINTS.get(err["type"], err["type"]),
                    message=err["msg"],
                )
                for err in e.errors()
            ]
            return None, violations

    @staticmethod
    def _check_transaction(data: Dict[str, Any]) -> List[FieldViolation]:
        payment = data.get("payment")
        order_uid = data.get("order_uid")
        if not isinstance(payment, dict) or not isinstance(order_uid, str):
            return []

        transaction = payment.get("transaction")
        if isinstance(transaction, str) and transaction and order_uid and transaction != order_uid:
            return [
                FieldViolation(
                    field="payment.transaction",
                    constraint="matches_order_uid",
                    message=f"must equal order_uid {order_uid!r}, got {transaction!r}",
                )
            ]
        return []
