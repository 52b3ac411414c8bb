"""
Order Aggregate Schemas

Pydantic models for the order aggregate as it travels through the service:
decoded from Kafka events, persisted by the repository, held in the cache and
returned by the read API. Field names match the JSON event keys.

AGGREGATE:
    Order (root, key = order_uid)
      ├── Delivery   exactly one
      ├── Payment    exactly one, payment.transaction == order_uid
      └── Item       one or more

Snapshots are frozen and items are stored as a tuple, so an Order handed out
by the cache cannot be changed under other readers.

Length and range limits mirror the column types in models.py. An event that
would not fit its table is rejected here instead of failing at insert time.
Integers are strict: "1817", true and 453.0 are not integers.
"""

from datetime import datetime, timezone
from typing import Annotated, Tuple

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic_core import PydanticCustomError

_SNAPSHOT = ConfigDict(frozen=True, extra="ignore")

# Integer / BigInteger columns
Int32 = Annotated[StrictInt, Field(ge=-(2**31), le=2**31 - 1)]
Int64 = Annotated[StrictInt, Field(ge=-(2**63), le=2**63 - 1)]

# String(n) columns
Str16 = Annotated[str, Field(max_length=16)]
Str32 = Annotated[str, Field(max_length=32)]
Str64 = Annotated[str, Field(max_length=64)]
Str255 = Annotated[str, Field(max_length=255)]
Str512 = Annotated[str, Field(max_length=512)]


def check_email(email: str) -> str:
    """
    Syntax-only address check (no DNS lookup).

    The address is returned as received, not normalised, so a stored order
    reads back exactly as it was published.
    """
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise PydanticCustomError(
            "email", "value is not a valid email address: {reason}", {"reason": str(e)}
        ) from e
    return email


class Delivery(BaseModel):
    """Recipient and address."""

    model_config = _SNAPSHOT

    name: Str255 = Field(min_length=1)
    phone: Str64 = Field(min_length=1)
    zip: Str32 = Field(min_length=1)
    city: Str255 = Field(min_length=1)
    address: Str512 = Field(min_length=1)
    region: Str255 = ""
    email: Str255 = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        return check_email(value)


class Payment(BaseModel):
    """Payment record. Amounts are integers in minor currency units."""

    model_config = _SNAPSHOT

    transaction: Str255 = Field(min_length=1)
    request_id: Str255 = ""
    currency: Str16 = Field(min_length=1)
    provider: Str255 = ""
    amount: Int32
    payment_dt: Int64
    bank: Str255 = ""
    delivery_cost: Int32
    goods_total: Int32
    custom_fee: Int32 = 0


class Item(BaseModel):
    """One line of the order."""

    model_config = _SNAPSHOT

    chrt_id: Int64
    track_number: Str255 = Field(min_length=1)
    price: Int32
    rid: Str255 = ""
    name: Str255 = ""
    sale: Int32 = 0
    size: Str64 = ""
    total_price: Int32 = 0
    nm_id: Int64 = 0
    brand: Str255 = ""
    status: Int32 = 0


class Order(BaseModel):
    """The order aggregate root."""

    model_config = _SNAPSHOT

    order_uid: Str255 = Field(min_length=1)
    track_number: Str255 = Field(min_length=1)
    entry: Str255 = ""
    delivery: Delivery
    payment: Payment
    items: Tuple[Item, ...] = Field(min_length=1)
    locale: Str16 = Field(min_length=1)
    internal_signature: Str255 = ""
    customer_id: Str255 = Field(min_length=1)
    delivery_service: Str255 = ""
    shardkey: Str64 = ""
    sm_id: Int32 = 0
    date_created: datetime
    oof_shard: Str64 = ""

    @field_validator("date_created")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC so storage round trips compare equal
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def __str__(self) -> str:
        return f"Order {self.order_uid} - {self.customer_id} - {len(self.items)} items"
