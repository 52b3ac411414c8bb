"""
SQLAlchemy ORM Models for Order Storage

The order aggregate is normalised across four tables:

    orders      PK order_uid            header
    deliveries  PK/FK order_uid         one per order
    payments    PK/FK transaction_uid   one per order, transaction_uid = order_uid
    items       PK id, FK order_uid     one or more per order

The repository writes all four in one transaction and reads them back with a
header/delivery/payment join plus a separate items query.

Types are kept portable (no JSONB) so the same models run on PostgreSQL in
production and SQLite in unit tests.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ==============================================================================
# ORDER HEADER
# ==============================================================================


class OrderRecord(Base):
    """Order header row. order_uid is the aggregate key."""

    __tablename__ = "orders"

    order_uid: Mapped[str] = mapped_column(String(255), primary_key=True)
    track_number: Mapped[str] = mapped_column(String(255), nullable=False)
    entry: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    locale: Mapped[str] = mapped_column(String(16), nullable=False)
    internal_signature: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    customer_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    delivery_service: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    shardkey: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    sm_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    date_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    oof_shard: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    __table_args__ = ({"comment": "Order headers consumed from the orders topic"},)

    def __repr__(self) -> str:
        return f"<OrderRecord(order_uid={self.order_uid}, customer_id={self.customer_id})>"


# ==============================================================================
# DELIVERY
# ==============================================================================


class DeliveryRecord(Base):
    """Delivery details, one row per order."""

    __tablename__ = "deliveries"

    order_uid: Mapped[str] = mapped_column(
        String(255), ForeignKey("orders.order_uid", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(64), nullable=False)
    zip: Mapped[str] = mapped_column(String(32), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(512), nullable=False)
    region: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False)


# ==============================================================================
# PAYMENT
# ==============================================================================
# Keyed by transaction_uid, which must equal the order's order_uid: the read
# queries join payments ON payments.transaction_uid = orders.order_uid.


class PaymentRecord(Base):
    """Payment details, one row per order."""

    __tablename__ = "payments"

    transaction_uid: Mapped[str] = mapped_column(
        String(255), ForeignKey("orders.order_uid", ondelete="CASCADE"), primary_key=True
    )
    request_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    currency: Mapped[str] = mapped_column(String(16), nullable=False)
    provider: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_dt: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bank: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    delivery_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    goods_total: Mapped[int] = mapped_column(Integer, nullable=False)
    custom_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ==============================================================================
# ITEMS
# ==============================================================================
# Surrogate key keeps insertion order, so items read back in the order received.


class ItemRecord(Base):
    """One order line."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_uid: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("orders.order_uid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chrt_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    track_number: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    rid: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sale: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    size: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    total_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    nm_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    brand: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
