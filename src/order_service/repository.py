"""
Order Repository

Durable storage of the order aggregate across the orders, deliveries, payments
and items tables, and reconstruction of the aggregate on read.

WRITE (create_order):
    One transaction. Inserts run in a fixed order and each is flushed before
    the next, so a failure is attributed to the step that caused it:
        1. orders      (duplicate order_uid fails here)
        2. deliveries
        3. payments
        4. items       (one row per item)
    Any failure rolls the whole transaction back; readers never see a partial
    aggregate. Not idempotent: a second create for the same order_uid raises
    DuplicateOrderError.

READ (get_order_by_uid, get_all_orders):
    Query 1 joins header + delivery + payment (payments.transaction_uid =
    orders.order_uid). Query 2 fetches items. The two queries do not share a
    snapshot; with create-once, never-update orders this cannot mix versions.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Sequence

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from src.order_service.database import DatabaseManager
from src.order_service.errors import DuplicateOrderError, OrderNotFoundError, PersistenceError
from src.order_service.models import DeliveryRecord, ItemRecord, OrderRecord, PaymentRecord
from src.order_service.schemas import Item, Order


def _is_transient(exc: SQLAlchemyError) -> bool:
    """Connection-level failures are worth retrying; constraint and SQL errors are not."""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class OrderRepository:
    """PostgreSQL (or SQLite) backed order store. Thread-safe through the connection pool."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)

    # ==========================================================================
    # WRITE
    # ==========================================================================

    def create_order(self, order: Order) -> None:
        """
        Persist the full aggregate in one transaction.

        Raises:
            DuplicateOrderError: order_uid already stored
            PersistenceError: Any other storage failure (transaction rolled back)
        """
        op = "repository.create_order"
        step = "begin transaction"

        try:
            with self.db_manager.get_session() as session:
                step = "insert into orders"
                session.add(self._header_row(order))
                session.flush()

                step = "insert into deliveries"
                session.add(self._delivery_row(order))
                session.flush()

                step = "insert into payments"
                session.add(self._payment_row(order))
                session.flush()

                for item in order.items:
                    step = f"insert item chrt_id={item.chrt_id}"
                    session.add(self._item_row(order.order_uid, item))
                    session.flush()

                step = "commit"
        except IntegrityError as e:
            if step == "insert into orders":
                raise DuplicateOrderError(op, order.order_uid) from e
            raise PersistenceError(op, f"failed to {step}: {e.orig}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(op, f"failed to {step}: {e}", transient=_is_transient(e)) from e

        self.logger.debug(
            "Order stored",
            extra={"correlation_id": order.order_uid, "items_count": len(order.items)},
        )

    # ==========================================================================
    # READ
    # ==========================================================================

    def get_order_by_uid(self, order_uid: str) -> Order:
        """
        Load one aggregate.

        Raises:
            OrderNotFoundError: No header/delivery/payment row for order_uid
            PersistenceError: Query failure
        """
        op = "repository.get_order_by_uid"

        try:
            with self.db_manager.get_session() as session:
                row = session.execute(
                    self._aggregate_query().where(OrderRecord.order_uid == order_uid)
                ).first()
                if row is None:
                    order = None
                else:
                    items = session.scalars(
                        select(ItemRecord)
                        .where(ItemRecord.order_uid == order_uid)
                        .order_by(ItemRecord.id)
                    ).all()
                    header, delivery, payment = row
                    order = self._to_order(header, delivery, payment, items)
        except SQLAlchemyError as e:
            raise PersistenceError(op, f"failed to query order: {e}", transient=_is_transient(e)) from e
        except ValidationError as e:
            raise PersistenceError(op, f"stored order {order_uid!r} is malformed: {e}") from e

        if order is None:
            raise OrderNotFoundError(order_uid)
        return order

    def get_all_orders(self) -> List[Order]:
        """
        Load every stored aggregate (cache warm-up).

        Full scan, no pagination: memory grows with the number of stored orders.

        Returns:
            All orders; empty list when there are none
        """
        op = "repository.get_all_orders"

        try:
            with self.db_manager.get_session() as session:
                headers = session.execute(self._aggregate_query()).all()
                if not headers:
                    return []

                order_uids = [header.order_uid for header, _, _ in headers]
                items_by_order: Dict[str, List[ItemRecord]] = defaultdict(list)
                for item in session.scalars(
                    select(ItemRecord)
                    .where(ItemRecord.order_uid.in_(order_uids))
                    .order_by(ItemRecord.id)
                ):
                    items_by_order[item.order_uid].append(item)

                return [
                    self._to_order(header, delivery, payment, items_by_order.get(header.order_uid, []))
                    for header, delivery, payment in headers
                ]
        except SQLAlchemyError as e:
            raise PersistenceError(op, f"failed to load orders: {e}", transient=_is_transient(e)) from e
        except ValidationError as e:
            raise PersistenceError(op, f"stored order is malformed: {e}") from e

    # ==========================================================================
    # MAPPING
    # ==========================================================================

    @staticmethod
    def _aggregate_query():
        return (
            select(OrderRecord, DeliveryRecord, PaymentRecord)
            .join(DeliveryRecord, DeliveryRecord.order_uid == OrderRecord.order_uid)
            .join(PaymentRecord, PaymentRecord.transaction_uid == OrderRecord.order_uid)
        )

    @staticmethod
    def _header_row(order: Order) -> OrderRecord:
        return OrderRecord(
            order_uid=order.order_uid,
            track_number=order.track_number,
            entry=order.entry,
            locale=order.locale,
            internal_signature=order.internal_signature,
            customer_id=order.customer_id,
            delivery_service=order.delivery_service,
            shardkey=order.shardkey,
            sm_id=order.sm_id,
            date_created=order.date_created,
            oof_shard=order.oof_shard,
        )

    @staticmethod
    def _delivery_row(order: Order) -> DeliveryRecord:
        return DeliveryRecord(order_uid=order.order_uid, **order.delivery.model_dump())

    @staticmethod
    def _payment_row(order: Order) -> PaymentRecord:
        fields = order.payment.model_dump()
        fields["transaction_uid"] = fields.pop("transaction")
        return PaymentRecord(**fields)

    @staticmethod
    def _item_row(order_uid: str, item: Item) -> ItemRecord:
        return ItemRecord(order_uid=order_uid, **item.model_dump())

    @staticmethod
    def _to_order(
        header: OrderRecord,
        delivery: DeliveryRecord,
        payment: PaymentRecord,
        items: Sequence[ItemRecord],
    ) -> Order:
        return Order.model_validate(
            {
                "order_uid": header.order_uid,
                "track_number": header.track_number,
                "entry": header.entry,
                "locale": header.locale,
                "internal_signature": header.internal_signature,
                "customer_id": header.customer_id,
                "delivery_service": header.delivery_service,
                "shardkey": header.shardkey,
                "sm_id": header.sm_id,
                "date_created": header.date_created,
                "oof_shard": header.oof_shard,
                "delivery": {
                    "name": delivery.name,
                    "phone": delivery.phone,
                    "zip": delivery.zip,
                    "city": delivery.city,
                    "address": delivery.address,
                    "region": delivery.region,
                    "email": delivery.email,
                },
                "payment": {
                    "transaction": payment.transaction_uid,
                    "request_id": payment.request_id,
                    "currency": payment.currency,
                    "provider": payment.provider,
                    "amount": payment.amount,
                    "payment_dt": payment.payment_dt,
                    "bank": payment.bank,
                    "delivery_cost": payment.delivery_cost,
                    "goods_total": payment.goods_total,
                    "custom_fee": payment.custom_fee,
                },
                "items": [
                    {
                        "chrt_id": item.chrt_id,
                        "track_number": item.track_number,
                        "price": item.price,
                        "rid": item.rid,
                        "name": item.name,
                        "sale": item.sale,
                        "size": item.size,
                        "total_price": item.total_price,
                        "nm_id": item.nm_id,
                        "brand": item.brand,
                        "status": item.status,
                    }
                    for item in items
                ],
            }
        )
