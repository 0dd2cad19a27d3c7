"""Order-book orders: one order per customer and delivery date.

Submissions replace the whole order. Duplicate rows for the same customer
and date are a known data defect; every upsert keeps the newest and
deletes the rest before writing.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..constants import EDITABLE_ORDER_STATUSES
from ..db import get_session, parse_amount, to_decimal
from ..errors import NotFoundError, PersistenceError, ValidationError
from ..metrics import (
    DUPLICATE_ORDERS_REMOVED_TOTAL,
    ORDER_ITEMS_SKIPPED_TOTAL,
    ORDER_UPSERTS_TOTAL,
)
from ..models import (
    OrderBookCustomer,
    OrderBookCustomerPricing,
    OrderBookOrder,
    OrderBookOrderItem,
    OrderBookProduct,
    Supplier,
)

logger = logging.getLogger(__name__)


@dataclass
class PricedItem:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


@dataclass
class PricedOrder:
    items: List[PricedItem] = field(default_factory=list)
    skipped_product_ids: List[Any] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))


def parse_date(value, field_name: str = "delivery_date") -> datetime.date:
    """Accept a date, a datetime, or an ISO ``YYYY-MM-DD[THH:MM[:SS]][Z]`` string."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return datetime.date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from None


def _to_id(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_quantity(value) -> Optional[Decimal]:
    try:
        quantity = parse_amount(value, "quantity")
    except ValidationError:
        return None
    return quantity if quantity > 0 else None


def _check_ownership(db, company_id, supplier_id, customer_id) -> None:
    """Raise unless both the supplier and the customer belong to ``company_id``."""
    supplier = (
        db.query(Supplier.id).filter_by(id=supplier_id, company_id=company_id).first()
    )
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    customer = (
        db.query(OrderBookCustomer.id)
        .filter_by(id=customer_id, company_id=company_id)
        .first()
    )
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")


def price_items(db, supplier_id, customer_id, items: Sequence[dict]) -> PricedOrder:
    """Price submitted items; invalid lines are skipped, never fatal.

    A customer-specific price overrides the product's base price. Products
    of another supplier count as missing.
    """
    items = [item if isinstance(item, dict) else {} for item in items]
    product_ids = {pid for pid in (_to_id(i.get("product_id")) for i in items) if pid}
    products = {}
    pricing = {}
    if product_ids:
        products = {
            p.id: p
            for p in db.query(OrderBookProduct)
            .filter(
                OrderBookProduct.id.in_(product_ids),
                OrderBookProduct.supplier_id == supplier_id,
            )
            .all()
        }
        pricing = {
            row.product_id: row.custom_price
            for row in db.query(OrderBookCustomerPricing)
            .filter(
                OrderBookCustomerPricing.customer_id == customer_id,
                OrderBookCustomerPricing.product_id.in_(product_ids),
            )
            .all()
        }

    priced = PricedOrder()
    for item in items:
        raw_id = item.get("product_id")
        product_id = _to_id(raw_id)
        quantity = _to_quantity(item.get("quantity"))
        if not product_id or quantity is None:
            logger.warning(
                "Skipping invalid item: product_id=%s, quantity=%s",
                raw_id,
                item.get("quantity"),
            )
            priced.skipped_product_ids.append(raw_id or "missing")
            continue

        product = products.get(product_id)
        if product is None:
            logger.warning(
                "Product %s not found for supplier %s - skipping", product_id, supplier_id
            )
            priced.skipped_product_ids.append(product_id)
            continue

        custom_price = pricing.get(product_id)
        unit_price = to_decimal(custom_price if custom_price is not None else product.base_price)
        priced.items.append(
            PricedItem(
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                line_total=to_decimal(quantity * unit_price),
            )
        )

    if priced.skipped_product_ids:
        ORDER_ITEMS_SKIPPED_TOTAL.inc(len(priced.skipped_product_ids))
    return priced


def _remove_duplicates(db, orders: List[OrderBookOrder]) -> None:
    duplicate_ids = [order.id for order in orders[1:]]
    if not duplicate_ids:
        return
    logger.warning(
        "Found %d orders for customer %s on %s; keeping %s and deleting %s",
        len(orders),
        orders[0].customer_id,
        orders[0].delivery_date,
        orders[0].id,
        duplicate_ids,
    )
    db.query(OrderBookOrderItem).filter(
        OrderBookOrderItem.order_id.in_(duplicate_ids)
    ).delete(synchronize_session=False)
    db.query(OrderBookOrder).filter(OrderBookOrder.id.in_(duplicate_ids)).delete(
        synchronize_session=False
    )
    DUPLICATE_ORDERS_REMOVED_TOTAL.inc(len(duplicate_ids))


def _insert_items(order_id: int, items: List[PricedItem]) -> int:
    with get_session() as db:
        db.add_all(
            OrderBookOrderItem(
                order_id=order_id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in items
        )
    return len(items)


def upsert_order(
    company_id,
    supplier_id,
    customer_id,
    delivery_date,
    items,
    created_by=None,
) -> Dict[str, Any]:
    """Create or replace the order for ``(customer_id, delivery_date)``.

    The supplier and customer must both belong to ``company_id``; anything
    else is reported as not found.
    """
    if not supplier_id or not customer_id or not delivery_date or not items or not isinstance(items, list):
        raise ValidationError(
            "Missing required fields: supplier_id, customer_id, delivery_date, items"
        )
    supplier_id, customer_id = _to_id(supplier_id), _to_id(customer_id)
    if supplier_id is None or customer_id is None:
        raise ValidationError("supplier_id and customer_id must be integers")
    delivery_date = parse_date(delivery_date)

    with get_session() as db:
        _check_ownership(db, company_id, supplier_id, customer_id)
        priced = price_items(db, supplier_id, customer_id, items)
    logger.info(
        "Processed %d valid items, skipped %d items",
        len(priced.items),
        len(priced.skipped_product_ids),
    )
    if not priced.items:
        ORDER_UPSERTS_TOTAL.labels(result="rejected").inc()
        raise ValidationError(
            "No valid items to save. Please check that all products exist and have valid quantities."
        )
    subtotal = to_decimal(priced.subtotal)

    with get_session() as db:
        existing = (
            db.query(OrderBookOrder)
            .filter_by(customer_id=customer_id, delivery_date=delivery_date)
            .order_by(OrderBookOrder.created_at.desc(), OrderBookOrder.id.desc())
            .all()
        )
        _remove_duplicates(db, existing)

    existing_order = existing[0] if existing else None
    if existing_order is not None:
        if existing_order.status not in EDITABLE_ORDER_STATUSES:
            ORDER_UPSERTS_TOTAL.labels(result="rejected").inc()
            logger.warning(
                "Cannot edit order %s with status '%s'",
                existing_order.id,
                existing_order.status,
            )
            raise ValidationError(
                f"Cannot edit order with status '{existing_order.status}'. "
                "Only draft, pending, or confirmed orders can be edited."
            )
        with get_session() as db:
            order = db.get(OrderBookOrder, existing_order.id)
            order.subtotal = subtotal
            order.total = subtotal
            order.updated_at = datetime.datetime.utcnow()
            db.query(OrderBookOrderItem).filter_by(order_id=order.id).delete(
                synchronize_session=False
            )
        logger.info("Updated order %s for %s", order.id, delivery_date)
    else:
        with get_session() as db:
            order = OrderBookOrder(
                supplier_id=supplier_id,
                customer_id=customer_id,
                delivery_date=delivery_date,
                status="draft",
                subtotal=subtotal,
                total=subtotal,
                created_by=created_by,
            )
            db.add(order)
            db.flush()
        logger.info("Created order %s for %s", order.id, delivery_date)

    try:
        items_count = _insert_items(order.id, priced.items)
    except SQLAlchemyError as exc:
        ORDER_UPSERTS_TOTAL.labels(result="error").inc()
        logger.error("Error creating order items for order %s: %s", order.id, exc)
        # Rolling back an updated order would destroy its previous state.
        if existing_order is None:
            logger.info("Rolling back order %s after item failure", order.id)
            with get_session() as db:
                db.query(OrderBookOrder).filter_by(id=order.id).delete(
                    synchronize_session=False
                )
        raise PersistenceError("Failed to create order items") from exc

    ORDER_UPSERTS_TOTAL.labels(result="updated" if existing_order else "created").inc()
    return {
        "id": order.id,
        "delivery_date": delivery_date.isoformat(),
        "total": float(subtotal),
        "items_count": items_count,
        "skipped_product_ids": priced.skipped_product_ids,
    }


def _serialize_item(item: OrderBookOrderItem, product: Optional[OrderBookProduct]) -> Dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "product_id": item.product_id,
        "quantity": float(item.quantity),
        "unit_price": float(item.unit_price),
        "line_total": float(item.line_total),
        "product": None
        if product is None
        else {
            "id": product.id,
            "name": product.name,
            "category": product.category,
            "unit": product.unit,
        },
    }


def _serialize_order(order: OrderBookOrder, customer: Optional[OrderBookCustomer]) -> Dict[str, Any]:
    return {
        "id": order.id,
        "supplier_id": order.supplier_id,
        "customer_id": order.customer_id,
        "delivery_date": order.delivery_date.isoformat(),
        "status": order.status,
        "subtotal": float(order.subtotal),
        "total": float(order.total),
        "created_by": order.created_by,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
        "customer": None
        if customer is None
        else {
            "id": customer.id,
            "business_name": customer.business_name,
            "contact_name": customer.contact_name,
            "email": customer.email,
        },
        "items": [],
    }


def list_orders(
    company_id, customer_id=None, supplier_id=None, delivery_date=None
) -> List[Dict[str, Any]]:
    """Return the company's orders newest delivery first, with customer and items."""
    delivery_date = parse_date(delivery_date) if delivery_date else None
    with get_session() as db:
        query = (
            db.query(OrderBookOrder, OrderBookCustomer)
            .join(OrderBookCustomer, OrderBookOrder.customer_id == OrderBookCustomer.id)
            .filter(OrderBookCustomer.company_id == company_id)
        )
        if customer_id:
            query = query.filter(OrderBookOrder.customer_id == customer_id)
        if supplier_id:
            query = query.filter(OrderBookOrder.supplier_id == supplier_id)
        if delivery_date:
            query = query.filter(OrderBookOrder.delivery_date == delivery_date)
        rows = query.order_by(
            OrderBookOrder.delivery_date.desc(), OrderBookOrder.created_at.desc()
        ).all()

        orders = [_serialize_order(order, customer) for order, customer in rows]
        if not orders:
            return orders

        by_id = {order["id"]: order for order in orders}
        # Items come from a separate query so a missing product never hides a line.
        items = (
            db.query(OrderBookOrderItem, OrderBookProduct)
            .outerjoin(OrderBookProduct, OrderBookOrderItem.product_id == OrderBookProduct.id)
            .filter(OrderBookOrderItem.order_id.in_(list(by_id)))
            .order_by(OrderBookOrderItem.id)
            .all()
        )
        for item, product in items:
            by_id[item.order_id]["items"].append(_serialize_item(item, product))
        logger.debug("Fetched %d order items for %d orders", len(items), len(orders))
    return orders


__all__ = ["price_items", "upsert_order", "list_orders", "parse_date"]
