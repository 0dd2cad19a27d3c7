"""Purchase orders: numbering, line resolution, totals and status workflow."""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..config import settings
from ..constants import EDITABLE_PO_STATUSES, PO_STATUS_ACTIONS
from ..db import get_session, parse_amount, to_decimal
from ..errors import NotFoundError, ValidationError
from ..metrics import PURCHASE_ORDER_TRANSITIONS_TOTAL
from ..models import ProductVariant, PurchaseOrder, PurchaseOrderLine, Supplier
from ..notifications import send_purchase_order_email
from . import suggestions as padding
from .order_book import parse_date

logger = logging.getLogger(__name__)


def generate_po_number(db, company_id, order_date: Optional[datetime.date] = None) -> str:
    order_date = order_date or datetime.date.today()
    count = db.query(PurchaseOrder).filter_by(company_id=company_id).count()
    return f"PO-{order_date:%Y%m%d}-{count + 1:04d}"


def compute_totals(line_totals: Iterable[Decimal]) -> Dict[str, Decimal]:
    subtotal = to_decimal(sum((to_decimal(v) for v in line_totals), Decimal("0.00")))
    tax = to_decimal(subtotal * Decimal(str(settings.VAT_RATE)))
    return {"subtotal": subtotal, "tax": tax, "total": to_decimal(subtotal + tax)}


def resolve_variant(db, stock_item_id, supplier_id) -> Optional[ProductVariant]:
    """Pick the supplier's variant for an item, approved and preferred first."""
    return (
        db.query(ProductVariant)
        .filter(
            ProductVariant.stock_item_id == stock_item_id,
            ProductVariant.supplier_id == supplier_id,
            ProductVariant.is_discontinued.is_(False),
        )
        .order_by(
            ProductVariant.is_approved.desc(),
            ProductVariant.is_preferred.desc(),
            ProductVariant.id.asc(),
        )
        .first()
    )


def _build_lines(db, supplier_id, lines: Iterable[dict]) -> List[PurchaseOrderLine]:
    built = []
    for raw in lines:
        if not isinstance(raw, dict):
            continue
        quantity = parse_amount(
            raw.get("quantity") or raw.get("quantity_ordered"), "quantity"
        )
        if quantity <= 0:
            logger.warning("Skipping PO line with quantity %s", quantity)
            continue

        variant = None
        if raw.get("product_variant_id"):
            variant = (
                db.query(ProductVariant)
                .filter_by(id=raw["product_variant_id"], supplier_id=supplier_id)
                .first()
            )
        elif raw.get("stock_item_id"):
            variant = resolve_variant(db, raw["stock_item_id"], supplier_id)
        if variant is None:
            logger.warning(
                "No variant of supplier %s for PO line %s - skipping", supplier_id, raw
            )
            continue

        unit_price = raw.get("unit_price")
        if unit_price in (None, ""):
            unit_price = to_decimal(variant.unit_price)
        else:
            unit_price = parse_amount(unit_price, "unit_price")
        built.append(
            PurchaseOrderLine(
                product_variant_id=variant.id,
                variant=variant,
                quantity_ordered=quantity,
                unit_price=unit_price,
                line_total=to_decimal(quantity * unit_price),
            )
        )
    return built


def _apply_totals(order: PurchaseOrder) -> None:
    totals = compute_totals(line.line_total for line in order.lines)
    order.subtotal = totals["subtotal"]
    order.tax = totals["tax"]
    order.total = totals["total"]


def serialize_purchase_order(order: PurchaseOrder) -> Dict[str, Any]:
    supplier = order.supplier
    return {
        "id": order.id,
        "order_number": order.order_number,
        "company_id": order.company_id,
        "site_id": order.site_id,
        "supplier_id": order.supplier_id,
        "supplier": None
        if supplier is None
        else {
            "id": supplier.id,
            "name": supplier.name,
            "order_email": supplier.order_email,
            "minimum_order_value": None
            if supplier.minimum_order_value is None
            else float(supplier.minimum_order_value),
        },
        "order_date": order.order_date.isoformat(),
        "expected_delivery": order.expected_delivery.isoformat()
        if order.expected_delivery
        else None,
        "status": order.status,
        "subtotal": float(order.subtotal),
        "tax": float(order.tax),
        "total": float(order.total),
        "notes": order.notes,
        "sent_at": order.sent_at.isoformat() if order.sent_at else None,
        "approved_at": order.approved_at.isoformat() if order.approved_at else None,
        "allowed_actions": list(PO_STATUS_ACTIONS.get(order.status, ())),
        "lines": [
            {
                "id": line.id,
                "product_variant_id": line.product_variant_id,
                "stock_item_id": line.variant.stock_item_id if line.variant else None,
                "item_name": line.variant.stock_item.name
                if line.variant and line.variant.stock_item
                else None,
                "quantity_ordered": float(line.quantity_ordered),
                "quantity_received": float(line.quantity_received),
                "unit_price": float(line.unit_price),
                "line_total": float(line.line_total),
            }
            for line in order.lines
        ],
    }


def _load(db, po_id, company_id) -> PurchaseOrder:
    order = db.query(PurchaseOrder).filter_by(id=po_id, company_id=company_id).first()
    if order is None:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return order


def save_purchase_order(
    company_id,
    data: Dict[str, Any],
    po_id=None,
    created_by=None,
) -> Dict[str, Any]:
    """Create a draft purchase order or replace an editable one's header and lines."""
    data = data or {}
    supplier_id = data.get("supplier_id")
    lines = data.get("lines")
    if lines is None:
        lines = data.get("items") or []
    if not isinstance(lines, list):
        raise ValidationError("lines must be a list")

    with get_session() as db:
        if po_id is not None:
            order = _load(db, po_id, company_id)
            if order.status not in EDITABLE_PO_STATUSES:
                raise ValidationError(
                    f"Cannot edit purchase order with status '{order.status}'"
                )
            supplier_id = supplier_id or order.supplier_id
        elif not supplier_id:
            raise ValidationError("Missing required field: supplier_id")

        supplier = (
            db.query(Supplier).filter_by(id=supplier_id, company_id=company_id).first()
        )
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")

        order_date = data.get("order_date")
        order_date = parse_date(order_date, "order_date") if order_date else None
        expected = data.get("expected_delivery")
        expected = parse_date(expected, "expected_delivery") if expected else None

        built = _build_lines(db, supplier.id, lines)

        if po_id is None:
            order_date = order_date or datetime.date.today()
            order = PurchaseOrder(
                company_id=company_id,
                site_id=data.get("site_id"),
                supplier=supplier,
                order_number=generate_po_number(db, company_id, order_date),
                order_date=order_date,
                status="draft",
                created_by=created_by,
            )
            db.add(order)
        else:
            order.supplier = supplier
            if order_date:
                order.order_date = order_date
            if "site_id" in data:
                order.site_id = data.get("site_id")
            order.lines.clear()

        if expected is None and po_id is None and supplier.lead_time_days:
            expected = order.order_date + datetime.timedelta(days=supplier.lead_time_days)
        if expected is not None:
            order.expected_delivery = expected
        if "notes" in data:
            order.notes = data.get("notes")

        order.lines.extend(built)
        _apply_totals(order)
        db.flush()
        logger.info(
            "%s purchase order %s with %d lines",
            "Created" if po_id is None else "Updated",
            order.order_number,
            len(built),
        )
        return serialize_purchase_order(order)


def get_purchase_order(po_id, company_id) -> Dict[str, Any]:
    with get_session() as db:
        return serialize_purchase_order(_load(db, po_id, company_id))


def list_purchase_orders(company_id, status=None, supplier_id=None) -> List[Dict[str, Any]]:
    with get_session() as db:
        query = db.query(PurchaseOrder).filter_by(company_id=company_id)
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if supplier_id:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)
        orders = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()
        return [serialize_purchase_order(order) for order in orders]


def transition_status(po_id, company_id, new_status: str) -> Dict[str, Any]:
    """Move a purchase order along the status table.

    Sending stamps ``sent_at`` and e-mails the supplier; a failed e-mail is
    reported as ``email_sent: False`` and does not undo the change.
    """
    with get_session() as db:
        order = _load(db, po_id, company_id)
        allowed = PO_STATUS_ACTIONS.get(order.status, ())
        if new_status not in allowed:
            raise ValidationError(
                f"Cannot change purchase order from '{order.status}' to '{new_status}'"
            )
        order.status = new_status
        now = datetime.datetime.utcnow()
        if new_status == "sent":
            order.sent_at = now
        elif new_status == "approved":
            order.approved_at = now
        db.flush()
        payload = serialize_purchase_order(order)

    PURCHASE_ORDER_TRANSITIONS_TOTAL.labels(status=new_status).inc()
    logger.info("Purchase order %s moved to %s", payload["order_number"], new_status)

    if new_status == "sent":
        payload["email_sent"] = send_purchase_order_email(payload)
    return payload


def suggestions_for_purchase_order(po_id, company_id) -> Dict[str, Any]:
    with get_session() as db:
        order = _load(db, po_id, company_id)
        subtotal = order.subtotal
        supplier_id = order.supplier_id
        site_id = order.site_id
        existing = [
            line.variant.stock_item_id for line in order.lines if line.variant is not None
        ]
    return padding.suggest_for_supplier(
        supplier_id, company_id, subtotal, existing_item_ids=existing, site_id=site_id
    )


def apply_suggestions(po_id, company_id, stock_item_ids: Iterable[int]) -> Dict[str, Any]:
    """Append the chosen suggestions to an editable purchase order as new lines."""
    wanted = {int(item_id) for item_id in stock_item_ids or ()}
    if not wanted:
        raise ValidationError("No suggestions selected")

    summary = suggestions_for_purchase_order(po_id, company_id)
    chosen = [s for s in summary["suggestions"] if s["stock_item_id"] in wanted]

    with get_session() as db:
        order = _load(db, po_id, company_id)
        if order.status not in EDITABLE_PO_STATUSES:
            raise ValidationError(
                f"Cannot edit purchase order with status '{order.status}'"
            )
        existing = {
            line.variant.stock_item_id for line in order.lines if line.variant is not None
        }
        added = 0
        for suggestion in chosen:
            if suggestion["stock_item_id"] in existing:
                continue
            variant = resolve_variant(db, suggestion["stock_item_id"], order.supplier_id)
            if variant is None:
                continue
            quantity = to_decimal(suggestion["suggested_quantity"])
            unit_price = to_decimal(suggestion["unit_price"])
            order.lines.append(
                PurchaseOrderLine(
                    product_variant_id=variant.id,
                    variant=variant,
                    quantity_ordered=quantity,
                    unit_price=unit_price,
                    line_total=to_decimal(quantity * unit_price),
                )
            )
            added += 1
        _apply_totals(order)
        db.flush()
        logger.info("Added %d suggested lines to %s", added, order.order_number)
        payload = serialize_purchase_order(order)
    payload["lines_added"] = added
    return payload


__all__ = [
    "generate_po_number",
    "compute_totals",
    "resolve_variant",
    "save_purchase_order",
    "get_purchase_order",
    "list_purchase_orders",
    "transition_status",
    "suggestions_for_purchase_order",
    "apply_suggestions",
]
