"""Quick delivery capture: book received stock in at a site."""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Any, Dict, List

from ..config import settings
from ..db import adjust_stock_level, get_session, parse_amount, record_movement, to_decimal
from ..errors import NotFoundError, ValidationError
from ..models import Delivery, DeliveryLine, StockItem, Supplier
from .order_book import parse_date

logger = logging.getLogger(__name__)


def _parse_lines(lines) -> List[Dict[str, Any]]:
    parsed = []
    for raw in lines:
        if not isinstance(raw, dict):
            raise ValidationError("Each delivery line must be an object")
        try:
            stock_item_id = int(raw.get("stock_item_id"))
        except (TypeError, ValueError):
            raise ValidationError("Each delivery line needs a stock_item_id") from None
        quantity = parse_amount(raw.get("quantity"), "quantity")
        if quantity <= 0:
            raise ValidationError(f"Invalid quantity for stock item {stock_item_id}")
        unit_price = parse_amount(raw.get("unit_price"), "unit_price")
        if unit_price < 0:
            raise ValidationError(f"Invalid unit_price for stock item {stock_item_id}")
        parsed.append(
            {
                "stock_item_id": stock_item_id,
                "description": raw.get("description") or raw.get("name"),
                "quantity": quantity,
                "unit_price": unit_price,
                "line_total": to_decimal(quantity * unit_price),
            }
        )
    return parsed


def record_delivery(company_id, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a confirmed delivery, raise stock at its site and log movements."""
    data = data or {}
    supplier_id = data.get("supplier_id")
    lines = data.get("lines")
    if not supplier_id or not lines or not isinstance(lines, list):
        raise ValidationError("Missing required fields: supplier_id, lines")
    parsed = _parse_lines(lines)
    site_id = data.get("site_id")
    delivery_date = data.get("delivery_date")
    delivery_date = parse_date(delivery_date) if delivery_date else datetime.date.today()

    subtotal = to_decimal(sum((line["line_total"] for line in parsed), Decimal("0.00")))
    vat_total = to_decimal(subtotal * Decimal(str(settings.VAT_RATE)))

    with get_session() as db:
        supplier = (
            db.query(Supplier).filter_by(id=supplier_id, company_id=company_id).first()
        )
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        item_ids = {line["stock_item_id"] for line in parsed}
        known = {
            item_id
            for (item_id,) in db.query(StockItem.id).filter(
                StockItem.id.in_(item_ids), StockItem.company_id == company_id
            )
        }
        missing = sorted(item_ids - known)
        if missing:
            raise ValidationError(f"Unknown stock items: {missing}")

        delivery = Delivery(
            company_id=company_id,
            site_id=site_id,
            supplier_id=supplier.id,
            delivery_date=delivery_date,
            invoice_number=data.get("invoice_number") or None,
            subtotal=subtotal,
            vat_total=vat_total,
            total=to_decimal(subtotal + vat_total),
            status="confirmed",
        )
        db.add(delivery)
        db.flush()

        for line in parsed:
            delivery.lines.append(
                DeliveryLine(
                    stock_item_id=line["stock_item_id"],
                    description=line["description"],
                    quantity_ordered=line["quantity"],
                    quantity_received=line["quantity"],
                    unit_price=line["unit_price"],
                    line_total=line["line_total"],
                    match_status="matched",
                )
            )
            adjust_stock_level(db, line["stock_item_id"], site_id, line["quantity"])
            record_movement(
                db,
                company_id,
                line["stock_item_id"],
                "purchase",
                line["quantity"],
                unit_cost=line["unit_price"],
                ref_type="delivery",
                ref_id=delivery.id,
                to_site_id=site_id,
            )
        db.flush()
        logger.info(
            "Recorded delivery %s from supplier %s with %d lines",
            delivery.id,
            supplier.id,
            len(parsed),
        )
        return {
            "id": delivery.id,
            "delivery_date": delivery.delivery_date.isoformat(),
            "invoice_number": delivery.invoice_number,
            "subtotal": float(delivery.subtotal),
            "vat_total": float(delivery.vat_total),
            "total": float(delivery.total),
            "status": delivery.status,
            "lines_count": len(parsed),
        }


__all__ = ["record_delivery"]
