"""Spreadsheet and PDF exports."""

from __future__ import annotations

import io
import logging
from html import escape
from typing import Any, Dict, List

import pandas as pd
from sqlalchemy import func

from ..db import get_session, to_decimal
from ..models import ProductVariant, StockItem, StockLevel
from .purchase_orders import get_purchase_order

logger = logging.getLogger(__name__)

STOCK_COLUMNS = [
    "Item",
    "Unit",
    "Quantity",
    "Par level",
    "Reorder point",
    "Shelf life (days)",
    "Latest price",
]


def stock_rows(company_id, site_id=None) -> List[Dict[str, Any]]:
    with get_session() as db:
        levels = db.query(
            StockLevel.stock_item_id.label("stock_item_id"),
            func.sum(StockLevel.quantity).label("quantity"),
        )
        if site_id is not None:
            levels = levels.filter(StockLevel.site_id == site_id)
        levels = levels.group_by(StockLevel.stock_item_id).subquery()

        items = (
            db.query(StockItem, levels.c.quantity)
            .outerjoin(levels, levels.c.stock_item_id == StockItem.id)
            .filter(StockItem.company_id == company_id, StockItem.is_active.is_(True))
            .order_by(StockItem.name)
            .all()
        )
        prices = {}
        for variant in (
            db.query(ProductVariant)
            .join(StockItem, ProductVariant.stock_item_id == StockItem.id)
            .filter(StockItem.company_id == company_id)
            .order_by(ProductVariant.id.asc())
        ):
            # Later variants overwrite earlier ones: the newest price wins.
            if variant.unit_price is not None:
                prices[variant.stock_item_id] = variant.unit_price

        rows = []
        for item, quantity in items:
            price = prices.get(item.id)
            rows.append(
                {
                    "Item": item.name,
                    "Unit": item.stock_unit,
                    "Quantity": float(to_decimal(quantity)),
                    "Par level": None if item.par_level is None else float(item.par_level),
                    "Reorder point": None
                    if item.reorder_point is None
                    else float(item.reorder_point),
                    "Shelf life (days)": item.shelf_life_days,
                    "Latest price": None if price is None else float(price),
                }
            )
    return rows


def stock_workbook(company_id, site_id=None) -> bytes:
    """Return the stock report as XLSX bytes."""
    df = pd.DataFrame(stock_rows(company_id, site_id), columns=STOCK_COLUMNS)
    buffer = io.BytesIO()
    df.to_excel(buffer, index=False, sheet_name="Stock")
    logger.info("Exported %d stock rows for company %s", len(df), company_id)
    return buffer.getvalue()


def purchase_order_html(order: Dict[str, Any]) -> str:
    supplier = order.get("supplier") or {}
    rows_html = ""
    for idx, line in enumerate(order["lines"], 1):
        rows_html += (
            "<tr>"
            f"<td>{idx}</td>"
            f"<td>{escape(line.get('item_name') or str(line['product_variant_id']))}</td>"
            f"<td class='num'>{line['quantity_ordered']:g}</td>"
            f"<td class='num'>{line['unit_price']:.2f}</td>"
            f"<td class='num'>{line['line_total']:.2f}</td>"
            "</tr>"
        )
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
    body {{ font-family: sans-serif; font-size: 11px; }}
    h1 {{ font-size: 18px; margin-bottom: 4px; }}
    table {{ width: 100%; border-collapse: collapse; margin-top: 12px; }}
    th, td {{ border: 1px solid #ccc; padding: 4px 6px; }}
    th {{ background: #f0f0f0; text-align: left; }}
    .num {{ text-align: right; }}
    .totals td {{ border: none; }}
</style>
</head>
<body>
<h1>Purchase order {escape(order['order_number'])}</h1>
<p>Supplier: {escape(supplier.get('name') or '')}<br>
Order date: {order['order_date']}<br>
Expected delivery: {order.get('expected_delivery') or '-'}<br>
Status: {escape(order['status'])}</p>
<table>
<thead><tr><th>#</th><th>Item</th><th>Qty</th><th>Unit price</th><th>Line total</th></tr></thead>
<tbody>{rows_html}</tbody>
</table>
<table class="totals">
<tr><td class="num">Subtotal</td><td class="num">{order['subtotal']:.2f}</td></tr>
<tr><td class="num">VAT</td><td class="num">{order['tax']:.2f}</td></tr>
<tr><td class="num"><strong>Total</strong></td><td class="num"><strong>{order['total']:.2f}</strong></td></tr>
</table>
<p>{escape(order.get('notes') or '')}</p>
</body>
</html>"""


def purchase_order_pdf(po_id, company_id) -> bytes:
    order = get_purchase_order(po_id, company_id)
    html_content = purchase_order_html(order)
    # Requires system Pango; imported on demand.
    from weasyprint import HTML

    return HTML(string=html_content).write_pdf()


__all__ = ["stock_rows", "stock_workbook", "purchase_order_html", "purchase_order_pdf"]
