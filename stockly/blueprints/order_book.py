"""Order-book API: list and upsert customer orders."""

import logging

from flask import Blueprint, jsonify, request

from ..auth import current_company_id, current_user_id, login_required
from ..domain import order_book

logger = logging.getLogger(__name__)

bp = Blueprint("order_book", __name__, url_prefix="/api/order-book")


@bp.route("/orders", methods=["GET"])
@login_required
def list_orders():
    orders = order_book.list_orders(
        current_company_id(),
        customer_id=request.args.get("customer_id", type=int),
        supplier_id=request.args.get("supplier_id", type=int),
        delivery_date=request.args.get("delivery_date"),
    )
    return jsonify({"success": True, "data": orders, "count": len(orders)})


@bp.route("/orders", methods=["POST"])
@login_required
def upsert_order():
    """Create or replace the order for a customer and delivery date."""
    body = request.get_json(silent=True) or {}
    logger.info(
        "Order submission: supplier=%s customer=%s date=%s items=%s",
        body.get("supplier_id"),
        body.get("customer_id"),
        body.get("delivery_date"),
        len(body.get("items") or []) if isinstance(body.get("items"), list) else "invalid",
    )
    result = order_book.upsert_order(
        current_company_id(),
        body.get("supplier_id"),
        body.get("customer_id"),
        body.get("delivery_date"),
        body.get("items"),
        created_by=current_user_id(),
    )
    return jsonify({"success": True, "data": result}), 201
