"""Purchase orders and order-padding suggestions."""

import logging

from flask import Blueprint, Response, jsonify, request

from ..auth import current_company_id, current_site_id, current_user_id, login_required
from ..db import parse_amount
from ..domain import purchase_orders, suggestions
from ..domain.exports import purchase_order_pdf
from ..errors import ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint("purchasing", __name__, url_prefix="/api")


def _id_list(raw):
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [part for part in raw.split(",") if part.strip()]
    if not isinstance(raw, list):
        raise ValidationError("Expected a list of ids")
    try:
        return [int(value) for value in raw]
    except (TypeError, ValueError):
        raise ValidationError("Expected a list of ids") from None


@bp.route("/suppliers/<int:supplier_id>/order-suggestions")
@login_required
def supplier_suggestions(supplier_id):
    """Padding suggestions for a draft order that has not been saved yet."""
    current_total = parse_amount(request.args.get("current_total", "0"), "current_total")
    payload = suggestions.suggest_for_supplier(
        supplier_id,
        current_company_id(),
        current_total,
        existing_item_ids=_id_list(request.args.get("exclude")),
        site_id=request.args.get("site_id", type=int),
    )
    return jsonify({"success": True, "data": payload})


@bp.route("/purchase-orders", methods=["GET"])
@login_required
def list_purchase_orders():
    orders = purchase_orders.list_purchase_orders(
        current_company_id(),
        status=request.args.get("status"),
        supplier_id=request.args.get("supplier_id", type=int),
    )
    return jsonify({"success": True, "data": orders, "count": len(orders)})


@bp.route("/purchase-orders", methods=["POST"])
@login_required
def create_purchase_order():
    body = request.get_json(silent=True) or {}
    body.setdefault("site_id", current_site_id())
    order = purchase_orders.save_purchase_order(
        current_company_id(), body, created_by=current_user_id()
    )
    return jsonify({"success": True, "data": order}), 201


@bp.route("/purchase-orders/<int:po_id>", methods=["GET"])
@login_required
def get_purchase_order(po_id):
    order = purchase_orders.get_purchase_order(po_id, current_company_id())
    return jsonify({"success": True, "data": order})


@bp.route("/purchase-orders/<int:po_id>", methods=["PUT"])
@login_required
def update_purchase_order(po_id):
    body = request.get_json(silent=True) or {}
    order = purchase_orders.save_purchase_order(current_company_id(), body, po_id=po_id)
    return jsonify({"success": True, "data": order})


@bp.route("/purchase-orders/<int:po_id>/status", methods=["POST"])
@login_required
def change_status(po_id):
    body = request.get_json(silent=True) or {}
    status = body.get("status")
    if not status:
        raise ValidationError("Missing required field: status")
    order = purchase_orders.transition_status(po_id, current_company_id(), status)
    return jsonify({"success": True, "data": order})


@bp.route("/purchase-orders/<int:po_id>/suggestions")
@login_required
def purchase_order_suggestions(po_id):
    payload = purchase_orders.suggestions_for_purchase_order(po_id, current_company_id())
    return jsonify({"success": True, "data": payload})


@bp.route("/purchase-orders/<int:po_id>/suggestions/apply", methods=["POST"])
@login_required
def apply_suggestions(po_id):
    body = request.get_json(silent=True) or {}
    order = purchase_orders.apply_suggestions(
        po_id, current_company_id(), _id_list(body.get("stock_item_ids"))
    )
    return jsonify({"success": True, "data": order})


@bp.route("/purchase-orders/<int:po_id>/pdf")
@login_required
def purchase_order_pdf_view(po_id):
    pdf_bytes = purchase_order_pdf(po_id, current_company_id())
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=purchase_order_{po_id}.pdf"},
    )
