from flask import Blueprint, jsonify, request

from ..auth import current_company_id, current_site_id, login_required
from ..domain.deliveries import record_delivery

bp = Blueprint("deliveries", __name__, url_prefix="/api")


@bp.route("/deliveries", methods=["POST"])
@login_required
def create_delivery():
    body = request.get_json(silent=True) or {}
    body.setdefault("site_id", current_site_id())
    delivery = record_delivery(current_company_id(), body)
    return jsonify({"success": True, "data": delivery}), 201
