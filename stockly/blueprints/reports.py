import datetime

from flask import Blueprint, Response, request

from ..auth import current_company_id, login_required
from ..domain.exports import stock_workbook

bp = Blueprint("reports", __name__, url_prefix="/api/reports")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@bp.route("/stock.xlsx")
@login_required
def stock_export():
    content = stock_workbook(current_company_id(), request.args.get("site_id", type=int))
    filename = f"stock_{datetime.date.today():%Y%m%d}.xlsx"
    return Response(
        content,
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
