import io

import pandas as pd

from stockly.db import get_session
from stockly.domain import exports
from stockly.models import ProductVariant, StockItem, StockLevel


def _seed(company):
    with get_session() as db:
        flour = StockItem(
            company_id=company["company_id"], name="Flour", par_level=4, reorder_point=2
        )
        yeast = StockItem(company_id=company["company_id"], name="Yeast", shelf_life_days=120)
        db.add_all([flour, yeast])
        db.flush()
        db.add_all(
            [
                StockLevel(stock_item_id=flour.id, site_id=company["site_id"], quantity=3),
                ProductVariant(stock_item_id=flour.id, supplier_id=company["supplier_id"], unit_price=10),
                ProductVariant(stock_item_id=flour.id, supplier_id=company["supplier_id"], unit_price=11),
            ]
        )


def test_stock_rows(company):
    _seed(company)
    rows = exports.stock_rows(company["company_id"])
    assert [row["Item"] for row in rows] == ["Flour", "Yeast"]
    flour, yeast = rows
    assert flour["Quantity"] == 3.0
    assert flour["Latest price"] == 11.0
    assert yeast["Quantity"] == 0.0
    assert yeast["Latest price"] is None


def test_stock_xlsx_download(client, login):
    _seed(login)
    response = client.get("/api/reports/stock.xlsx")
    assert response.status_code == 200
    assert "attachment" in response.headers["Content-Disposition"]
    df = pd.read_excel(io.BytesIO(response.data))
    assert list(df.columns) == exports.STOCK_COLUMNS
    assert df["Item"].tolist() == ["Flour", "Yeast"]


def test_purchase_order_html_escapes_text():
    html = exports.purchase_order_html(
        {
            "order_number": "PO-20261019-0001",
            "order_date": "2026-10-19",
            "expected_delivery": None,
            "status": "draft",
            "supplier": {"name": "Smith & Sons"},
            "notes": "<b>ring bell</b>",
            "lines": [
                {
                    "item_name": "Flour",
                    "product_variant_id": 1,
                    "quantity_ordered": 2.0,
                    "unit_price": 12.5,
                    "line_total": 25.0,
                }
            ],
            "subtotal": 25.0,
            "tax": 5.0,
            "total": 30.0,
        }
    )
    assert "Smith &amp; Sons" in html
    assert "&lt;b&gt;ring bell&lt;/b&gt;" in html
    assert "<td class='num'>25.00</td>" in html


def test_purchase_order_pdf_route(client, login, monkeypatch):
    calls = []
    monkeypatch.setattr(
        "stockly.blueprints.purchasing.purchase_order_pdf",
        lambda po_id, company_id: calls.append((po_id, company_id)) or b"%PDF-1.7",
    )
    response = client.get("/api/purchase-orders/5/pdf")
    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")
    assert calls == [(5, login["company_id"])]


def test_purchase_order_pdf_unknown_order_is_404(client, login):
    response = client.get("/api/purchase-orders/999/pdf")
    assert response.status_code == 404
