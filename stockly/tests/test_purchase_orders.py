import datetime

import pytest

from stockly.db import get_session
from stockly.domain import purchase_orders as po
from stockly.models import Company, ProductVariant, PurchaseOrder, StockItem, Supplier


@pytest.fixture
def catalog(company):
    """Three stock items sold by the company's supplier."""
    with get_session() as db:
        ids = {}
        for name, price, par, shelf_life in [
            ("Olive oil", "8.00", 6, 540),
            ("Flour", "12.50", 4, 240),
            ("Butter", "3.20", 10, 20),
        ]:
            item = StockItem(
                company_id=company["company_id"],
                name=name,
                par_level=par,
                shelf_life_days=shelf_life,
                is_perishable=shelf_life < 30,
            )
            db.add(item)
            db.flush()
            db.add(
                ProductVariant(
                    stock_item_id=item.id, supplier_id=company["supplier_id"], unit_price=price
                )
            )
            ids[name] = item.id
    return {**company, **ids}


def _create(client, catalog, lines, **extra):
    return client.post(
        "/api/purchase-orders",
        json={"supplier_id": catalog["supplier_id"], "lines": lines, **extra},
    )


def test_create_purchase_order_with_vat(client, login, catalog):
    response = _create(
        client,
        catalog,
        [
            {"stock_item_id": catalog["Olive oil"], "quantity": 2},
            {"stock_item_id": catalog["Flour"], "quantity": 1},
        ],
        order_date="2026-10-19",
    )
    assert response.status_code == 201
    order = response.get_json()["data"]
    assert order["order_number"] == "PO-20261019-0001"
    assert order["status"] == "draft"
    assert order["subtotal"] == 28.5
    assert order["tax"] == 5.7
    assert order["total"] == 34.2
    assert order["expected_delivery"] == "2026-10-21"
    assert order["site_id"] == login["site_id"]
    assert [line["item_name"] for line in order["lines"]] == ["Olive oil", "Flour"]
    assert order["allowed_actions"] == ["sent", "pending_approval"]


def test_po_numbers_count_company_orders(client, login, catalog):
    line = [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    _create(client, catalog, line, order_date="2026-10-19")
    second = _create(client, catalog, line, order_date="2026-10-20").get_json()["data"]
    assert second["order_number"] == "PO-20261020-0002"


def test_lines_without_supplier_variant_are_skipped(client, login, catalog):
    with get_session() as db:
        item = StockItem(company_id=catalog["company_id"], name="Saffron")
        db.add(item)
        db.flush()
        saffron_id = item.id
    order = _create(
        client,
        catalog,
        [
            {"stock_item_id": saffron_id, "quantity": 1},
            {"stock_item_id": catalog["Butter"], "quantity": 5},
        ],
    ).get_json()["data"]
    assert len(order["lines"]) == 1
    assert order["subtotal"] == 16.0


def test_preferred_approved_variant_wins(company):
    with get_session() as db:
        item = StockItem(company_id=company["company_id"], name="Eggs")
        db.add(item)
        db.flush()
        db.add_all(
            [
                ProductVariant(
                    stock_item_id=item.id,
                    supplier_id=company["supplier_id"],
                    unit_price=1,
                    is_approved=False,
                    is_preferred=True,
                ),
                ProductVariant(
                    stock_item_id=item.id, supplier_id=company["supplier_id"], unit_price=2
                ),
                ProductVariant(
                    stock_item_id=item.id,
                    supplier_id=company["supplier_id"],
                    unit_price=3,
                    is_preferred=True,
                ),
            ]
        )
        db.flush()
        variant = po.resolve_variant(db, item.id, company["supplier_id"])
        assert float(variant.unit_price) == 3.0


def test_update_replaces_lines(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    response = client.put(
        f"/api/purchase-orders/{order['id']}",
        json={
            "lines": [{"stock_item_id": catalog["Butter"], "quantity": 10}],
            "notes": "Back door",
        },
    )
    assert response.status_code == 200
    updated = response.get_json()["data"]
    assert [line["item_name"] for line in updated["lines"]] == ["Butter"]
    assert updated["subtotal"] == 32.0
    assert updated["notes"] == "Back door"
    assert updated["order_number"] == order["order_number"]


def test_sent_order_cannot_be_edited(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    client.post(f"/api/purchase-orders/{order['id']}/status", json={"status": "sent"})
    response = client.put(f"/api/purchase-orders/{order['id']}", json={"lines": []})
    assert response.status_code == 400


def test_status_workflow(client, login, catalog, monkeypatch):
    sent = []
    monkeypatch.setattr(po, "send_purchase_order_email", lambda order: sent.append(order) or True)
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    url = f"/api/purchase-orders/{order['id']}/status"

    approved = client.post(url, json={"status": "approved"})
    assert approved.status_code == 400

    pending = client.post(url, json={"status": "pending_approval"}).get_json()["data"]
    assert pending["allowed_actions"] == ["approved", "draft"]

    approved = client.post(url, json={"status": "approved"}).get_json()["data"]
    assert approved["approved_at"] is not None

    result = client.post(url, json={"status": "sent"}).get_json()["data"]
    assert result["status"] == "sent"
    assert result["sent_at"] is not None
    assert result["email_sent"] is True
    assert sent[0]["supplier"]["order_email"] == "orders@drygoods.example"

    acknowledged = client.post(url, json={"status": "acknowledged"}).get_json()["data"]
    assert acknowledged["allowed_actions"] == []


def test_failed_supplier_email_does_not_block_sending(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    response = client.post(
        f"/api/purchase-orders/{order['id']}/status", json={"status": "sent"}
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["email_sent"] is False


def test_other_company_orders_are_hidden(client, login, catalog):
    with get_session() as db:
        other = Company(name="Elsewhere")
        db.add(other)
        db.flush()
        supplier = Supplier(company_id=other.id, name="Their supplier")
        db.add(supplier)
        db.flush()
        db.add(
            PurchaseOrder(
                company_id=other.id,
                supplier_id=supplier.id,
                order_number="PO-20261019-0001-X",
                order_date=datetime.date(2026, 10, 19),
            )
        )
        db.flush()
        foreign_id = db.query(PurchaseOrder).filter_by(company_id=other.id).one().id

    assert client.get(f"/api/purchase-orders/{foreign_id}").status_code == 404
    assert client.get("/api/purchase-orders").get_json()["count"] == 0


def test_suggestions_for_purchase_order(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    response = client.get(f"/api/purchase-orders/{order['id']}/suggestions")
    data = response.get_json()["data"]
    assert data["current_total"] == 12.5
    assert data["shortfall"] == 137.5
    names = [s["item_name"] for s in data["suggestions"]]
    assert names == ["Olive oil", "Butter"]


def test_apply_suggestions_appends_lines(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    response = client.post(
        f"/api/purchase-orders/{order['id']}/suggestions/apply",
        json={"stock_item_ids": [catalog["Olive oil"], catalog["Flour"]]},
    )
    assert response.status_code == 200
    updated = response.get_json()["data"]
    assert updated["lines_added"] == 1
    assert [line["item_name"] for line in updated["lines"]] == ["Flour", "Olive oil"]
    olive = updated["lines"][1]
    assert olive["quantity_ordered"] == 6.0
    assert updated["subtotal"] == 60.5


def test_apply_requires_selection(client, login, catalog):
    order = _create(
        client, catalog, [{"stock_item_id": catalog["Flour"], "quantity": 1}]
    ).get_json()["data"]
    response = client.post(
        f"/api/purchase-orders/{order['id']}/suggestions/apply", json={"stock_item_ids": []}
    )
    assert response.status_code == 400


def test_create_requires_supplier(client, login):
    response = client.post("/api/purchase-orders", json={"lines": []})
    assert response.status_code == 400


@pytest.mark.parametrize(
    "line",
    [
        {"quantity": "abc"},
        {"quantity": "NaN"},
        {"quantity": 1, "unit_price": "cheap"},
        {"quantity": 1, "unit_price": "Infinity"},
    ],
)
def test_malformed_line_amounts_are_400(client, login, catalog, line):
    response = _create(client, catalog, [{"stock_item_id": catalog["Flour"], **line}])
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("Invalid ")
    with get_session() as db:
        assert db.query(PurchaseOrder).count() == 0
