"""
HTTP API tests.

Every request runs against the SQL document store on in-memory SQLite.
Requests without an X-User-Id header use the guest namespace.
"""

import json

import pytest


USER = {"X-User-Id": "user-1"}


@pytest.fixture
def seeded(client):
    client.put("/api/company", json={"state": "Delhi", "gstin": "07ABCDE1234F1Z5"})
    client.post("/api/products", json={
        "id": "p1", "name": "Widget", "price": "500", "stock": "10", "hsn": "8471", "gst_rate": "18",
    })
    client.post("/api/products", json={
        "id": "p2", "name": "Monitor", "price": "1000", "stock": "5", "hsn": "8528", "gst_rate": "18",
    })
    client.post("/api/customers", json={"id": "c1", "name": "Ravi", "state": "Delhi"})
    client.post("/api/customers", json={"id": "c2", "name": "Meera", "state": "Maharashtra"})
    return client


def _credit_invoice(customer_id="c1"):
    return {
        "customer_id": customer_id,
        "payment_mode": "CREDIT",
        "date": "2026-10-18",
        "items": [
            {"product_id": "p1", "quantity": 2},
            {"product_id": "p2", "quantity": 1},
        ],
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["checks"]["database"]["status"] == "healthy"


def test_full_credit_flow(seeded):
    response = seeded.post("/api/invoices", json=_credit_invoice())
    assert response.status_code == 201
    body = response.get_json()

    invoice = body["invoice"]
    assert invoice["status"] == "PENDING"
    assert invoice["subtotal"] == "2000"
    assert invoice["total_cgst"] == "180"
    assert invoice["total_sgst"] == "180"
    assert invoice["total"] == "2360"
    assert invoice["invoice_number"] == "INV-2026-0001"
    assert body["customer_balance"] == "2360"

    response = seeded.post("/api/payments", json={"customer_id": "c1", "amount": "1000", "mode": "upi"})
    assert response.status_code == 201
    assert response.get_json()["customer_balance"] == "1360"

    check = seeded.get("/api/reports/ledger-check").get_json()
    assert check["consistent"] is True

    product = seeded.get("/api/products/p1").get_json()["product"]
    assert product["stock"] == "8"


def test_inter_state_invoice(seeded):
    invoice = seeded.post("/api/invoices", json=_credit_invoice("c2")).get_json()["invoice"]

    assert invoice["tax_type"] == "INTER_STATE"
    assert invoice["total_igst"] == "360"
    assert invoice["total"] == "2360"


def test_cash_invoice_is_paid(seeded):
    payload = _credit_invoice()
    payload["payment_mode"] = "CASH"
    body = seeded.post("/api/invoices", json=payload).get_json()

    assert body["invoice"]["status"] == "PAID"
    assert body["customer_balance"] == "0"


def test_update_and_delete_invoice(seeded):
    created = seeded.post("/api/invoices", json=_credit_invoice()).get_json()["invoice"]

    payload = _credit_invoice()
    payload["items"] = [{"product_id": "p1", "quantity": 1, "rate": 500}]
    response = seeded.put(f"/api/invoices/{created['id']}", json=payload)
    assert response.status_code == 200
    updated = response.get_json()["invoice"]
    assert updated["invoice_number"] == created["invoice_number"]
    assert updated["total"] == "590"
    assert seeded.get("/api/customers/c1").get_json()["customer"]["balance"] == "590"

    response = seeded.delete(f"/api/invoices/{created['id']}")
    assert response.status_code == 200
    assert seeded.get("/api/customers/c1").get_json()["customer"]["balance"] == "0"
    assert seeded.get("/api/products/p1").get_json()["product"]["stock"] == "10"
    assert seeded.get("/api/products/p2").get_json()["product"]["stock"] == "5"
    assert seeded.get(f"/api/invoices/{created['id']}").status_code == 404


def test_edit_cash_invoice_keeps_status_and_dates(seeded):
    payload = {
        "customer_id": "c1",
        "payment_mode": "CASH",
        "date": "2026-01-05",
        "items": [{"product_id": "p1", "quantity": 1, "rate": 100}],
    }
    created = seeded.post("/api/invoices", json=payload).get_json()["invoice"]
    assert created["status"] == "PAID"

    response = seeded.put(f"/api/invoices/{created['id']}", json={
        "customer_id": "c1",
        "items": [{"product_id": "p1", "quantity": 2, "rate": 100}],
    })
    assert response.status_code == 200
    updated = response.get_json()["invoice"]
    assert updated["status"] == "PAID"
    assert updated["date"] == "2026-01-05"
    assert updated["due_date"] == created["due_date"]
    assert updated["total"] == "236"
    assert seeded.get("/api/customers/c1").get_json()["customer"]["balance"] == "0"

    # Moving the date recomputes the default due date
    moved = seeded.put(f"/api/invoices/{created['id']}", json={
        "customer_id": "c1",
        "date": "2026-02-01",
        "items": [{"product_id": "p1", "quantity": 2, "rate": 100}],
    }).get_json()["invoice"]
    assert moved["due_date"] == "2026-03-03"
    assert moved["status"] == "PAID"


def test_collection_routes_without_trailing_slash(seeded):
    response = seeded.post("/api/invoices", json=_credit_invoice())
    assert response.status_code == 201
    assert seeded.get("/api/invoices").get_json()["count"] == 1
    assert seeded.post("/api/payments", json={"customer_id": "c1", "amount": "5", "mode": "CASH"}).status_code == 201
    assert seeded.get("/api/payments?customer_id=c1").get_json()["count"] == 1


def test_preview_does_not_save(seeded):
    response = seeded.post("/api/invoices/preview", json=_credit_invoice())
    assert response.status_code == 200
    assert response.get_json()["invoice"]["total"] == "2360"
    assert seeded.get("/api/invoices").get_json()["count"] == 0


@pytest.mark.parametrize("payload,status", [
    ({"customer_id": "ghost", "items": [{"description": "x", "quantity": 1, "rate": 1}]}, 400),
    ({"customer_id": "c1", "items": []}, 400),
    ({"customer_id": "c1", "items": "nope"}, 400),
    ({"customer_id": "c1", "payment_mode": "BARTER", "items": [{"description": "x", "quantity": 1}]}, 400),
    ({"customer_id": "c1", "items": [{"description": "x", "quantity": "lots"}]}, 400),
    ({"items": [{"description": "x", "quantity": 1}]}, 400),
])
def test_invalid_invoice_payloads(seeded, payload, status):
    assert seeded.post("/api/invoices", json=payload).status_code == status


def test_missing_invoice_update_is_404(seeded):
    assert seeded.put("/api/invoices/nope", json=_credit_invoice()).status_code == 404
    assert seeded.delete("/api/invoices/nope").status_code == 404


def test_hsn_summary_shown_when_enabled(seeded):
    created = seeded.post("/api/invoices", json=_credit_invoice()).get_json()["invoice"]
    assert "hsn_summary" not in seeded.get(f"/api/invoices/{created['id']}").get_json()

    seeded.put("/api/company", json={"show_hsn_summary": True})
    body = seeded.get(f"/api/invoices/{created['id']}").get_json()
    assert [row["hsn"] for row in body["hsn_summary"]] == ["8471", "8528"]


def test_payment_validation(seeded):
    assert seeded.post("/api/payments", json={"customer_id": "c1", "amount": "10"}).status_code == 400
    assert seeded.post("/api/payments", json={"customer_id": "c1", "amount": "-1", "mode": "CASH"}).status_code == 400
    assert seeded.post("/api/payments", json={"customer_id": "ghost", "amount": "1", "mode": "CASH"}).status_code == 400


def test_customer_routes(seeded):
    assert seeded.post("/api/customers", json={"name": "X", "balance": 5}).status_code == 400
    assert seeded.post("/api/customers", json={"id": "c1", "name": "Dup"}).status_code == 409
    assert seeded.put("/api/customers/ghost", json={"name": "x"}).status_code == 404

    response = seeded.post("/api/customers/c1/reminders")
    assert response.status_code == 201
    assert response.get_json()["notification"]["type"] == "REMINDER"

    assert seeded.get("/api/customers?q=mee").get_json()["count"] == 1


def test_statement_and_rates(seeded):
    seeded.post("/api/invoices", json={
        "customer_id": "c1", "date": "2026-10-01",
        "items": [{"product_id": "p1", "quantity": 1, "rate": 450}],
    })

    statement = seeded.get("/api/customers/c1/statement?start_date=2026-10-01").get_json()
    assert len(statement["lines"]) == 1
    assert seeded.get("/api/customers/c1/statement?start_date=bad").status_code == 400

    rate = seeded.get("/api/customers/c1/rates/p1").get_json()
    assert rate["rate"] == "450"
    assert rate["source"] == "last_sale"
    assert seeded.get("/api/customers/c2/rates/p1").get_json()["source"] == "catalog"
    assert seeded.get("/api/customers/c1/rates/nope").status_code == 404


def test_product_routes(seeded):
    assert seeded.put("/api/products/p1", json={"stock": 1}).status_code == 400
    assert seeded.put("/api/products/p1", json={"price": "525"}).get_json()["product"]["price"] == "525"

    quick = seeded.post("/api/products/quick", json={"name": "Tape", "price": "20"})
    assert quick.status_code == 201
    assert quick.get_json()["product"]["stock"] == "100"

    assert seeded.delete("/api/products/p2").status_code == 200
    assert seeded.get("/api/products/p2").status_code == 404


def test_namespaces_are_isolated(seeded):
    assert seeded.get("/api/customers", headers=USER).get_json()["count"] == 0
    assert seeded.get("/api/customers").get_json()["count"] == 2

    seeded.post("/api/customers", json={"id": "c1", "name": "Other Ravi"}, headers=USER)
    assert seeded.get("/api/customers/c1", headers=USER).get_json()["customer"]["name"] == "Other Ravi"
    assert seeded.get("/api/customers/c1").get_json()["customer"]["name"] == "Ravi"


def test_bad_namespace_header(client):
    assert client.get("/api/customers", headers={"X-User-Id": "../etc"}).status_code == 400


def test_reports(seeded):
    seeded.post("/api/invoices", json=_credit_invoice())
    daybook = seeded.get("/api/reports/daybook?date=2026-10-18").get_json()
    assert daybook["credit_sales"] == "2360"
    assert seeded.get("/api/reports/daybook?date=nope").status_code == 400

    receivables = seeded.get("/api/reports/receivables").get_json()
    assert receivables["total_receivable"] == "2360"


def test_export_import(seeded):
    seeded.post("/api/invoices", json=_credit_invoice())
    backup = seeded.get("/api/data/export").get_json()

    response = seeded.post("/api/data/import", json=backup, headers=USER)
    assert response.status_code == 200
    body = response.get_json()
    assert body["imported"]["invoices"] == 1
    assert body["balance_discrepancies"] == []
    assert seeded.get("/api/customers/c1", headers=USER).get_json()["customer"]["balance"] == "2360"

    assert seeded.post("/api/data/import", json=[1, 2]).status_code == 400


def test_ledger_fix_route(seeded, db_session):
    from billbook.services.document_store import SqlDocumentStore

    seeded.post("/api/invoices", json=_credit_invoice())
    store = SqlDocumentStore()
    doc = store.get("customers", "c1")
    doc["balance"] = "1"
    store.set("customers", "c1", doc)

    assert seeded.get("/api/reports/ledger-check").get_json()["consistent"] is False
    assert seeded.post("/api/reports/ledger-check/fix").get_json()["fixed"] == 1
    assert seeded.get("/api/customers/c1").get_json()["customer"]["balance"] == "2360"


def test_cli_ledger_verify_and_seed(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0
    assert "Seeded 5 records" in result.output

    result = runner.invoke(args=["system", "seed"])
    assert "SKIP" in result.output

    result = runner.invoke(args=["ledger", "verify"])
    assert result.exit_code == 0
    assert "consistent" in result.output


def test_cli_export_import(app, db_session, tmp_path):
    runner = app.test_cli_runner()
    runner.invoke(args=["system", "seed"])

    out = tmp_path / "backup.json"
    result = runner.invoke(args=["data", "export", "--out", str(out)])
    assert result.exit_code == 0
    assert len(json.loads(out.read_text())["products"]) == 4

    result = runner.invoke(args=["data", "import", "--namespace", "u9", "--file", str(out), "--yes"])
    assert result.exit_code == 0
    assert "products: 4" in result.output
