from decimal import Decimal

import pytest

from billbook.entities import Invoice, InvoiceItem, STATUS_PENDING
from billbook.services import customers_service, invoice_service, products_service, settings_service
from billbook.services.customers_service import CustomerNotFoundError
from billbook.services.products_service import ProductNotFoundError
from billbook.validation import ConflictError, ValidationError


def test_create_product_coerces_and_defaults(repo):
    product = products_service.create_product(repo, {"name": "Stapler", "price": "Rs. 1,250.50", "stock": 5})

    assert product.price == Decimal("1250.50")
    assert product.stock == Decimal("5")
    assert product.category == "General"
    assert repo.store.get("products", product.id)["price"] == "1250.50"


@pytest.mark.parametrize("payload", [
    {},
    {"name": "  "},
    {"name": "X", "price": "-1"},
    {"name": "X", "gst_rate": "101"},
    {"name": "X", "colour": "red"},
    {"name": "X", "price": True},
])
def test_create_product_rejects(repo, payload):
    with pytest.raises(ValidationError):
        products_service.create_product(repo, payload)


def test_create_product_conflict(repo):
    with pytest.raises(ConflictError):
        products_service.create_product(repo, {"id": "p1", "name": "Dup"})


def test_update_product_cannot_touch_stock(repo):
    with pytest.raises(ValidationError):
        products_service.update_product(repo, "p1", {"stock": 99})

    updated = products_service.update_product(repo, "p1", {"price": "550", "category": ""})
    assert updated.price == Decimal("550")
    assert updated.category == "General"
    assert updated.stock == Decimal("10")


def test_missing_product(repo):
    with pytest.raises(ProductNotFoundError):
        products_service.update_product(repo, "nope", {"name": "x"})
    with pytest.raises(ProductNotFoundError):
        products_service.delete_product(repo, "nope")


def test_list_products_filters(repo):
    assert [p.id for p in products_service.list_products(repo, category="Services")] == ["svc"]
    assert [p.id for p in products_service.list_products(repo, search="8544")] == ["p2"]
    assert [p.id for p in products_service.list_products(repo, search="widg")] == ["p1"]


def test_quick_create(repo):
    product = products_service.quick_create_product(repo, "Sticky Notes", "45")

    assert product.stock == Decimal("100")
    assert product.price == Decimal("45")
    with pytest.raises(ValidationError):
        products_service.quick_create_product(repo, " ")


def test_suggest_rate_prefers_last_sale(repo):
    assert products_service.suggest_rate(repo, "c1", "p1") == Decimal("500")

    invoice_service.create_invoice(repo, Invoice(
        id=None, customer_id="c1", status=STATUS_PENDING,
        items=[InvoiceItem(product_id="p1", description="Widget", quantity=Decimal("1"), rate=Decimal("470"))],
    ))
    assert products_service.last_sale_price(repo, "c1", "p1") == Decimal("470")
    assert products_service.suggest_rate(repo, "c1", "p1") == Decimal("470")
    # other customers still see the catalog price
    assert products_service.suggest_rate(repo, "c2", "p1") == Decimal("500")


def test_create_customer_starts_at_zero(repo):
    customer = customers_service.create_customer(repo, {"name": "Asha", "phone": "98100", "state": "Goa"})

    assert customer.balance == 0
    assert customer.email == ""
    assert repo.store.get("customers", customer.id)["state"] == "Goa"


@pytest.mark.parametrize("payload", [
    {"name": "Asha", "balance": "100"},
    {"name": "Asha", "notifications": []},
    {"phone": "1"},
])
def test_create_customer_rejects(repo, payload):
    with pytest.raises(ValidationError):
        customers_service.create_customer(repo, payload)


def test_update_customer(repo):
    updated = customers_service.update_customer(repo, "c1", {"email": "ravi@example.com", "state": "Punjab"})
    assert updated.email == "ravi@example.com"
    assert updated.state == "Punjab"

    with pytest.raises(ValidationError):
        customers_service.update_customer(repo, "c1", {"balance": "0"})
    with pytest.raises(ValidationError):
        customers_service.update_customer(repo, "c1", {"name": ""})
    with pytest.raises(CustomerNotFoundError):
        customers_service.update_customer(repo, "ghost", {"name": "x"})


def test_list_customers_search(repo):
    assert [c.id for c in customers_service.list_customers(repo, search="traders")] == ["c2"]


def test_send_reminder(repo):
    notification = customers_service.send_reminder(repo, "c2")

    assert notification.type == "REMINDER"
    assert repo.store.get("customers", "c2")["notifications"][0]["id"] == notification.id


def test_company_profile_update(repo):
    profile = settings_service.update_company_profile(repo, {"state": "Maharashtra", "gst_enabled": "false"})

    assert profile.state == "Maharashtra"
    assert profile.gst_enabled is False
    assert repo.store.get("company", "profile")["state"] == "Maharashtra"
    with pytest.raises(ValidationError):
        settings_service.update_company_profile(repo, {"name": ""})
