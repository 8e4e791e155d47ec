# backend/billbook/services/products_service.py
"""
Products Service

Catalog CRUD for one namespace.
- stock is set once, at creation (opening stock)
- afterwards stock moves only through the invoice lifecycle
- deleting a product leaves old invoices alone; their lines become ad hoc
"""
from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ..entities import DEFAULT_CATEGORY, Product
from ..validation import (
    ConflictError,
    PayloadPolicy,
    ValidationError,
    coerce_text,
    enforce_rules_product,
    validate_payload,
)
from .repository import BillingRepository, new_id


# Stock given to products created inline while writing an invoice
QUICK_CREATE_STOCK = Decimal("100")

PRODUCT_CREATE_POLICY = PayloadPolicy(
    field_kinds={
        "id": "text",
        "name": "text",
        "price": "decimal",
        "stock": "decimal",
        "category": "text",
        "hsn": "text",
        "gst_rate": "optional_decimal",
    },
    required_on_create=frozenset({"name"}),
)

PRODUCT_MUTABLE_FIELDS = {"name", "price", "category", "hsn", "gst_rate"}

PRODUCT_UPDATE_POLICY = PayloadPolicy(
    field_kinds={k: v for k, v in PRODUCT_CREATE_POLICY.field_kinds.items() if k in PRODUCT_MUTABLE_FIELDS},
)


class ProductNotFoundError(LookupError):
    """Raised when a product id does not exist in the namespace."""


def list_products(
    repository: BillingRepository,
    category: str | None = None,
    search: str | None = None,
) -> list[Product]:
    products = repository.list_products()
    if category:
        products = [p for p in products if p.category == category]
    if search:
        needle = search.strip().lower()
        products = [
            p for p in products
            if needle in p.name.lower() or (p.hsn and needle in p.hsn.lower())
        ]
    return products


def get_product(repository: BillingRepository, product_id: str) -> Product:
    product = repository.get_product(product_id)
    if product is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return product


def create_product(repository: BillingRepository, payload: dict) -> Product:
    patch = validate_payload(payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    product_id = patch.pop("id", None) or new_id()
    if product_id in repository.products:
        raise ConflictError(f"Product {product_id} already exists")

    patch["category"] = patch.get("category") or DEFAULT_CATEGORY
    product = Product(id=product_id, **patch)
    repository.write_product(product)
    return product


def update_product(repository: BillingRepository, product_id: str, payload: dict) -> Product:
    if isinstance(payload, dict) and "stock" in payload:
        raise ValidationError("stock changes only through invoices")

    product = get_product(repository, product_id)
    patch = validate_payload(payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)
    if "category" in patch:
        patch["category"] = patch["category"] or DEFAULT_CATEGORY

    updated = replace(product, **patch)
    repository.write_product(updated)
    return updated


def delete_product(repository: BillingRepository, product_id: str) -> Product:
    product = get_product(repository, product_id)
    repository.remove_product(product_id)
    return product


def quick_create_product(repository: BillingRepository, name: str, price=None) -> Product:
    """Inline creation from the invoice form: opening stock 100, category General."""
    if coerce_text(name) is None:
        raise ValidationError("name cannot be blank")
    return create_product(repository, {
        "name": name,
        "price": price,
        "stock": QUICK_CREATE_STOCK,
        "category": DEFAULT_CATEGORY,
    })


def last_sale_price(repository: BillingRepository, customer_id: str, product_id: str) -> Decimal | None:
    """Rate on the most recent invoice for this customer that sold this product."""
    for invoice in repository.list_invoices(customer_id=customer_id):
        for item in invoice.items:
            if item.product_id == product_id:
                return item.rate
    return None


def suggest_rate(repository: BillingRepository, customer_id: str | None, product_id: str) -> Decimal:
    """Last price sold to this customer, else the catalog price."""
    product = get_product(repository, product_id)
    if customer_id:
        last = last_sale_price(repository, customer_id, product_id)
        if last is not None:
            return last
    return product.price
