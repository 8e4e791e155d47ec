# Overview: Product stock reconciliation against invoice item quantities.

"""
Stock Reconciler

Mirrors the customer ledger, keyed on quantity instead of total:

- create: consume every line (stock -= quantity)
- update: restore the old lines, consume the new lines, netted per product
- delete: restore every line

Lines with no product, or whose product has since been deleted, have no
stock effect. Products in the "Services" category are never stock tracked.
Stock may go negative unless the negative-stock policy is switched off.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal

from ..entities import Invoice, Product
from ..validation import ZERO


logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Raised when a stock movement is refused by policy."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _accumulate(deltas: dict[str, Decimal], invoice: Invoice, sign: int) -> None:
    for item in invoice.items:
        if not item.product_id:
            continue
        deltas[item.product_id] += item.quantity * sign


def deltas_for_create(invoice: Invoice) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    _accumulate(deltas, invoice, -1)
    return dict(deltas)


def deltas_for_update(old: Invoice, new: Invoice) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    _accumulate(deltas, old, +1)
    _accumulate(deltas, new, -1)
    return dict(deltas)


def deltas_for_delete(invoice: Invoice) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    _accumulate(deltas, invoice, +1)
    return dict(deltas)


def effective_deltas(products: dict[str, Product], deltas: dict[str, Decimal]) -> dict[str, Decimal]:
    """Drop ad hoc/unknown products, Services products and zero nets."""
    result: dict[str, Decimal] = {}
    for product_id, delta in deltas.items():
        product = products.get(product_id)
        if product is None:
            logger.debug("No stock effect for unknown product %s", product_id)
            continue
        if not product.tracks_stock or not delta:
            continue
        result[product_id] = delta
    return result


def check_available(products: dict[str, Product], deltas: dict[str, Decimal]) -> None:
    """Refuse a movement that would leave any product below zero."""
    insufficient = []
    for product_id, delta in effective_deltas(products, deltas).items():
        product = products[product_id]
        if delta < 0 and product.stock + delta < 0:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": str(-delta),
                "on_hand": str(product.stock),
            })

    if insufficient:
        raise InventoryError(
            "Insufficient stock",
            details={"items": insufficient},
        )


def apply_stock_deltas(products: dict[str, Product], deltas: dict[str, Decimal]) -> list[str]:
    """
    Apply per-product net deltas in place.

    Returns ids of products whose stock changed.
    """
    touched: list[str] = []
    for product_id, delta in effective_deltas(products, deltas).items():
        products[product_id].stock += delta
        touched.append(product_id)
    return touched
