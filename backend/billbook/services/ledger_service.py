# Overview: Customer balance ledger; balance deltas for invoice and payment transitions.

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from ..entities import Customer, Invoice, Payment
from ..validation import ZERO

"""
Customer Ledger Invariants (authoritative)

- balance == sum(total of PENDING invoices) - sum(payment amounts), per customer.
- PAID (cash) invoices never touch the ledger.
- Update = reverse old effect, then apply new effect; the two are netted per
  customer before anything is written, so old == new customer is not double counted.
- Payments always reduce balance, whatever the invoice history.
- A customer that no longer exists is skipped; reconciliation never raises.
- These are the only writers of Customer.balance.
"""

logger = logging.getLogger(__name__)


def invoice_effect(invoice: Invoice) -> Decimal:
    """Amount an invoice contributes to its customer's balance."""
    return invoice.total if invoice.is_pending else ZERO


def deltas_for_create(invoice: Invoice) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    if invoice.is_pending:
        deltas[invoice.customer_id] += invoice.total
    return dict(deltas)


def deltas_for_update(old: Invoice, new: Invoice) -> dict[str, Decimal]:
    deltas: dict[str, Decimal] = defaultdict(lambda: ZERO)
    # Reverse first, then apply
    if old.is_pending:
        deltas[old.customer_id] -= old.total
    if new.is_pending:
        deltas[new.customer_id] += new.total
    return dict(deltas)


def deltas_for_delete(invoice: Invoice) -> dict[str, Decimal]:
    return {cid: -amount for cid, amount in deltas_for_create(invoice).items()}


def deltas_for_payment(payment: Payment) -> dict[str, Decimal]:
    return {payment.customer_id: -payment.amount}


def apply_balance_deltas(customers: dict[str, Customer], deltas: dict[str, Decimal]) -> list[str]:
    """
    Apply per-customer deltas in place.

    Returns ids of customers whose balance changed (the ones that must be
    written back). Unknown customer ids are skipped.
    """
    touched: list[str] = []
    for customer_id, delta in deltas.items():
        if not delta:
            continue
        customer = customers.get(customer_id)
        if customer is None:
            logger.warning(
                "Skipping balance adjustment of %s for missing customer %s",
                delta, customer_id,
            )
            continue
        customer.balance += delta
        touched.append(customer_id)
    return touched


def expected_balances(
    customer_ids: Iterable[str],
    invoices: Iterable[Invoice],
    payments: Iterable[Payment],
) -> dict[str, Decimal]:
    """Recompute every balance from scratch (the invariant's right-hand side)."""
    expected: dict[str, Decimal] = {cid: ZERO for cid in customer_ids}
    for invoice in invoices:
        if invoice.customer_id in expected:
            expected[invoice.customer_id] += invoice_effect(invoice)
    for payment in payments:
        if payment.customer_id in expected:
            expected[payment.customer_id] -= payment.amount
    return expected


@dataclass
class BalanceDiscrepancy:
    customer_id: str
    stored: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored - self.expected

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "stored": str(self.stored),
            "expected": str(self.expected),
            "difference": str(self.difference),
        }


def find_discrepancies(
    customers: dict[str, Customer],
    invoices: Iterable[Invoice],
    payments: Iterable[Payment],
) -> list[BalanceDiscrepancy]:
    expected = expected_balances(customers.keys(), invoices, payments)
    return [
        BalanceDiscrepancy(customer_id=cid, stored=customers[cid].balance, expected=amount)
        for cid, amount in expected.items()
        if customers[cid].balance != amount
    ]
