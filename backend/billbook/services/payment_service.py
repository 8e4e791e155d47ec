# Overview: Service-layer operations for customer payments; append-only receipts.

"""
Payment Recording Service

WHY: Customers settle credit invoices with cash, UPI, bank transfers or
cheques. A payment is recorded against the customer, not against an
invoice, and always reduces the customer's balance.

DESIGN PRINCIPLES:
- Append-only: payments are never edited, voided or deleted
- Unconditional: balance -= amount, whatever the invoice history
- Overpayment is allowed and drives the balance negative (customer credit)
"""

from __future__ import annotations

import logging

from ..entities import PAYMENT_MODES, Payment
from ..time_utils import today_iso
from ..validation import ValidationError, coerce_date
from . import ledger_service
from .repository import BillingRepository, new_id


logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised for payment operation errors."""
    pass


def record_payment(repository: BillingRepository, payment: Payment) -> Payment:
    """
    Record a payment received from a customer.

    Raises:
        PaymentError: customer missing, amount not positive, or mode invalid
    """
    if payment.mode not in PAYMENT_MODES:
        raise PaymentError(f"Invalid payment mode: {payment.mode}. Must be one of {PAYMENT_MODES}")

    if payment.amount <= 0:
        raise PaymentError("Payment amount must be positive")

    customer = repository.get_customer(payment.customer_id)
    if customer is None:
        raise PaymentError(f"Customer {payment.customer_id} not found")

    if payment.id and payment.id in repository.payments:
        raise PaymentError(f"Payment {payment.id} already recorded")

    try:
        payment.date = coerce_date(payment.date) or today_iso()
    except ValidationError as exc:
        raise PaymentError(str(exc))
    payment.id = payment.id or new_id()

    touched = ledger_service.apply_balance_deltas(
        repository.customers, ledger_service.deltas_for_payment(payment)
    )
    for customer_id in touched:
        repository.write_customer(repository.customers[customer_id])
    repository.write_payment(payment)

    repository.add_notification(
        payment.customer_id,
        type="PAYMENT",
        title="Payment Received",
        message=f"Payment of Rs. {payment.amount:.2f} received via {payment.mode}.",
        date=payment.date,
    )
    logger.info(
        "Recorded payment %s of %s from customer %s; balance now %s",
        payment.id, payment.amount, payment.customer_id, customer.balance,
    )
    return payment
