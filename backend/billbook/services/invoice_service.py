"""
Invoice Lifecycle Controller

State machine per invoice:

    nonexistent --create--> PENDING | PAID --update--> PENDING | PAID --delete--> nonexistent

Every transition runs the stock reconciler and the customer ledger, then
persists. All deltas are computed and applied in memory before the first
store write; the writes themselves are not transactional, so a store
failure part-way leaves earlier documents written (PersistenceError is
raised to the caller, nothing is retried).

Status is an explicit input. Mapping a UI payment mode (CASH / CREDIT) to
PAID / PENDING is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..entities import Customer, Invoice, STATUS_PAID, STATUS_PENDING
from ..time_utils import add_days_iso, to_utc_z, today_iso, utcnow
from ..validation import ValidationError, enforce_gst_rate
from . import inventory_service, ledger_service
from .document_service import next_invoice_number, warn_on_duplicate_number
from .repository import BillingRepository, new_id
from .settings_service import BillingPolicy, tax_settings
from .tax_service import price_invoice


logger = logging.getLogger(__name__)

# OVERDUE is never accepted as input; nothing in the lifecycle computes it
WRITABLE_STATUSES = [STATUS_PAID, STATUS_PENDING]


class InvoiceError(Exception):
    """Raised for invoice operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvoiceNotFoundError(InvoiceError):
    """Raised when the referenced invoice does not exist."""


def _validate(repository: BillingRepository, invoice: Invoice, policy: BillingPolicy) -> Customer:
    customer = repository.get_customer(invoice.customer_id)
    if customer is None:
        raise InvoiceError("Customer not found", details={"customer_id": invoice.customer_id})

    if not invoice.items:
        raise InvoiceError("Invoice must have at least one item")

    if invoice.status not in WRITABLE_STATUSES:
        raise InvoiceError(
            f"Invalid status: {invoice.status}. Must be one of {WRITABLE_STATUSES}"
        )

    for index, item in enumerate(invoice.items):
        try:
            enforce_gst_rate(item.gst_rate, field=f"items[{index}].gst_rate")
        except ValidationError as exc:
            raise InvoiceError(str(exc), details={"line": index})
        if not policy.allow_negative_quantity and (item.quantity <= 0 or item.rate < 0):
            raise InvoiceError(
                "Item quantity must be positive and rate non-negative",
                details={"line": index, "quantity": str(item.quantity), "rate": str(item.rate)},
            )

    return customer


def _snapshot(
    repository: BillingRepository,
    invoice: Invoice,
    customer: Customer,
    policy: BillingPolicy,
) -> Invoice:
    invoice_date = invoice.date or today_iso()
    return replace(
        invoice,
        date=invoice_date,
        due_date=invoice.due_date or add_days_iso(invoice_date, policy.default_due_days),
        customer_name=customer.display_name,
        customer_address=customer.address,
        customer_state=customer.state,
        customer_gstin=customer.gstin,
        supplier_gstin=repository.company.gstin,
    )


def prepare_invoice(
    repository: BillingRepository,
    invoice: Invoice,
    policy: BillingPolicy | None = None,
) -> Invoice:
    """
    Validate, snapshot the customer/supplier fields and compute tax.

    Pure with respect to the repository: nothing is written.
    """
    policy = policy or BillingPolicy()
    customer = _validate(repository, invoice, policy)
    snap = _snapshot(repository, invoice, customer, policy)
    return price_invoice(snap, repository.company.state, tax_settings(repository, policy))


def preview_invoice(
    repository: BillingRepository,
    invoice: Invoice,
    policy: BillingPolicy | None = None,
) -> Invoice:
    """Priced invoice as it would be saved, without side effects."""
    return prepare_invoice(repository, invoice, policy)


def _persist(
    repository: BillingRepository,
    product_ids: list[str],
    customer_ids: list[str],
) -> None:
    for product_id in product_ids:
        repository.write_product(repository.products[product_id])
    for customer_id in customer_ids:
        repository.write_customer(repository.customers[customer_id])


def create_invoice(
    repository: BillingRepository,
    invoice: Invoice,
    policy: BillingPolicy | None = None,
) -> Invoice:
    """
    Create an invoice: consume stock, debit the customer if PENDING, persist,
    then notify the customer.
    """
    policy = policy or BillingPolicy()
    prepared = prepare_invoice(repository, invoice, policy)

    if prepared.id and prepared.id in repository.invoices:
        raise InvoiceError("Invoice already exists", details={"invoice_id": prepared.id})

    stock_deltas = inventory_service.deltas_for_create(prepared)
    if not policy.allow_negative_stock:
        inventory_service.check_available(repository.products, stock_deltas)

    now = to_utc_z(utcnow())
    prepared.id = prepared.id or new_id()
    prepared.created_at = now
    prepared.updated_at = now

    touched_products = inventory_service.apply_stock_deltas(repository.products, stock_deltas)
    touched_customers = ledger_service.apply_balance_deltas(
        repository.customers, ledger_service.deltas_for_create(prepared)
    )

    if prepared.invoice_number:
        warn_on_duplicate_number(repository, prepared.invoice_number)
    else:
        prepared.invoice_number = next_invoice_number(repository, invoice_date=prepared.date)

    _persist(repository, touched_products, touched_customers)
    repository.write_invoice(prepared)

    repository.add_notification(
        prepared.customer_id,
        type="INVOICE",
        title="New Invoice Generated",
        message=f"Invoice #{prepared.invoice_number} for Rs. {prepared.total:.2f} has been created.",
    )
    logger.info(
        "Created invoice %s (%s) for customer %s: total=%s status=%s",
        prepared.invoice_number, prepared.id, prepared.customer_id, prepared.total, prepared.status,
    )
    return prepared


def update_invoice(
    repository: BillingRepository,
    invoice: Invoice,
    old: Invoice | None = None,
    policy: BillingPolicy | None = None,
) -> Invoice:
    """
    Replace an invoice with a new version.

    Stock: restore old lines, consume new lines. Ledger: reverse the old
    effect, then apply the new one (customer may change). id, number and
    created_at are carried over from the old version.
    """
    policy = policy or BillingPolicy()
    old = old or repository.get_invoice(invoice.id)
    if old is None:
        raise InvoiceNotFoundError("Invoice not found", details={"invoice_id": invoice.id})

    prepared = prepare_invoice(repository, invoice, policy)
    prepared.id = old.id
    prepared.invoice_number = old.invoice_number
    prepared.created_at = old.created_at
    prepared.updated_at = to_utc_z(utcnow())

    stock_deltas = inventory_service.deltas_for_update(old, prepared)
    if not policy.allow_negative_stock:
        inventory_service.check_available(repository.products, stock_deltas)

    touched_products = inventory_service.apply_stock_deltas(repository.products, stock_deltas)
    touched_customers = ledger_service.apply_balance_deltas(
        repository.customers, ledger_service.deltas_for_update(old, prepared)
    )

    _persist(repository, touched_products, touched_customers)
    repository.write_invoice(prepared)

    if old.total != prepared.total:
        repository.add_notification(
            prepared.customer_id,
            type="INVOICE",
            title="Invoice Updated",
            message=f"Invoice #{prepared.invoice_number} has been updated to Rs. {prepared.total:.2f}.",
        )
    logger.info(
        "Updated invoice %s (%s): total %s -> %s, status %s -> %s",
        prepared.invoice_number, prepared.id, old.total, prepared.total, old.status, prepared.status,
    )
    return prepared


def delete_invoice(repository: BillingRepository, invoice_id: str) -> Invoice:
    """Delete an invoice, restoring its stock and reversing its ledger effect."""
    invoice = repository.get_invoice(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError("Invoice not found", details={"invoice_id": invoice_id})

    touched_products = inventory_service.apply_stock_deltas(
        repository.products, inventory_service.deltas_for_delete(invoice)
    )
    touched_customers = ledger_service.apply_balance_deltas(
        repository.customers, ledger_service.deltas_for_delete(invoice)
    )

    _persist(repository, touched_products, touched_customers)
    repository.remove_invoice(invoice.id)

    logger.info("Deleted invoice %s (%s)", invoice.invoice_number, invoice.id)
    return invoice
