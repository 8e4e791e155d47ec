# Overview: Read-only reports over one namespace: daybook, statements, receivables, HSN.

"""
Reporting Service

Nothing here writes. Every report is derived from the repository cache.

DAYBOOK (per date):
- total_sales     all invoices dated that day
- cash_sales      PAID invoices
- credit_sales    PENDING invoices
- total_received  payments that day + cash sales
- entries         invoices (SALE) and payments (RECEIPT)

STATEMENT (per customer, date range, ascending):
- PENDING invoices are debits, payments are credits
- PAID invoices appear with equal debit and credit (settled at the counter)
- running_balance starts from the balance carried in before the range
"""

from __future__ import annotations

from decimal import Decimal

from ..entities import STATUS_PAID, STATUS_PENDING
from ..validation import ZERO, ValidationError, coerce_date
from .customers_service import get_customer
from .repository import BillingRepository
from .tax_service import hsn_summary


class ReportError(Exception):
    """Raised for report parameter errors."""
    pass


def _money(value: Decimal) -> str:
    return str(value)


def daybook(repository: BillingRepository, day: str) -> dict:
    try:
        day = coerce_date(day, field="date")
    except ValidationError as exc:
        raise ReportError(str(exc))
    if day is None:
        raise ReportError("date required")

    invoices = [i for i in repository.invoices.values() if i.date == day]
    payments = [p for p in repository.payments.values() if p.date == day]

    total_sales = sum((i.total for i in invoices), ZERO)
    cash_sales = sum((i.total for i in invoices if i.status == STATUS_PAID), ZERO)
    credit_sales = sum((i.total for i in invoices if i.status == STATUS_PENDING), ZERO)
    received = sum((p.amount for p in payments), ZERO)

    entries = [
        {
            "id": i.id,
            "type": "SALE",
            "party": i.customer_name,
            "amount": _money(i.total),
            "mode": "CASH" if i.status == STATUS_PAID else "CREDIT",
            "reference": i.invoice_number,
        }
        for i in invoices
    ]
    for p in payments:
        customer = repository.get_customer(p.customer_id)
        entries.append({
            "id": p.id,
            "type": "RECEIPT",
            "party": customer.display_name if customer else "Customer Payment",
            "amount": _money(p.amount),
            "mode": p.mode,
            "reference": p.reference or "N/A",
        })

    return {
        "date": day,
        "total_sales": _money(total_sales),
        "cash_sales": _money(cash_sales),
        "credit_sales": _money(credit_sales),
        "total_received": _money(received + cash_sales),
        "total_transactions": len(invoices) + len(payments),
        "entries": entries,
    }


def customer_statement(
    repository: BillingRepository,
    customer_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
) -> dict:
    customer = get_customer(repository, customer_id)
    try:
        start = coerce_date(start_date, field="start_date")
        end = coerce_date(end_date, field="end_date")
    except ValidationError as exc:
        raise ReportError(str(exc))
    if start and end and start > end:
        raise ReportError("start_date must be on or before end_date")

    rows = []
    for invoice in repository.invoices.values():
        if invoice.customer_id != customer.id:
            continue
        settled = invoice.status == STATUS_PAID
        rows.append({
            "date": invoice.date or "",
            "type": "INVOICE",
            "reference": invoice.invoice_number,
            "mode": "CASH" if settled else "CREDIT",
            "debit": invoice.total,
            "credit": invoice.total if settled else ZERO,
        })
    for payment in repository.payments.values():
        if payment.customer_id != customer.id:
            continue
        rows.append({
            "date": payment.date or "",
            "type": "PAYMENT",
            "reference": payment.reference or "N/A",
            "mode": payment.mode,
            "debit": ZERO,
            "credit": payment.amount,
        })

    # Stable sort: same-day rows keep creation order
    rows.sort(key=lambda r: r["date"])

    opening = ZERO
    lines = []
    for row in rows:
        if start and row["date"] < start:
            opening += row["debit"] - row["credit"]
            continue
        if end and row["date"] > end:
            continue
        lines.append(row)

    running = opening
    total_debit = total_credit = ZERO
    for row in lines:
        running += row["debit"] - row["credit"]
        total_debit += row["debit"]
        total_credit += row["credit"]
        row["running_balance"] = running

    return {
        "customer_id": customer.id,
        "customer_name": customer.display_name,
        "start_date": start,
        "end_date": end,
        "opening_balance": _money(opening),
        "lines": [
            {**row, "debit": _money(row["debit"]), "credit": _money(row["credit"]),
             "running_balance": _money(row["running_balance"])}
            for row in lines
        ],
        "total_debit": _money(total_debit),
        "total_credit": _money(total_credit),
        "closing_balance": _money(running),
        "current_balance": _money(customer.balance),
    }


def receivables_summary(repository: BillingRepository) -> dict:
    customers = repository.list_customers()
    due = [c for c in customers if c.balance > 0]
    advance = [c for c in customers if c.balance < 0]
    return {
        "total_receivable": _money(sum((c.balance for c in due), ZERO)),
        "total_advance": _money(-sum((c.balance for c in advance), ZERO)),
        "customers_due": len(due),
        "customers": [
            {"id": c.id, "name": c.display_name, "balance": _money(c.balance)}
            for c in sorted(due, key=lambda c: c.balance, reverse=True)
        ],
    }


def invoice_hsn_summary(repository: BillingRepository, invoice_id: str) -> list[dict]:
    invoice = repository.get_invoice(invoice_id)
    if invoice is None:
        raise LookupError(f"Invoice {invoice_id} not found")
    return [row.to_dict() for row in hsn_summary(invoice.items)]
