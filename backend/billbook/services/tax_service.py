# Overview: GST calculation for invoice lines, invoice totals and HSN summaries.

"""
Tax Calculator

Pure functions; no store access, no Flask context.

TAX TYPE:
- INTRA_STATE when supplier state == customer state (case-sensitive)
- INTER_STATE otherwise

SPLIT:
- INTRA_STATE: CGST = SGST = base * (rate / 2) / 100, IGST = 0
- INTER_STATE: IGST = base * rate / 100, CGST = SGST = 0

No rounding happens here. Amounts are Decimal end to end; display layers
round when they print.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from ..entities import Invoice, InvoiceItem, TAX_INTER_STATE, TAX_INTRA_STATE
from ..validation import ZERO


HSN_NONE = "N/A"

MISSING_STATE_LITERAL = "literal"
MISSING_STATE_INTER_STATE = "inter_state"
MISSING_STATE_REJECT = "reject"

MISSING_STATE_POLICIES = [
    MISSING_STATE_LITERAL,
    MISSING_STATE_INTER_STATE,
    MISSING_STATE_REJECT,
]

_HUNDRED = Decimal("100")
_TWO = Decimal("2")


class TaxError(Exception):
    """Raised when a tax type cannot be determined under the active policy."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class TaxSettings:
    """
    gst_enabled: business-wide switch; when off every line is untaxed
    missing_state_policy: how an absent supplier/customer state is treated
    """
    gst_enabled: bool = True
    missing_state_policy: str = MISSING_STATE_LITERAL


@dataclass
class InvoiceTotals:
    subtotal: Decimal = ZERO
    total_cgst: Decimal = ZERO
    total_sgst: Decimal = ZERO
    total_igst: Decimal = ZERO
    total: Decimal = ZERO
    gst_enabled: bool = False


@dataclass
class HsnSummaryRow:
    hsn: str
    quantity: Decimal = ZERO
    taxable_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO

    @property
    def total_tax(self) -> Decimal:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    def to_dict(self) -> dict:
        return {
            "hsn": self.hsn,
            "quantity": str(self.quantity),
            "taxable_amount": str(self.taxable_amount),
            "cgst_amount": str(self.cgst_amount),
            "sgst_amount": str(self.sgst_amount),
            "igst_amount": str(self.igst_amount),
            "total_tax": str(self.total_tax),
        }


def normalize_state(value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def determine_tax_type(
    supplier_state: str | None,
    customer_state: str | None,
    policy: str = MISSING_STATE_LITERAL,
) -> str:
    """
    Pick INTRA_STATE or INTER_STATE for an invoice.

    Missing-state policies:
    - literal: compare as-is; one side missing is unequal (INTER_STATE),
      both missing compare equal (INTRA_STATE)
    - inter_state: any missing state is INTER_STATE
    - reject: any missing state raises TaxError
    """
    if policy not in MISSING_STATE_POLICIES:
        raise TaxError(f"Unknown missing-state policy: {policy}")

    supplier = normalize_state(supplier_state)
    customer = normalize_state(customer_state)

    if supplier is None or customer is None:
        if policy == MISSING_STATE_REJECT:
            raise TaxError(
                "Supplier and customer state are required to determine tax type",
                details={"supplier_state": supplier, "customer_state": customer},
            )
        if policy == MISSING_STATE_INTER_STATE:
            return TAX_INTER_STATE

    return TAX_INTRA_STATE if supplier == customer else TAX_INTER_STATE


def calculate_item_tax(item: InvoiceItem, tax_type: str, gst_enabled: bool = True) -> InvoiceItem:
    """Return a copy of `item` with base, tax and total amounts filled in."""
    base = item.quantity * item.rate
    rate = item.gst_rate if item.gst_rate is not None else ZERO

    cgst = sgst = igst = ZERO
    if gst_enabled and rate:
        if tax_type == TAX_INTRA_STATE:
            cgst = base * (rate / _TWO) / _HUNDRED
            sgst = cgst
        else:
            igst = base * rate / _HUNDRED

    return replace(
        item,
        base_amount=base,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        total_amount=base + cgst + sgst + igst,
    )


def calculate_invoice_totals(items: list[InvoiceItem], gst_enabled: bool = True) -> InvoiceTotals:
    """Plain sums over already-priced items."""
    totals = InvoiceTotals()
    for item in items:
        totals.subtotal += item.base_amount
        totals.total_cgst += item.cgst_amount
        totals.total_sgst += item.sgst_amount
        totals.total_igst += item.igst_amount
        totals.total += item.total_amount

    totals.gst_enabled = bool(gst_enabled) and any(
        (item.gst_rate or ZERO) > 0 for item in items
    )
    return totals


def price_invoice(invoice: Invoice, supplier_state: str | None, settings: TaxSettings) -> Invoice:
    """
    Compute tax type, per-line amounts and invoice totals.

    Returns a new Invoice; the input is left untouched. The customer state
    used is the invoice's own snapshot (customer_state).
    """
    policy = settings.missing_state_policy
    # Untaxed invoices only label a tax type; a missing state cannot block them
    if not settings.gst_enabled and policy == MISSING_STATE_REJECT:
        policy = MISSING_STATE_LITERAL

    tax_type = determine_tax_type(supplier_state, invoice.customer_state, policy)
    items = [calculate_item_tax(i, tax_type, settings.gst_enabled) for i in invoice.items]
    totals = calculate_invoice_totals(items, settings.gst_enabled)

    return replace(
        invoice,
        items=items,
        tax_type=tax_type,
        subtotal=totals.subtotal,
        total_cgst=totals.total_cgst,
        total_sgst=totals.total_sgst,
        total_igst=totals.total_igst,
        total=totals.total,
        gst_enabled=totals.gst_enabled,
    )


def hsn_summary(items: list[InvoiceItem]) -> list[HsnSummaryRow]:
    """
    Group priced items by HSN code for the tax summary table.

    Items without a code pool into "N/A". Rows come back in first-seen
    order. Reporting only; invoice totals never read from this.
    """
    rows: dict[str, HsnSummaryRow] = {}
    for item in items:
        key = item.hsn or HSN_NONE
        row = rows.get(key)
        if row is None:
            row = HsnSummaryRow(hsn=key)
            rows[key] = row
        row.quantity += item.quantity
        row.taxable_amount += item.base_amount
        row.cgst_amount += item.cgst_amount
        row.sgst_amount += item.sgst_amount
        row.igst_amount += item.igst_amount
    return list(rows.values())
