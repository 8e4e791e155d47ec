# Overview: Human-readable invoice numbers from an explicit per-year counter.

from __future__ import annotations

import logging

from ..time_utils import parse_iso_date, today_iso
from .repository import BillingRepository


logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV"


def next_invoice_number(
    repository: BillingRepository,
    *,
    invoice_date: str | None = None,
    prefix: str = INVOICE_PREFIX,
    pad: int = 4,
) -> str:
    """
    Allocate the next invoice number, e.g. "INV-2026-0007".

    The counter lives in the namespace's `sequences` collection, one
    document per year. Numbers are unique per namespace as long as every
    invoice is numbered here; caller-supplied numbers bypass the counter.
    """
    year = (parse_iso_date(invoice_date or today_iso())).year
    seq = repository.next_sequence(f"invoice-{year}")
    return f"{prefix}-{year}-{seq:0{pad}d}"


def is_duplicate_number(repository: BillingRepository, invoice_number: str, exclude_id: str | None = None) -> bool:
    for invoice in repository.invoices.values():
        if invoice.id != exclude_id and invoice.invoice_number == invoice_number:
            return True
    return False


def warn_on_duplicate_number(repository: BillingRepository, invoice_number: str, exclude_id: str | None = None) -> None:
    """Duplicate numbers are allowed but worth a log line."""
    if is_duplicate_number(repository, invoice_number, exclude_id=exclude_id):
        logger.warning(
            "Invoice number %s is already used in namespace %s",
            invoice_number, repository.namespace,
        )
