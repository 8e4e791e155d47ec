# Overview: Flask API routes for invoice lifecycle; parses input and returns JSON responses.

# backend/billbook/routes/invoices.py
"""Invoice API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..entities import Invoice, InvoiceItem, STATUS_PAID, STATUS_PENDING
from ..services import invoice_service, products_service
from ..services.document_store import PersistenceError
from ..services.inventory_service import InventoryError
from ..services.invoice_service import InvoiceError, InvoiceNotFoundError
from ..services.reporting_service import invoice_hsn_summary
from ..services.tax_service import TaxError
from ..validation import (
    ZERO,
    ValidationError,
    coerce_date,
    coerce_decimal,
    coerce_optional_decimal,
    coerce_text,
)
from ..decorators import with_repository


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

# UI payment mode -> invoice status
PAYMENT_MODE_STATUS = {
    "CASH": STATUS_PAID,
    "CREDIT": STATUS_PENDING,
}


def status_for_payment_mode(mode: str) -> str:
    status = PAYMENT_MODE_STATUS.get(str(mode).strip().upper())
    if status is None:
        raise ValidationError(f"payment_mode must be one of {sorted(PAYMENT_MODE_STATUS)}")
    return status


def _item_from_payload(raw, index: int, customer_id: str) -> InvoiceItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")

    product_id = coerce_text(raw.get("product_id"))
    product = g.repository.get_product(product_id)

    description = coerce_text(raw.get("description"))
    rate = coerce_optional_decimal(raw.get("rate"), field=f"items[{index}].rate")
    hsn = coerce_text(raw.get("hsn"))
    gst_rate = coerce_optional_decimal(raw.get("gst_rate"), field=f"items[{index}].gst_rate")

    # Catalog defaults fill whatever the form left out
    if product is not None:
        description = description or product.name
        if rate is None:
            rate = products_service.suggest_rate(g.repository, customer_id, product.id)
        hsn = hsn or product.hsn
        if gst_rate is None:
            gst_rate = product.gst_rate

    return InvoiceItem(
        product_id=product_id,
        description=description or "",
        quantity=coerce_decimal(raw.get("quantity"), field=f"items[{index}].quantity"),
        rate=rate if rate is not None else ZERO,
        hsn=hsn,
        gst_rate=gst_rate,
    )


def invoice_from_payload(data: dict, old: Invoice | None = None) -> Invoice:
    """
    Build an Invoice from request JSON.

    On update (`old` given) status, date and due_date the payload leaves
    out are carried over from the stored version.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    customer_id = coerce_text(data.get("customer_id"))
    if not customer_id:
        raise ValidationError("customer_id required")

    items = data.get("items")
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    if data.get("status") is not None:
        status = str(data["status"]).strip().upper()
    elif data.get("payment_mode"):
        status = status_for_payment_mode(data["payment_mode"])
    elif old is not None:
        status = old.status
    else:
        status = STATUS_PENDING

    invoice_date = coerce_date(data.get("date"), field="date")
    due_date = coerce_date(data.get("due_date"), field="due_date")
    if old is not None:
        if invoice_date is None:
            invoice_date = old.date
        # A moved date gets a fresh default due date
        if due_date is None and invoice_date == old.date:
            due_date = old.due_date

    return Invoice(
        id=old.id if old is not None else coerce_text(data.get("id")),
        invoice_number=coerce_text(data.get("invoice_number")),
        customer_id=customer_id,
        items=[_item_from_payload(raw, i, customer_id) for i, raw in enumerate(items)],
        status=status,
        date=invoice_date,
        due_date=due_date,
    )


def _error_response(e: Exception):
    if isinstance(e, InvoiceNotFoundError):
        return jsonify({"error": str(e), "details": e.details}), 404
    if isinstance(e, (InvoiceError, InventoryError, TaxError)):
        return jsonify({"error": str(e), "details": e.details}), 400
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, PersistenceError):
        current_app.logger.error("Document store failure: %s %s", e, e.details)
        return jsonify({"error": "Storage unavailable"}), 503
    raise e


_HANDLED = (InvoiceError, InventoryError, TaxError, ValidationError, PersistenceError)


@invoices_bp.get("")
@with_repository
def list_invoices_route():
    customer_id = request.args.get("customer_id")
    status = request.args.get("status")

    invoices = g.repository.list_invoices(customer_id=customer_id)
    if status:
        invoices = [i for i in invoices if i.status == status.upper()]

    return jsonify({
        "items": [i.to_dict() for i in invoices],
        "count": len(invoices),
    }), 200


@invoices_bp.get("/<invoice_id>")
@with_repository
def get_invoice_route(invoice_id: str):
    invoice = g.repository.get_invoice(invoice_id)
    if not invoice:
        return jsonify({"error": "Invoice not found"}), 404

    body = {"invoice": invoice.to_dict()}
    if g.repository.company.show_hsn_summary:
        body["hsn_summary"] = invoice_hsn_summary(g.repository, invoice.id)
    return jsonify(body), 200


@invoices_bp.get("/<invoice_id>/hsn-summary")
@with_repository
def hsn_summary_route(invoice_id: str):
    try:
        rows = invoice_hsn_summary(g.repository, invoice_id)
    except LookupError:
        return jsonify({"error": "Invoice not found"}), 404
    return jsonify({"invoice_id": invoice_id, "rows": rows}), 200


@invoices_bp.post("/preview")
@with_repository
def preview_invoice_route():
    """
    Price an invoice without saving it.

    Request body: same as POST /api/invoices
    """
    try:
        invoice = invoice_from_payload(request.get_json(silent=True))
        priced = invoice_service.preview_invoice(g.repository, invoice, g.billing_policy)
        return jsonify({"invoice": priced.to_dict()}), 200

    except _HANDLED as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to preview invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
@with_repository
def create_invoice_route():
    """
    Create an invoice.

    Request body:
    {
        "customer_id": "c1",
        "payment_mode": "CREDIT",       (CASH -> PAID, CREDIT -> PENDING)
        "status": "PENDING",            (optional, overrides payment_mode)
        "date": "2026-10-18",           (optional, default today)
        "due_date": "2026-11-17",       (optional, default date + 30 days)
        "invoice_number": "INV-...",    (optional, default next in sequence)
        "items": [
            {"product_id": "p1", "quantity": 2, "rate": 500, "gst_rate": 18, "hsn": "8471"},
            {"description": "Installation", "quantity": 1, "rate": 250}
        ]
    }

    Returns:
        201: Invoice created (priced, numbered)
        400: Invalid input (missing customer, no items, bad numbers)
        503: Document store unavailable
    """
    try:
        invoice = invoice_from_payload(request.get_json(silent=True))
        created = invoice_service.create_invoice(g.repository, invoice, g.billing_policy)
        return jsonify({
            "invoice": created.to_dict(),
            "customer_balance": str(g.repository.customers[created.customer_id].balance),
        }), 201

    except _HANDLED as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<invoice_id>")
@with_repository
def update_invoice_route(invoice_id: str):
    """Replace an invoice; stock and balances are re-reconciled."""
    try:
        old = g.repository.get_invoice(invoice_id)
        if old is None:
            return jsonify({"error": "Invoice not found"}), 404

        invoice = invoice_from_payload(request.get_json(silent=True), old=old)
        updated = invoice_service.update_invoice(g.repository, invoice, old=old, policy=g.billing_policy)
        return jsonify({"invoice": updated.to_dict()}), 200

    except _HANDLED as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<invoice_id>")
@with_repository
def delete_invoice_route(invoice_id: str):
    """Delete an invoice; stock is restored and the ledger reversed."""
    try:
        deleted = invoice_service.delete_invoice(g.repository, invoice_id)
        return jsonify({"deleted": deleted.id}), 200

    except _HANDLED as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500
