# Overview: Flask API routes for customer payments; parses input and returns JSON responses.

# backend/billbook/routes/payments.py
"""
Payment API Routes

WHY: Record money received against a customer's running balance.

DESIGN:
- Payments belong to a customer, not to an invoice
- Modes: CASH, UPI, BANK_TRANSFER, CHEQUE
- Append-only: there is no void or delete endpoint
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..entities import Payment
from ..services import payment_service
from ..services.document_store import PersistenceError
from ..services.payment_service import PaymentError
from ..validation import ValidationError, coerce_decimal, coerce_text
from ..decorators import with_repository


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
@with_repository
def list_payments_route():
    customer_id = request.args.get("customer_id")
    payments = g.repository.list_payments(customer_id=customer_id)
    return jsonify({
        "items": [p.to_dict() for p in payments],
        "count": len(payments),
    }), 200


@payments_bp.post("")
@with_repository
def record_payment_route():
    """
    Record a payment from a customer.

    Request body:
    {
        "customer_id": "c1",
        "amount": "1000",
        "mode": "UPI",
        "date": "2026-10-18",          (optional, default today)
        "reference": "UPI-REF-123",    (optional, cheque no. / UPI ref)
        "note": "Part payment"         (optional)
    }

    Returns:
        201: Payment recorded, with the customer's new balance
        400: Invalid input
        503: Document store unavailable
    """
    try:
        data = request.get_json(silent=True) or {}

        customer_id = coerce_text(data.get("customer_id"))
        mode = coerce_text(data.get("mode"))
        if not all([customer_id, mode, data.get("amount") not in (None, "")]):
            return jsonify({"error": "customer_id, amount, and mode required"}), 400

        payment = payment_service.record_payment(g.repository, Payment(
            id=None,
            customer_id=customer_id,
            amount=coerce_decimal(data.get("amount"), field="amount"),
            mode=mode.upper(),
            date=data.get("date"),
            reference=coerce_text(data.get("reference")),
            note=coerce_text(data.get("note")),
        ))

        return jsonify({
            "payment": payment.to_dict(),
            "customer_balance": str(g.repository.customers[payment.customer_id].balance),
        }), 201

    except (PaymentError, ValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure while recording payment")
        return jsonify({"error": "Storage unavailable"}), 503
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500
