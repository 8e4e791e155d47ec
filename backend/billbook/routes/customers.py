# Overview: Flask API routes for customers and their ledgers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import customers_service, products_service, reporting_service
from ..services.customers_service import CustomerNotFoundError
from ..services.document_store import PersistenceError
from ..services.products_service import ProductNotFoundError
from ..services.reporting_service import ReportError
from ..validation import ValidationError, ConflictError
from ..decorators import with_repository


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@with_repository
def list_customers_route():
    customers = customers_service.list_customers(g.repository, search=request.args.get("q"))
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)}), 200


@customers_bp.get("/<customer_id>")
@with_repository
def get_customer_route(customer_id: str):
    customer = g.repository.get_customer(customer_id)
    if not customer:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.post("")
@with_repository
def create_customer_route():
    try:
        customer = customers_service.create_customer(g.repository, request.get_json(silent=True))
        return jsonify({"customer": customer.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except PersistenceError:
        current_app.logger.exception("Document store failure while creating customer")
        return jsonify({"error": "Storage unavailable"}), 503


@customers_bp.put("/<customer_id>")
@with_repository
def update_customer_route(customer_id: str):
    try:
        customer = customers_service.update_customer(g.repository, customer_id, request.get_json(silent=True))
        return jsonify({"customer": customer.to_dict()}), 200
    except CustomerNotFoundError:
        return jsonify({"error": "Customer not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure while updating customer")
        return jsonify({"error": "Storage unavailable"}), 503


@customers_bp.post("/<customer_id>/reminders")
@with_repository
def send_reminder_route(customer_id: str):
    try:
        notification = customers_service.send_reminder(g.repository, customer_id)
        return jsonify({"notification": notification.to_dict()}), 201
    except CustomerNotFoundError:
        return jsonify({"error": "Customer not found"}), 404
    except PersistenceError:
        current_app.logger.exception("Document store failure while logging reminder")
        return jsonify({"error": "Storage unavailable"}), 503


@customers_bp.get("/<customer_id>/statement")
@with_repository
def statement_route(customer_id: str):
    """
    Statement of account.

    Query params: start_date, end_date (ISO dates, both optional, inclusive)
    """
    try:
        statement = reporting_service.customer_statement(
            g.repository,
            customer_id,
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
        )
        return jsonify(statement), 200
    except CustomerNotFoundError:
        return jsonify({"error": "Customer not found"}), 404
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@customers_bp.get("/<customer_id>/rates/<product_id>")
@with_repository
def suggested_rate_route(customer_id: str, product_id: str):
    """Rate to prefill: last price sold to this customer, else catalog price."""
    if not g.repository.get_customer(customer_id):
        return jsonify({"error": "Customer not found"}), 404
    try:
        last = products_service.last_sale_price(g.repository, customer_id, product_id)
        rate = products_service.suggest_rate(g.repository, customer_id, product_id)
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({
        "customer_id": customer_id,
        "product_id": product_id,
        "rate": str(rate),
        "source": "last_sale" if last is not None else "catalog",
    }), 200
