# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import products_service
from ..services.document_store import PersistenceError
from ..services.products_service import ProductNotFoundError
from ..validation import ValidationError, ConflictError
from ..decorators import with_repository


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@with_repository
def list_products_route():
    products = products_service.list_products(
        g.repository,
        category=request.args.get("category"),
        search=request.args.get("q"),
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.get("/<product_id>")
@with_repository
def get_product_route(product_id: str):
    product = g.repository.get_product(product_id)
    if not product:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("")
@with_repository
def create_product_route():
    try:
        product = products_service.create_product(g.repository, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except PersistenceError:
        current_app.logger.exception("Document store failure while creating product")
        return jsonify({"error": "Storage unavailable"}), 503


@products_bp.post("/quick")
@with_repository
def quick_create_product_route():
    """Inline product creation from the invoice form (name + price only)."""
    data = request.get_json(silent=True) or {}
    try:
        product = products_service.quick_create_product(g.repository, data.get("name"), data.get("price"))
        return jsonify({"product": product.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure while creating product")
        return jsonify({"error": "Storage unavailable"}), 503


@products_bp.put("/<product_id>")
@with_repository
def update_product_route(product_id: str):
    try:
        product = products_service.update_product(g.repository, product_id, request.get_json(silent=True))
        return jsonify({"product": product.to_dict()}), 200
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure while updating product")
        return jsonify({"error": "Storage unavailable"}), 503


@products_bp.delete("/<product_id>")
@with_repository
def delete_product_route(product_id: str):
    try:
        product = products_service.delete_product(g.repository, product_id)
        return jsonify({"deleted": product.id}), 200
    except ProductNotFoundError:
        return jsonify({"error": "Product not found"}), 404
    except PersistenceError:
        current_app.logger.exception("Document store failure while deleting product")
        return jsonify({"error": "Storage unavailable"}), 503
