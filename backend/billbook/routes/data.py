# Overview: Flask API routes for backup export and restore of one namespace.

from flask import Blueprint, request, jsonify, g, current_app

from ..services.document_store import PersistenceError
from ..validation import ValidationError
from ..decorators import with_repository


data_bp = Blueprint("data", __name__, url_prefix="/api/data")


@data_bp.get("/export")
@with_repository
def export_route():
    return jsonify(g.repository.export_data()), 200


@data_bp.post("/import")
@with_repository
def import_route():
    """
    Restore collections from an export payload.

    Collections present in the payload replace the stored ones wholesale;
    absent collections are untouched. Balances are not recomputed, run the
    ledger check afterwards.
    """
    try:
        counts = g.repository.import_data(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure during import")
        return jsonify({"error": "Storage unavailable"}), 503

    found = g.repository.discrepancies()
    return jsonify({
        "imported": counts,
        "balance_discrepancies": [d.to_dict() for d in found],
    }), 200
