# Overview: Flask API routes for the company profile (seller details and GST switch).

from flask import Blueprint, request, jsonify, g, current_app

from ..services import settings_service
from ..services.document_store import PersistenceError
from ..validation import ValidationError
from ..decorators import with_repository


company_bp = Blueprint("company", __name__, url_prefix="/api/company")


@company_bp.get("")
@with_repository
def get_company_route():
    profile = settings_service.get_company_profile(g.repository)
    return jsonify({
        "company": profile.to_dict(),
        "gst_effective": settings_service.tax_settings(g.repository, g.billing_policy).gst_enabled,
    }), 200


@company_bp.put("")
@with_repository
def update_company_route():
    """
    Patch the company profile.

    The state field drives CGST/SGST vs IGST on every later invoice.
    Existing invoices are not repriced.
    """
    try:
        profile = settings_service.update_company_profile(g.repository, request.get_json(silent=True))
        return jsonify({"company": profile.to_dict()}), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PersistenceError:
        current_app.logger.exception("Document store failure while saving company profile")
        return jsonify({"error": "Storage unavailable"}), 503
