# Overview: Flask API routes for read-only reports and ledger verification.

# backend/billbook/routes/reports.py
"""
Reporting API Routes

- GET  /api/reports/daybook?date=YYYY-MM-DD
- GET  /api/reports/receivables
- GET  /api/reports/ledger-check          (balance drift, read-only)
- POST /api/reports/ledger-check/fix      (rewrite drifted balances)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import reporting_service
from ..services.document_store import PersistenceError
from ..services.reporting_service import ReportError
from ..time_utils import today_iso
from ..decorators import with_repository


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/daybook")
@with_repository
def daybook_route():
    try:
        report = reporting_service.daybook(g.repository, request.args.get("date") or today_iso())
        return jsonify(report), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400


@reports_bp.get("/receivables")
@with_repository
def receivables_route():
    return jsonify(reporting_service.receivables_summary(g.repository)), 200


@reports_bp.get("/ledger-check")
@with_repository
def ledger_check_route():
    found = g.repository.reconcile(fix=False)
    return jsonify({
        "consistent": not found,
        "discrepancies": [d.to_dict() for d in found],
    }), 200


@reports_bp.post("/ledger-check/fix")
@with_repository
def ledger_fix_route():
    try:
        found = g.repository.reconcile(fix=True)
    except PersistenceError:
        current_app.logger.exception("Document store failure while fixing balances")
        return jsonify({"error": "Storage unavailable"}), 503
    return jsonify({
        "fixed": len(found),
        "discrepancies": [d.to_dict() for d in found],
    }), 200
