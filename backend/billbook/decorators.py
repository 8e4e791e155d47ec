# Overview: Request decorators for API routes; namespace and repository context.

import re
from functools import wraps
from flask import current_app, request, jsonify, g

from .services.document_store import PersistenceError, SqlDocumentStore
from .services.repository import BillingRepository
from .services.settings_service import BillingPolicy


NAMESPACE_HEADER = "X-User-Id"

_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.@-]{1,64}$")


def _resolve_namespace() -> str | None:
    raw = request.headers.get(NAMESPACE_HEADER)
    if raw is None or not raw.strip():
        return current_app.config.get("GUEST_NAMESPACE", "guest")
    raw = raw.strip()
    if not _NAMESPACE_RE.match(raw):
        return None
    return raw


def with_repository(f):
    """
    Load the caller's billing book and expose it on Flask g.

    Sets:
    - g.namespace: user scope from the X-User-Id header (guest when absent)
    - g.repository: BillingRepository loaded from the SQL document store
    - g.billing_policy: BillingPolicy built from app config

    Returns 400 for a malformed namespace, 503 when the store cannot be read.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        namespace = _resolve_namespace()
        if namespace is None:
            return jsonify({"error": f"Invalid {NAMESPACE_HEADER} header"}), 400

        try:
            repository = BillingRepository(SqlDocumentStore(), namespace=namespace).load()
        except PersistenceError:
            current_app.logger.exception("Failed to load billing data for %s", namespace)
            return jsonify({"error": "Storage unavailable"}), 503

        g.namespace = namespace
        g.repository = repository
        g.billing_policy = BillingPolicy.from_config(current_app.config)

        return f(*args, **kwargs)

    return decorated_function
