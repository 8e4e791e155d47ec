from __future__ import annotations

from ..extensions import db


class Document(db.Model):
    """
    One JSON document in a named collection.

    WHY: The billing data is document-shaped (an invoice carries its items
    and customer snapshot). Each entity is read and written as a whole
    object; there are no cross-document joins or transactions.

    Collections are namespaced by path: the guest book uses bare names
    ("invoices"), a signed-in user "u1" uses "users/u1/invoices".
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
        db.Index("ix_documents_collection", "collection"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(255), nullable=False)
    doc_id = db.Column(db.String(128), nullable=False)
    body = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
