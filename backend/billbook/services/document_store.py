# Overview: Document store backends; whole-document get/set/delete keyed by collection and id.

"""
Document Store

Narrow persistence contract consumed by the billing repository:

    get(collection, id)            -> document | None
    get_all(collection)            -> list[document]
    set(collection, id, document)  -> None   (insert or replace, whole object)
    delete(collection, id)         -> None   (missing id is a no-op)

No transactions and no queries beyond "all documents in a collection".
Each write is atomic for the single document it touches.
"""

from __future__ import annotations

import copy

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Document


class PersistenceError(Exception):
    """Raised when the backing store cannot complete a read or write."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class DocumentStore:
    def get(self, collection: str, doc_id: str) -> dict | None:
        raise NotImplementedError

    def get_all(self, collection: str) -> list[dict]:
        raise NotImplementedError

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError


class MemoryDocumentStore(DocumentStore):
    """
    Process-local store.

    Used for the offline guest book and for unit tests. Documents are deep
    copied on the way in and out so callers can never alias stored state.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}

    def get(self, collection: str, doc_id: str) -> dict | None:
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def get_all(self, collection: str) -> list[dict]:
        return [copy.deepcopy(d) for d in self._collections.get(collection, {}).values()]

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str) -> None:
        self._collections.get(collection, {}).pop(doc_id, None)

    def collections(self) -> list[str]:
        return sorted(self._collections)


class SqlDocumentStore(DocumentStore):
    """
    SQLAlchemy-backed store: one row per document in the `documents` table.

    Every set/delete commits immediately. A failed statement is rolled back
    and surfaced as PersistenceError; there is no retry.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def _row(self, collection: str, doc_id: str) -> Document | None:
        return (
            self.session.query(Document)
            .filter_by(collection=collection, doc_id=doc_id)
            .first()
        )

    def get(self, collection: str, doc_id: str) -> dict | None:
        try:
            row = self._row(collection, doc_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Document store read failed",
                details={"collection": collection, "doc_id": doc_id},
            ) from exc
        return copy.deepcopy(row.body) if row else None

    def get_all(self, collection: str) -> list[dict]:
        try:
            rows = (
                self.session.query(Document)
                .filter_by(collection=collection)
                .order_by(Document.id.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Document store read failed",
                details={"collection": collection},
            ) from exc
        return [copy.deepcopy(r.body) for r in rows]

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        try:
            row = self._row(collection, doc_id)
            if row is None:
                row = Document(collection=collection, doc_id=doc_id, body=copy.deepcopy(document))
                self.session.add(row)
            else:
                # Replace the whole body so the JSON column is flagged dirty
                row.body = copy.deepcopy(document)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Document store write failed",
                details={"collection": collection, "doc_id": doc_id},
            ) from exc

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self.session.query(Document).filter_by(collection=collection, doc_id=doc_id).delete()
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceError(
                "Document store delete failed",
                details={"collection": collection, "doc_id": doc_id},
            ) from exc

    def collections(self) -> list[str]:
        rows = self.session.query(Document.collection).distinct().all()
        return sorted(r[0] for r in rows)
