"""
Pytest fixtures for billbook backend tests.

Provides an in-memory SQLite app, a test client, and repositories backed by
either the memory store or the SQL store.
"""

from decimal import Decimal

import pytest

from billbook import create_app
from billbook.entities import CompanyProfile, Customer, Product
from billbook.extensions import db
from billbook.services.document_store import MemoryDocumentStore, SqlDocumentStore
from billbook.services.repository import BillingRepository
from billbook.services.settings_service import BillingPolicy


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def policy():
    return BillingPolicy()


def _seed(repo: BillingRepository) -> BillingRepository:
    repo.write_company(CompanyProfile(state="Delhi", gstin="07ABCDE1234F1Z5"))
    repo.write_product(Product(
        id="p1", name="Widget", price=Decimal("500"), stock=Decimal("10"),
        category="Hardware", hsn="8471", gst_rate=Decimal("18"),
    ))
    repo.write_product(Product(
        id="p2", name="Cable", price=Decimal("100"), stock=Decimal("50"),
        category="Hardware", hsn="8544", gst_rate=Decimal("12"),
    ))
    repo.write_product(Product(
        id="svc", name="Installation", price=Decimal("250"), stock=Decimal("0"),
        category="Services", hsn="9987", gst_rate=Decimal("18"),
    ))
    repo.write_customer(Customer(id="c1", name="Ravi", state="Delhi"))
    repo.write_customer(Customer(id="c2", name="Meera", company="Meera Traders", state="Karnataka"))
    return repo


@pytest.fixture(scope='function')
def store():
    return MemoryDocumentStore()


@pytest.fixture(scope='function')
def repo(store):
    """Guest-namespace repository over a memory store with a small catalog."""
    return _seed(BillingRepository(store))


@pytest.fixture(scope='function')
def sql_repo(db_session):
    """Same seed data, persisted through the SQL document store."""
    return _seed(BillingRepository(SqlDocumentStore(), namespace="guest"))


class FailingStore(MemoryDocumentStore):
    """Memory store whose writes start failing after `fail_after` successful sets."""

    def __init__(self, fail_after: int):
        super().__init__()
        self.fail_after = fail_after
        self.writes = 0

    def set(self, collection, doc_id, document):
        from billbook.services.document_store import PersistenceError
        if self.writes >= self.fail_after:
            raise PersistenceError("write failed", details={"collection": collection})
        self.writes += 1
        super().set(collection, doc_id, document)
