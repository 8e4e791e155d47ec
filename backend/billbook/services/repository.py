# Overview: Namespace-scoped billing repository; write-through cache over a DocumentStore.

"""
Billing Repository

One repository instance owns one user namespace. `load()` pulls every
collection from the store into memory; after that the in-memory maps are
authoritative and every mutation is written through, one whole document
at a time.

LIFECYCLE:
- repo = BillingRepository(store, namespace)
- repo.load()                 wholesale sync on session start
- ... lifecycle operations mutate the cache then call write_* ...
- repo.reconcile()            recompute balances and report drift

NAMESPACES:
- guest book: bare collection names ("invoices")
- user "u1":  "users/u1/invoices"
"""

from __future__ import annotations

import logging
import uuid

from ..entities import (
    CompanyProfile,
    Customer,
    Invoice,
    Notification,
    NOTIFICATION_TYPES,
    Payment,
    Product,
)
from ..time_utils import today_iso, to_utc_z, utcnow
from ..validation import ValidationError
from .document_store import DocumentStore
from .ledger_service import BalanceDiscrepancy, expected_balances, find_discrepancies


logger = logging.getLogger(__name__)

GUEST_NAMESPACE = "guest"

PRODUCTS = "products"
CUSTOMERS = "customers"
INVOICES = "invoices"
PAYMENTS = "payments"
COMPANY = "company"
SEQUENCES = "sequences"

COMPANY_DOC_ID = "profile"

DATA_COLLECTIONS = [PRODUCTS, CUSTOMERS, INVOICES, PAYMENTS]


def new_id() -> str:
    return str(uuid.uuid4())


class BillingRepository:
    def __init__(self, store: DocumentStore, namespace: str | None = None):
        self.store = store
        self.namespace = namespace or GUEST_NAMESPACE
        self.products: dict[str, Product] = {}
        self.customers: dict[str, Customer] = {}
        self.invoices: dict[str, Invoice] = {}
        self.payments: dict[str, Payment] = {}
        self.company = CompanyProfile()

    @property
    def is_guest(self) -> bool:
        return self.namespace == GUEST_NAMESPACE

    def collection_path(self, name: str) -> str:
        if self.is_guest:
            return name
        return f"users/{self.namespace}/{name}"

    # =========================================================================
    # LOAD / RECONCILE
    # =========================================================================

    def load(self) -> "BillingRepository":
        """Replace the cache with the store's current contents."""
        self.products = {
            p.id: p for p in (Product.from_dict(d) for d in self.store.get_all(self.collection_path(PRODUCTS)))
        }
        self.customers = {
            c.id: c for c in (Customer.from_dict(d) for d in self.store.get_all(self.collection_path(CUSTOMERS)))
        }
        self.invoices = {
            i.id: i for i in (Invoice.from_dict(d) for d in self.store.get_all(self.collection_path(INVOICES)))
        }
        self.payments = {
            p.id: p for p in (Payment.from_dict(d) for d in self.store.get_all(self.collection_path(PAYMENTS)))
        }
        company_doc = self.store.get(self.collection_path(COMPANY), COMPANY_DOC_ID)
        self.company = CompanyProfile.from_dict(company_doc) if company_doc else CompanyProfile()
        return self

    def discrepancies(self) -> list[BalanceDiscrepancy]:
        return find_discrepancies(self.customers, self.invoices.values(), self.payments.values())

    def reconcile(self, fix: bool = False) -> list[BalanceDiscrepancy]:
        """
        Check every stored balance against PENDING invoices minus payments.

        With fix=True, drifted balances are rewritten to the expected value.
        Returns the discrepancies found (before any fix).
        """
        found = self.discrepancies()
        for d in found:
            logger.warning(
                "Balance drift for customer %s in %s: stored=%s expected=%s",
                d.customer_id, self.namespace, d.stored, d.expected,
            )
        if fix and found:
            expected = expected_balances(self.customers.keys(), self.invoices.values(), self.payments.values())
            for d in found:
                customer = self.customers[d.customer_id]
                customer.balance = expected[d.customer_id]
                self.write_customer(customer)
        return found

    # =========================================================================
    # READS
    # =========================================================================

    def get_product(self, product_id: str | None) -> Product | None:
        return self.products.get(product_id) if product_id else None

    def get_customer(self, customer_id: str | None) -> Customer | None:
        return self.customers.get(customer_id) if customer_id else None

    def get_invoice(self, invoice_id: str | None) -> Invoice | None:
        return self.invoices.get(invoice_id) if invoice_id else None

    def list_products(self) -> list[Product]:
        return list(self.products.values())

    def list_customers(self) -> list[Customer]:
        return list(self.customers.values())

    def list_invoices(self, customer_id: str | None = None) -> list[Invoice]:
        """Newest first."""
        invoices = list(reversed(list(self.invoices.values())))
        if customer_id is not None:
            invoices = [i for i in invoices if i.customer_id == customer_id]
        return invoices

    def list_payments(self, customer_id: str | None = None) -> list[Payment]:
        """Newest first."""
        payments = list(reversed(list(self.payments.values())))
        if customer_id is not None:
            payments = [p for p in payments if p.customer_id == customer_id]
        return payments

    # =========================================================================
    # WRITE-THROUGH
    # =========================================================================

    def write_product(self, product: Product) -> None:
        self.products[product.id] = product
        self.store.set(self.collection_path(PRODUCTS), product.id, product.to_dict())

    def remove_product(self, product_id: str) -> None:
        self.products.pop(product_id, None)
        self.store.delete(self.collection_path(PRODUCTS), product_id)

    def write_customer(self, customer: Customer) -> None:
        self.customers[customer.id] = customer
        self.store.set(self.collection_path(CUSTOMERS), customer.id, customer.to_dict())

    def write_invoice(self, invoice: Invoice) -> None:
        self.invoices[invoice.id] = invoice
        self.store.set(self.collection_path(INVOICES), invoice.id, invoice.to_dict())

    def remove_invoice(self, invoice_id: str) -> None:
        self.invoices.pop(invoice_id, None)
        self.store.delete(self.collection_path(INVOICES), invoice_id)

    def write_payment(self, payment: Payment) -> None:
        self.payments[payment.id] = payment
        self.store.set(self.collection_path(PAYMENTS), payment.id, payment.to_dict())

    def write_company(self, profile: CompanyProfile) -> None:
        self.company = profile
        self.store.set(self.collection_path(COMPANY), COMPANY_DOC_ID, profile.to_dict())

    def add_notification(
        self,
        customer_id: str,
        *,
        type: str,
        title: str,
        message: str,
        date: str | None = None,
    ) -> Notification | None:
        """Prepend a notification to the customer's log. Missing customer is a no-op."""
        customer = self.customers.get(customer_id)
        if customer is None:
            return None
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Invalid notification type: {type}")

        notification = Notification(
            id=new_id(),
            type=type,
            title=title,
            message=message,
            date=date or today_iso(),
        )
        customer.notifications.insert(0, notification)
        self.write_customer(customer)
        return notification

    def next_sequence(self, name: str) -> int:
        """Allocate the next number from a named counter document (starts at 1)."""
        path = self.collection_path(SEQUENCES)
        doc = self.store.get(path, name) or {"next_number": 1}
        current = int(doc.get("next_number", 1))
        self.store.set(path, name, {"next_number": current + 1})
        return current

    # =========================================================================
    # BACKUP / RESTORE
    # =========================================================================

    def export_data(self) -> dict:
        return {
            PRODUCTS: [p.to_dict() for p in self.products.values()],
            CUSTOMERS: [c.to_dict() for c in self.customers.values()],
            INVOICES: [i.to_dict() for i in self.invoices.values()],
            PAYMENTS: [p.to_dict() for p in self.payments.values()],
            COMPANY: self.company.to_dict(),
            "timestamp": to_utc_z(utcnow()),
        }

    def import_data(self, data: dict) -> dict:
        """
        Replace whole collections from an export_data() payload.

        Collections absent from the payload are left alone. Every record is
        parsed before the first write, so a malformed backup changes nothing.
        """
        if not isinstance(data, dict):
            raise ValidationError("Backup payload must be an object")

        parsers = {
            PRODUCTS: Product.from_dict,
            CUSTOMERS: Customer.from_dict,
            INVOICES: Invoice.from_dict,
            PAYMENTS: Payment.from_dict,
        }
        parsed: dict[str, list] = {}
        for name, parse in parsers.items():
            if name not in data:
                continue
            rows = data[name]
            if not isinstance(rows, list):
                raise ValidationError(f"{name} must be a list")
            try:
                parsed[name] = [parse(row) for row in rows]
            except (KeyError, TypeError, AttributeError) as exc:
                raise ValidationError(f"Malformed {name} record: {exc}")
            if any(not getattr(e, "id", None) for e in parsed[name]):
                raise ValidationError(f"Every {name} record needs an id")

        company = None
        if COMPANY in data:
            if not isinstance(data[COMPANY], dict):
                raise ValidationError("company must be an object")
            company = CompanyProfile.from_dict(data[COMPANY])

        counts: dict[str, int] = {}
        for name, entities in parsed.items():
            path = self.collection_path(name)
            for doc in self.store.get_all(path):
                self.store.delete(path, str(doc["id"]))
            for entity in entities:
                self.store.set(path, entity.id, entity.to_dict())
            counts[name] = len(entities)

        if company is not None:
            self.write_company(company)

        self.load()
        return counts
