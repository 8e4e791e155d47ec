"""
Billing entities held in the document store.

Every entity is one JSON document keyed by id. Money and quantities are
Decimal in memory and strings on disk, so a round trip through the store
never loses precision.

INVARIANT: Customer.balance is only ever written by the ledger reconciler
(invoice lifecycle + payment recording). API patches never carry it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from .validation import ZERO, coerce_decimal, coerce_optional_decimal, coerce_text


SERVICES_CATEGORY = "Services"
DEFAULT_CATEGORY = "General"

STATUS_PAID = "PAID"
STATUS_PENDING = "PENDING"
# Declared for display compatibility; never computed by the lifecycle
STATUS_OVERDUE = "OVERDUE"
INVOICE_STATUSES = [STATUS_PAID, STATUS_PENDING, STATUS_OVERDUE]

TAX_INTRA_STATE = "INTRA_STATE"
TAX_INTER_STATE = "INTER_STATE"

PAYMENT_MODES = ["CASH", "UPI", "BANK_TRANSFER", "CHEQUE"]

NOTIFICATION_TYPES = ["INVOICE", "PAYMENT", "REMINDER", "SYSTEM"]


def dec_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass
class Product:
    id: str
    name: str
    price: Decimal = ZERO
    stock: Decimal = ZERO
    category: str = DEFAULT_CATEGORY
    hsn: str | None = None
    gst_rate: Decimal | None = None

    @property
    def tracks_stock(self) -> bool:
        return self.category != SERVICES_CATEGORY

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": dec_str(self.price),
            "stock": dec_str(self.stock),
            "category": self.category,
            "hsn": self.hsn,
            "gst_rate": dec_str(self.gst_rate),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            price=coerce_decimal(data.get("price"), field="price"),
            stock=coerce_decimal(data.get("stock"), field="stock"),
            category=data.get("category") or DEFAULT_CATEGORY,
            hsn=coerce_text(data.get("hsn")),
            gst_rate=coerce_optional_decimal(data.get("gst_rate"), field="gst_rate"),
        )


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    date: str
    read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "date": self.date,
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        return cls(
            id=str(data["id"]),
            type=data.get("type") or "SYSTEM",
            title=data.get("title") or "",
            message=data.get("message") or "",
            date=data.get("date") or "",
            read=bool(data.get("read", False)),
        )


@dataclass
class Customer:
    id: str
    name: str
    company: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    state: str | None = None
    gstin: str | None = None
    balance: Decimal = ZERO
    notifications: list[Notification] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.company or self.name

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "state": self.state,
            "gstin": self.gstin,
            "balance": dec_str(self.balance),
            "notifications": [n.to_dict() for n in self.notifications],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Customer":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            company=data.get("company") or "",
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            address=data.get("address") or "",
            state=coerce_text(data.get("state")),
            gstin=coerce_text(data.get("gstin")),
            balance=coerce_decimal(data.get("balance"), field="balance"),
            notifications=[Notification.from_dict(n) for n in data.get("notifications") or []],
        )


@dataclass
class InvoiceItem:
    """One invoice line. The amount fields are derived by the tax calculator."""
    product_id: str | None
    description: str
    quantity: Decimal
    rate: Decimal
    hsn: str | None = None
    gst_rate: Decimal | None = None
    base_amount: Decimal = ZERO
    cgst_amount: Decimal = ZERO
    sgst_amount: Decimal = ZERO
    igst_amount: Decimal = ZERO
    total_amount: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "description": self.description,
            "quantity": dec_str(self.quantity),
            "rate": dec_str(self.rate),
            "hsn": self.hsn,
            "gst_rate": dec_str(self.gst_rate),
            "base_amount": dec_str(self.base_amount),
            "cgst_amount": dec_str(self.cgst_amount),
            "sgst_amount": dec_str(self.sgst_amount),
            "igst_amount": dec_str(self.igst_amount),
            "total_amount": dec_str(self.total_amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvoiceItem":
        return cls(
            product_id=coerce_text(data.get("product_id")),
            description=data.get("description") or "",
            quantity=coerce_decimal(data.get("quantity"), field="quantity"),
            rate=coerce_decimal(data.get("rate"), field="rate"),
            hsn=coerce_text(data.get("hsn")),
            gst_rate=coerce_optional_decimal(data.get("gst_rate"), field="gst_rate"),
            base_amount=coerce_decimal(data.get("base_amount"), field="base_amount"),
            cgst_amount=coerce_decimal(data.get("cgst_amount"), field="cgst_amount"),
            sgst_amount=coerce_decimal(data.get("sgst_amount"), field="sgst_amount"),
            igst_amount=coerce_decimal(data.get("igst_amount"), field="igst_amount"),
            total_amount=coerce_decimal(data.get("total_amount"), field="total_amount"),
        )


@dataclass
class Invoice:
    """
    Tax invoice document.

    The customer/supplier fields are a snapshot taken at save time; later
    edits to the customer record do not rewrite old invoices.
    """
    id: str | None
    customer_id: str
    items: list[InvoiceItem]
    status: str
    invoice_number: str | None = None
    date: str | None = None
    due_date: str | None = None
    customer_name: str = ""
    customer_address: str = ""
    customer_state: str | None = None
    customer_gstin: str | None = None
    supplier_gstin: str | None = None
    tax_type: str | None = None
    subtotal: Decimal = ZERO
    total_cgst: Decimal = ZERO
    total_sgst: Decimal = ZERO
    total_igst: Decimal = ZERO
    gst_enabled: bool = False
    total: Decimal = ZERO
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_address": self.customer_address,
            "customer_state": self.customer_state,
            "customer_gstin": self.customer_gstin,
            "supplier_gstin": self.supplier_gstin,
            "tax_type": self.tax_type,
            "date": self.date,
            "due_date": self.due_date,
            "items": [item.to_dict() for item in self.items],
            "subtotal": dec_str(self.subtotal),
            "total_cgst": dec_str(self.total_cgst),
            "total_sgst": dec_str(self.total_sgst),
            "total_igst": dec_str(self.total_igst),
            "gst_enabled": self.gst_enabled,
            "total": dec_str(self.total),
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Invoice":
        return cls(
            id=coerce_text(data.get("id")),
            invoice_number=coerce_text(data.get("invoice_number")),
            customer_id=str(data.get("customer_id") or ""),
            customer_name=data.get("customer_name") or "",
            customer_address=data.get("customer_address") or "",
            customer_state=coerce_text(data.get("customer_state")),
            customer_gstin=coerce_text(data.get("customer_gstin")),
            supplier_gstin=coerce_text(data.get("supplier_gstin")),
            tax_type=data.get("tax_type"),
            date=data.get("date"),
            due_date=data.get("due_date"),
            items=[InvoiceItem.from_dict(i) for i in data.get("items") or []],
            subtotal=coerce_decimal(data.get("subtotal"), field="subtotal"),
            total_cgst=coerce_decimal(data.get("total_cgst"), field="total_cgst"),
            total_sgst=coerce_decimal(data.get("total_sgst"), field="total_sgst"),
            total_igst=coerce_decimal(data.get("total_igst"), field="total_igst"),
            gst_enabled=bool(data.get("gst_enabled", False)),
            total=coerce_decimal(data.get("total"), field="total"),
            status=data.get("status") or STATUS_PENDING,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class Payment:
    id: str | None
    customer_id: str
    amount: Decimal
    mode: str
    date: str | None = None
    reference: str | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "date": self.date,
            "amount": dec_str(self.amount),
            "mode": self.mode,
            "reference": self.reference,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Payment":
        return cls(
            id=coerce_text(data.get("id")),
            customer_id=str(data.get("customer_id") or ""),
            date=data.get("date"),
            amount=coerce_decimal(data.get("amount"), field="amount"),
            mode=data.get("mode") or "CASH",
            reference=coerce_text(data.get("reference")),
            note=coerce_text(data.get("note")),
        )


@dataclass
class CompanyProfile:
    name: str = "ABC Trading Company"
    address: str = "123, Market Road, Delhi - 110001"
    phone: str = "9876543210"
    email: str = "info@abctrading.com"
    state: str | None = "Delhi"
    gstin: str | None = None
    gst_enabled: bool = True
    show_hsn_summary: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "state": self.state,
            "gstin": self.gstin,
            "gst_enabled": self.gst_enabled,
            "show_hsn_summary": self.show_hsn_summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompanyProfile":
        defaults = cls()
        return cls(
            name=data.get("name") or defaults.name,
            address=data.get("address") or "",
            phone=data.get("phone") or "",
            email=data.get("email") or "",
            state=coerce_text(data.get("state")),
            # older profiles stored the GSTIN under "gst"
            gstin=coerce_text(data.get("gstin") or data.get("gst")),
            gst_enabled=bool(data.get("gst_enabled", True)),
            show_hsn_summary=bool(data.get("show_hsn_summary", False)),
        )
