"""
Customers Service

Customer master data for one namespace. Balance is owned by the ledger:
new customers start at 0 and no patch can write it.
"""
from __future__ import annotations

from dataclasses import replace

from ..entities import Customer, Notification
from ..validation import ConflictError, PayloadPolicy, ValidationError, validate_payload
from .repository import BillingRepository, new_id


CUSTOMER_FIELDS = {
    "name": "text",
    "company": "text",
    "email": "text",
    "phone": "text",
    "address": "text",
    "state": "text",
    "gstin": "text",
}

CUSTOMER_CREATE_POLICY = PayloadPolicy(
    field_kinds={"id": "text", **CUSTOMER_FIELDS},
    required_on_create=frozenset({"name"}),
)

CUSTOMER_UPDATE_POLICY = PayloadPolicy(field_kinds=CUSTOMER_FIELDS)

# Plain contact fields are stored as "" rather than null
_BLANKABLE = {"company", "email", "phone", "address"}


class CustomerNotFoundError(LookupError):
    """Raised when a customer id does not exist in the namespace."""


def _reject_ledger_fields(payload) -> None:
    if isinstance(payload, dict):
        for field in ("balance", "notifications"):
            if field in payload:
                raise ValidationError(f"{field} cannot be set directly")


def _clean(patch: dict) -> dict:
    for k in _BLANKABLE & patch.keys():
        patch[k] = patch[k] or ""
    return patch


def list_customers(repository: BillingRepository, search: str | None = None) -> list[Customer]:
    customers = repository.list_customers()
    if search:
        needle = search.strip().lower()
        customers = [
            c for c in customers
            if needle in c.name.lower() or needle in c.company.lower() or needle in c.phone
        ]
    return customers


def get_customer(repository: BillingRepository, customer_id: str) -> Customer:
    customer = repository.get_customer(customer_id)
    if customer is None:
        raise CustomerNotFoundError(f"Customer {customer_id} not found")
    return customer


def create_customer(repository: BillingRepository, payload: dict) -> Customer:
    _reject_ledger_fields(payload)
    patch = _clean(validate_payload(payload=payload, policy=CUSTOMER_CREATE_POLICY, partial=False))

    customer_id = patch.pop("id", None) or new_id()
    if customer_id in repository.customers:
        raise ConflictError(f"Customer {customer_id} already exists")

    customer = Customer(id=customer_id, **patch)
    repository.write_customer(customer)
    return customer


def update_customer(repository: BillingRepository, customer_id: str, payload: dict) -> Customer:
    _reject_ledger_fields(payload)
    customer = get_customer(repository, customer_id)
    patch = _clean(validate_payload(payload=payload, policy=CUSTOMER_UPDATE_POLICY, partial=True))
    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")

    updated = replace(customer, **patch)
    repository.write_customer(updated)
    return updated


def send_reminder(repository: BillingRepository, customer_id: str) -> Notification:
    """Log a payment reminder on the customer (delivery is up to the caller)."""
    customer = get_customer(repository, customer_id)
    return repository.add_notification(
        customer.id,
        type="REMINDER",
        title="Payment Reminder Sent",
        message=f"A payment reminder was sent to {customer.email or customer.phone or customer.display_name}.",
    )
