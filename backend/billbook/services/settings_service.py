# Overview: Company profile and engine policy flags.

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from ..entities import CompanyProfile
from ..validation import PayloadPolicy, ValidationError, validate_payload
from .repository import BillingRepository
from .tax_service import MISSING_STATE_LITERAL, MISSING_STATE_POLICIES, TaxSettings


COMPANY_POLICY = PayloadPolicy(
    field_kinds={
        "name": "text",
        "address": "text",
        "phone": "text",
        "email": "text",
        "state": "text",
        "gstin": "text",
        "gst_enabled": "bool",
        "show_hsn_summary": "bool",
    },
)


@dataclass(frozen=True)
class BillingPolicy:
    """
    Named policy choices for cases the business rules leave open.

    gst_enabled: deployment-wide GST switch (ANDed with the company profile)
    missing_state_policy: literal | inter_state | reject
    allow_negative_stock: permit oversell
    allow_negative_quantity: permit negative/zero quantities and rates on lines
    default_due_days: due date offset when an invoice carries none
    """
    gst_enabled: bool = True
    missing_state_policy: str = MISSING_STATE_LITERAL
    allow_negative_stock: bool = True
    allow_negative_quantity: bool = True
    default_due_days: int = 30

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "BillingPolicy":
        policy = cls(
            gst_enabled=bool(config.get("GST_ENABLED", True)),
            missing_state_policy=config.get("MISSING_STATE_POLICY", MISSING_STATE_LITERAL),
            allow_negative_stock=bool(config.get("ALLOW_NEGATIVE_STOCK", True)),
            allow_negative_quantity=bool(config.get("ALLOW_NEGATIVE_QUANTITY", True)),
            default_due_days=int(config.get("DEFAULT_DUE_DAYS", 30)),
        )
        if policy.missing_state_policy not in MISSING_STATE_POLICIES:
            raise ValueError(f"MISSING_STATE_POLICY must be one of {MISSING_STATE_POLICIES}")
        return policy


def tax_settings(repository: BillingRepository, policy: BillingPolicy) -> TaxSettings:
    return TaxSettings(
        gst_enabled=policy.gst_enabled and repository.company.gst_enabled,
        missing_state_policy=policy.missing_state_policy,
    )


def get_company_profile(repository: BillingRepository) -> CompanyProfile:
    return repository.company


def update_company_profile(repository: BillingRepository, payload: dict) -> CompanyProfile:
    patch = validate_payload(payload=payload, policy=COMPANY_POLICY, partial=True)
    if "name" in patch and not patch["name"]:
        raise ValidationError("name cannot be blank")

    text_fields = {"address", "phone", "email"}
    for k in text_fields & patch.keys():
        patch[k] = patch[k] or ""

    profile = replace(repository.company, **patch)
    repository.write_company(profile)
    return profile
