"""Record models for CRM objects."""

from crm_records.models.record import (
    ENTITY_TYPES,
    Account,
    Case,
    Contact,
    CrmRecord,
    Lead,
    Opportunity,
    model_for,
)

__all__ = [
    "ENTITY_TYPES",
    "Account",
    "Case",
    "Contact",
    "CrmRecord",
    "Lead",
    "Opportunity",
    "model_for",
]
