"""Record models for the CRM object types handled by this package."""

from datetime import date
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


class CrmRecord(BaseModel):
    """
    Base for every CRM record.
    Field attributes are snake_case; the platform's field names are their aliases.
    `id` stays None until the store assigns one on create/upsert.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    entity_type: ClassVar[str] = ""
    key_attr: ClassVar[str] = "name"
    parent_attr: ClassVar[Optional[str]] = None

    id: Optional[str] = Field(default=None, alias="Id")

    @classmethod
    def alias_for(cls, attr: str) -> str:
        """Platform field name for a model attribute."""
        field = cls.model_fields[attr]
        return field.alias or attr

    @classmethod
    def key_field(cls) -> str:
        """Platform field holding the natural key."""
        return cls.alias_for(cls.key_attr)

    @classmethod
    def query_fields(cls) -> list[str]:
        """Platform fields to select when reading this type back from the store."""
        return [
            cls.alias_for(name)
            for name, field in cls.model_fields.items()
            if not field.exclude
        ]

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> "CrmRecord":
        """Build a record from a store payload (platform field names)."""
        return cls.model_validate({k: v for k, v in data.items() if k != "attributes"})

    @classmethod
    def stub(cls, label: str, parent_id: Optional[str] = None) -> "CrmRecord":
        """Minimal valid record keyed by `label`, optionally linked to a parent."""
        values: dict[str, Any] = {cls.key_attr: label}
        if parent_id is not None:
            if cls.parent_attr is None:
                raise ValueError(f"{cls.entity_type} records have no parent link")
            values[cls.parent_attr] = parent_id
        return cls(**values)

    def natural_key(self) -> Optional[str]:
        return getattr(self, self.key_attr)

    def to_fields(self) -> dict[str, Any]:
        """
        Field values to send to the store, under platform names and without Id.
        Only fields that were set are sent; a field explicitly set to None is sent as null,
        which clears it.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude={"id"})


class Account(CrmRecord):
    """Company record; natural key is Name."""

    entity_type: ClassVar[str] = "Account"
    parent_attr: ClassVar[Optional[str]] = "parent_id"

    name: Optional[str] = Field(default=None, alias="Name")
    description: Optional[str] = Field(default=None, alias="Description")
    industry: Optional[str] = Field(default=None, alias="Industry")
    parent_id: Optional[str] = Field(default=None, alias="ParentId")


class Contact(CrmRecord):
    """Person at an account. `account_name` names the parent account and is never persisted."""

    entity_type: ClassVar[str] = "Contact"
    key_attr: ClassVar[str] = "last_name"
    parent_attr: ClassVar[Optional[str]] = "account_id"

    first_name: Optional[str] = Field(default=None, alias="FirstName")
    last_name: Optional[str] = Field(default=None, alias="LastName")
    email: Optional[str] = Field(default=None, alias="Email")
    account_id: Optional[str] = Field(default=None, alias="AccountId")
    account_name: Optional[str] = Field(default=None, exclude=True)


class Opportunity(CrmRecord):
    """Deal against an account."""

    entity_type: ClassVar[str] = "Opportunity"
    parent_attr: ClassVar[Optional[str]] = "account_id"

    name: Optional[str] = Field(default=None, alias="Name")
    stage_name: Optional[str] = Field(default=None, alias="StageName")
    close_date: Optional[date] = Field(default=None, alias="CloseDate")
    amount: Optional[float] = Field(default=None, alias="Amount")
    account_id: Optional[str] = Field(default=None, alias="AccountId")

    @classmethod
    def stub(cls, label: str, parent_id: Optional[str] = None) -> "Opportunity":
        # StageName and CloseDate are required on create
        opp = super().stub(label, parent_id)
        opp.stage_name = "Prospecting"
        opp.close_date = date.today()
        return opp


class Lead(CrmRecord):
    """Unqualified prospect."""

    entity_type: ClassVar[str] = "Lead"
    key_attr: ClassVar[str] = "last_name"

    first_name: Optional[str] = Field(default=None, alias="FirstName")
    last_name: Optional[str] = Field(default=None, alias="LastName")
    company: Optional[str] = Field(default=None, alias="Company")
    status: Optional[str] = Field(default=None, alias="Status")

    @classmethod
    def stub(cls, label: str, parent_id: Optional[str] = None) -> "Lead":
        lead = super().stub(label, parent_id)
        lead.company = label
        return lead


class Case(CrmRecord):
    """Support case, optionally tied to an account."""

    entity_type: ClassVar[str] = "Case"
    key_attr: ClassVar[str] = "subject"
    parent_attr: ClassVar[Optional[str]] = "account_id"

    subject: Optional[str] = Field(default=None, alias="Subject")
    status: Optional[str] = Field(default=None, alias="Status")
    priority: Optional[str] = Field(default=None, alias="Priority")
    account_id: Optional[str] = Field(default=None, alias="AccountId")


ENTITY_TYPES: dict[str, type[CrmRecord]] = {
    model.entity_type: model for model in (Account, Contact, Opportunity, Lead, Case)
}


def model_for(entity_type: str) -> type[CrmRecord]:
    """Resolve an object name (case-insensitive) to its record model."""
    for name, model in ENTITY_TYPES.items():
        if name.lower() == entity_type.lower():
            return model
    raise ValueError(f"Unknown entity type: {entity_type}. Available: {list(ENTITY_TYPES.keys())}")
