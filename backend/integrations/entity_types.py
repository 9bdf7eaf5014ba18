"""Closed set of CRM entity types the core knows how to relate log entries to.

Each entity type maps to the event-log column that references records of
that type, plus the standard (non-custom) field names that may be queried
for it during a historical sync. Entity types outside this table are still
synced; their log entries fall back to a text reference.
"""

from dataclasses import dataclass
from enum import Enum


class EntityType(str, Enum):
    """CRM entity types with a dedicated relation column on the event log."""

    LEAD = "Lead"
    CONTACT = "Contact"
    ACCOUNT = "Account"
    OPPORTUNITY = "Opportunity"


@dataclass(frozen=True)
class EntityDefinition:
    entity_type: EntityType
    relation_column: str  # EventLogEntry attribute holding the record id
    standard_fields: frozenset[str]


_COMMON_FIELDS = frozenset({
    "Id",
    "Name",
    "OwnerId",
    "CreatedDate",
    "CreatedById",
    "LastModifiedDate",
    "LastModifiedById",
    "SystemModstamp",
    "LastActivityDate",
    "Description",
    "IsDeleted",
})

_PERSON_FIELDS = frozenset({
    "FirstName",
    "LastName",
    "Salutation",
    "Title",
    "Email",
    "Phone",
    "MobilePhone",
    "HasOptedOutOfEmail",
    "DoNotCall",
    "LeadSource",
})

ENTITY_DEFINITIONS: dict[str, EntityDefinition] = {
    EntityType.LEAD.value: EntityDefinition(
        entity_type=EntityType.LEAD,
        relation_column="lead_id",
        standard_fields=_COMMON_FIELDS | _PERSON_FIELDS | frozenset({
            "Company",
            "Status",
            "Industry",
            "Rating",
            "Street",
            "City",
            "State",
            "PostalCode",
            "Country",
            "Website",
            "NumberOfEmployees",
            "AnnualRevenue",
            "IsConverted",
            "ConvertedDate",
            "ConvertedAccountId",
            "ConvertedContactId",
            "ConvertedOpportunityId",
        }),
    ),
    EntityType.CONTACT.value: EntityDefinition(
        entity_type=EntityType.CONTACT,
        relation_column="contact_id",
        standard_fields=_COMMON_FIELDS | _PERSON_FIELDS | frozenset({
            "AccountId",
            "Birthdate",
            "Department",
            "HomePhone",
            "OtherPhone",
            "MailingStreet",
            "MailingCity",
            "MailingState",
            "MailingPostalCode",
            "MailingCountry",
            "ReportsToId",
        }),
    ),
    EntityType.ACCOUNT.value: EntityDefinition(
        entity_type=EntityType.ACCOUNT,
        relation_column="account_id",
        standard_fields=_COMMON_FIELDS | frozenset({
            "AccountNumber",
            "Type",
            "Industry",
            "Phone",
            "Website",
            "Rating",
            "AnnualRevenue",
            "NumberOfEmployees",
            "BillingStreet",
            "BillingCity",
            "BillingState",
            "BillingPostalCode",
            "BillingCountry",
            "ShippingStreet",
            "ShippingCity",
            "ShippingState",
            "ShippingPostalCode",
            "ShippingCountry",
            "ParentId",
        }),
    ),
    EntityType.OPPORTUNITY.value: EntityDefinition(
        entity_type=EntityType.OPPORTUNITY,
        relation_column="opportunity_id",
        standard_fields=_COMMON_FIELDS | frozenset({
            "AccountId",
            "Amount",
            "CloseDate",
            "StageName",
            "Probability",
            "Type",
            "LeadSource",
            "IsClosed",
            "IsWon",
            "ForecastCategory",
            "NextStep",
            "ExpectedRevenue",
        }),
    ),
}


def get_entity_definition(entity_type: str | None) -> EntityDefinition | None:
    """Look up the definition for an entity type name.

    Returns:
        The EntityDefinition, or None for custom or unknown entity types.
    """
    if not entity_type:
        return None
    return ENTITY_DEFINITIONS.get(entity_type)


def _by_lower(fields: frozenset[str]) -> dict[str, str]:
    return {name.lower(): name for name in fields}


_COMMON_BY_LOWER = _by_lower(_COMMON_FIELDS)
_STANDARD_BY_LOWER = {
    key: _by_lower(definition.standard_fields)
    for key, definition in ENTITY_DEFINITIONS.items()
}


def queryable_field_name(entity_type: str, field_name: str | None) -> str | None:
    """Return the name to put in a CRM query for a mapped field, or None.

    Custom fields (``__c`` suffix) and dotted relationship paths are always
    accepted as written. Otherwise the name must match a known standard
    field of the entity type, ignoring case, and the standard spelling is
    returned. Anything else (for instance a literal event name stored in a
    mapping) gives None.
    """
    name = (field_name or "").strip()
    if not name:
        return None
    if name.lower().endswith("__c") or "." in name:
        return name
    known = _STANDARD_BY_LOWER.get(entity_type or "", _COMMON_BY_LOWER)
    return known.get(name.lower())
