"""External integrations.

This package contains:
- CET client: HTTP upload calls to the customer-engagement platform
- Record source: read access to CRM records (Salesforce)
- Entity types: the closed set of CRM entity types with log relations
"""

from integrations.cet_client import CetClient, CetResponse
from integrations.entity_types import EntityType, get_entity_definition
from integrations.record_source import RecordSource, SalesforceRecordSource, read_field

__all__ = [
    "CetClient",
    "CetResponse",
    "EntityType",
    "RecordSource",
    "SalesforceRecordSource",
    "get_entity_definition",
    "read_field",
]
