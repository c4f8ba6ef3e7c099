"""
Marketo SOAP API client.

Lead record operations (get, sync, sync multiple, lookup by named key) over
the Marketo mktows SOAP service.
"""

from .client import (
    MarketoClient,
    MarketoConfig,
    get_client
)
from .client_proxy import ClientProxy
from .exceptions import MarketoAPIError
from .importer import (
    LeadImporter,
    ImportResult,
    ValidationError,
    sync_leads
)
from .lead import (
    KEY_TYPES,
    NAMED_KEYS,
    Lead,
    leads_to_dataframe
)
from .leads import Leads

__all__ = [
    "MarketoClient",
    "MarketoConfig",
    "get_client",
    "ClientProxy",
    "MarketoAPIError",
    "LeadImporter",
    "ImportResult",
    "ValidationError",
    "sync_leads",
    "KEY_TYPES",
    "NAMED_KEYS",
    "Lead",
    "leads_to_dataframe",
    "Leads",
]
