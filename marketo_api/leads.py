"""
Lead operations for the Marketo SOAP API.

Implements getLead, syncLead and syncMultipleLeads, plus get_by_<key> lookups
for each named lead key.

Usage:
    leads = client.leads

    lead = leads.get_by_email("jane@example.org")
    lead["Company"] = "Example Org"
    lead.sync()

    new_lead = leads.new(email="sam@example.org", attributes={"FirstName": "Sam"})
    synced = leads.sync_multiple([new_lead], dedup_enabled=False)
"""

from __future__ import annotations

import logging
from itertools import zip_longest
from typing import Any, Dict, Iterable, List, Optional, Union

from .client_proxy import ClientProxy
from .lead import NAMED_KEYS, Lead
from .soap import as_list

logger = logging.getLogger(__name__)


def _named_getter(name: str):
    key_type = NAMED_KEYS[name]

    def getter(self: "Leads", value: Any) -> Union[Lead, List[Lead], None]:
        return self.get(key_type, value)

    getter.__name__ = f"get_by_{name}"
    getter.__doc__ = f"Get the lead by its {name.replace('_', ' ')} ({key_type})."
    return getter


class Leads(ClientProxy):
    """Lead operations bound to a MarketoClient."""

    def new(self, **options: Any) -> Lead:
        """Create a local lead bound to this proxy; accepts Lead constructor options."""
        options["proxy"] = self
        return Lead(**options)

    def get(self, type_or_key: Any, value: Any = None) -> Union[Lead, List[Lead], None]:
        """
        Implements getLead.

        Usage:
            leads.get({"leadKey": {"keyType": "EMAIL", "keyValue": "jane@example.org"}})
            leads.get(lead)
            leads.get("email", "jane@example.org")

        Returns:
            The lead, a list of leads if several match, or None if none do

        Raises:
            ValueError: If no lead key can be built from the arguments
        """
        key = None
        if isinstance(type_or_key, dict):
            lead_key = type_or_key.get("leadKey")
            if isinstance(lead_key, dict) and Lead.is_key_type(lead_key.get("keyType")):
                key = type_or_key
        elif isinstance(type_or_key, Lead):
            try:
                key = self.transform_param("get", type_or_key)
            except ValueError:
                key = None
        elif value is not None and Lead.is_key_type(type_or_key):
            key = Lead.key(type_or_key, value)

        if key is None:
            raise ValueError(f"{type_or_key} is not a valid lead key")

        found = self.extract_from_response(self.call("get_lead", key), "lead_record_list", self._leads_from_list)
        if not found:
            return None
        if len(found) == 1:
            return found[0]
        return found

    def sync(self, lead_record: Union[Lead, Dict[str, Any]]) -> Optional[Lead]:
        """
        Implements syncLead.

        Returns:
            The lead as returned by the service, or a copy of the submitted lead
            carrying the assigned id when the service returns no record
        """
        response = self.call("sync_lead", self.transform_param("sync", lead_record))
        return self.extract_from_response(response, transform=lambda result: self._synced_lead(result, lead_record))

    def get_multiple(self, selector: Any) -> List[Lead]:
        raise NotImplementedError

    def sync_multiple(self, leads: Iterable[Union[Lead, Dict[str, Any]]], dedup_enabled: bool = True) -> List[Lead]:
        """
        Implements syncMultipleLeads.

        De-duplication against existing leads can be turned off with
        dedup_enabled=False.
        """
        leads = list(leads)
        records = [self._lead_record(param) for param in self.transform_param_list("sync", leads)]
        response = self.call(
            "sync_multiple_leads",
            {"leadRecordList": {"leadRecord": records}, "dedupEnabled": dedup_enabled},
        )

        returned = self.extract_from_response(response, "lead_record_list", self._leads_from_list)
        if returned is not None:
            return returned

        statuses = as_list(self.extract_from_response(response, "sync_status_list", lambda lst: lst.get("sync_status")))
        if len(statuses) < len(leads):
            logger.warning(
                "syncMultipleLeads returned %d statuses for %d leads; unmatched leads keep no id",
                len(statuses),
                len(leads),
            )

        synced = []
        for submitted, status in zip_longest(leads, statuses[:len(leads)], fillvalue={}):
            if status.get("status") == "FAILED":
                logger.warning("Sync failed for %r: %s", submitted, status.get("error"))
            synced.append(self._with_lead_id(submitted, status.get("lead_id")))

        logger.info("Synced %d leads (%d statuses returned)", len(leads), len(statuses))
        return synced

    def merge(self, winning_key: Any, losing_keys: Any) -> None:
        raise NotImplementedError

    def activity(self, lead_key: Any, **options: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def changes(self, start_position: Any, **options: Any) -> List[Dict[str, Any]]:
        raise NotImplementedError

    get_by_id = _named_getter("id")
    get_by_cookie = _named_getter("cookie")
    get_by_email = _named_getter("email")
    get_by_lead_owner_email = _named_getter("lead_owner_email")
    get_by_salesforce_account_id = _named_getter("salesforce_account_id")
    get_by_salesforce_contact_id = _named_getter("salesforce_contact_id")
    get_by_salesforce_lead_id = _named_getter("salesforce_lead_id")
    get_by_salesforce_lead_owner_id = _named_getter("salesforce_lead_owner_id")
    get_by_salesforce_opportunity_id = _named_getter("salesforce_opportunity_id")

    # =========================================
    # Internal
    # =========================================

    def _leads_from_list(self, record_list: Dict[str, Any]) -> List[Lead]:
        return [Lead.from_soap_hash(record, proxy=self) for record in as_list(record_list.get("lead_record"))]

    @staticmethod
    def _lead_record(param: Dict[str, Any]) -> Dict[str, Any]:
        if isinstance(param, dict) and "leadRecord" in param:
            return param["leadRecord"]
        return param

    def _with_lead_id(self, submitted: Union[Lead, Dict[str, Any]], lead_id: Any) -> Lead:
        if isinstance(submitted, Lead):
            lead = submitted.copy()
            lead.proxy = self
        else:
            lead = Lead.from_params(submitted, proxy=self)
        if lead_id is not None:
            lead.id = int(lead_id)
        return lead

    def _synced_lead(self, result: Dict[str, Any], submitted: Union[Lead, Dict[str, Any]]) -> Lead:
        status = result.get("sync_status") or {}
        logger.debug("syncLead status=%s lead_id=%s", status.get("status"), result.get("lead_id"))

        record = result.get("lead_record")
        if record:
            return Lead.from_soap_hash(record, proxy=self)
        return self._with_lead_id(submitted, result.get("lead_id") or status.get("lead_id"))
