"""
Lead record model.

A Lead keeps its fields as a free-form attribute mapping (FirstName, Company,
custom fields, ...) and converts to and from the typed attribute list the SOAP
API uses:

    <leadAttributeList>
      <attribute><attrName>FirstName</attrName><attrType>string</attrType><attrValue>Jane</attrValue></attribute>
    </leadAttributeList>
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from .soap import as_list

if TYPE_CHECKING:
    from .leads import Leads


# Local lookup names -> LeadKeyRef values accepted by getLead
NAMED_KEYS: Dict[str, str] = {
    "id": "IDNUM",
    "cookie": "COOKIE",
    "email": "EMAIL",
    "lead_owner_email": "LEADOWNEREMAIL",
    "salesforce_account_id": "SFDCACCOUNTID",
    "salesforce_contact_id": "SFDCCONTACTID",
    "salesforce_lead_id": "SFDCLEADID",
    "salesforce_lead_owner_id": "SFDCLEADOWNERID",
    "salesforce_opportunity_id": "SFDCOPPTYID",
}

KEY_TYPES = frozenset(NAMED_KEYS.values())


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    try:
        return len(value) == 0
    except TypeError:
        return False


def _minimize(mapping: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in mapping.items() if not _is_empty(value)}


class Lead:
    """
    A single Marketo lead.

    Attributes are read and written with item access:

        lead = Lead(email="jane@example.org")
        lead["FirstName"] = "Jane"
        lead.types["FirstName"] = "string"
    """

    def __init__(
        self,
        id: Optional[int] = None,
        email: Optional[str] = None,
        cookie: Optional[str] = None,
        attributes: Optional[Dict[str, Any]] = None,
        types: Optional[Dict[str, str]] = None,
        proxy: Optional["Leads"] = None,
    ):
        self.id = id
        self.cookie = cookie
        self.proxy = proxy
        self.foreign_type: Optional[str] = None
        self.foreign_id: Optional[str] = None
        self.attributes: Dict[str, Any] = {}
        self.types: Dict[str, str] = {}

        for name, value in (attributes or {}).items():
            self[name] = value
        for name, attr_type in (types or {}).items():
            self.types[str(name)] = attr_type
        if email is not None:
            self.email = email

    # =========================================
    # Keys
    # =========================================

    @staticmethod
    def key_type(key: Any) -> str:
        """
        Resolve a key type ("EMAIL", "email", "SFDCLEADID") or named key ("salesforce_lead_id").

        Raises:
            ValueError: If the key is neither
        """
        name = str(key)
        if name.upper() in KEY_TYPES:
            return name.upper()
        if name.lower() in NAMED_KEYS:
            return NAMED_KEYS[name.lower()]
        raise ValueError(f"Invalid key {key}")

    @classmethod
    def is_key_type(cls, key: Any) -> bool:
        try:
            cls.key_type(key)
        except ValueError:
            return False
        return True

    @classmethod
    def key(cls, key: Any, value: Any) -> Dict[str, Dict[str, Any]]:
        """Build a leadKey parameter, e.g. key("email", "jane@example.org")."""
        return {"leadKey": {"keyType": cls.key_type(key), "keyValue": value}}

    # =========================================
    # Attributes
    # =========================================

    def __getitem__(self, name: str) -> Any:
        return self.attributes.get(str(name))

    def __setitem__(self, name: str, value: Any) -> None:
        self.attributes[str(name)] = value

    def __contains__(self, name: str) -> bool:
        return str(name) in self.attributes

    def __iter__(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.attributes.items())

    @property
    def email(self) -> Optional[str]:
        return self["Email"]

    @email.setter
    def email(self, value: Optional[str]) -> None:
        self["Email"] = value

    def foreign(self, foreign_type: Optional[str] = None, foreign_id: Optional[str] = None) -> Dict[str, Optional[str]]:
        """Set the foreign system person (e.g. "SFDC", "0035000000abcde") when given; return it."""
        if foreign_type is not None:
            self.foreign_type = foreign_type
            self.foreign_id = foreign_id
        return {"type": self.foreign_type, "id": self.foreign_id}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lead):
            return NotImplemented
        return (
            self.id == other.id
            and self.cookie == other.cookie
            and self.foreign() == other.foreign()
            and self.attributes == other.attributes
            and self.types == other.types
        )

    def __repr__(self) -> str:
        return f"Lead(id={self.id!r}, email={self.email!r}, attributes={len(self.attributes)})"

    def copy(self) -> "Lead":
        lead = Lead(id=self.id, cookie=self.cookie, attributes=self.attributes, types=self.types, proxy=self.proxy)
        lead.foreign(self.foreign_type, self.foreign_id)
        return lead

    def update_from(self, other: "Lead") -> None:
        """Replace this lead's state with another's, keeping the proxy."""
        self.id = other.id
        self.cookie = other.cookie if other.cookie is not None else self.cookie
        self.foreign_type = other.foreign_type
        self.foreign_id = other.foreign_id
        self.attributes = dict(other.attributes)
        self.types = dict(other.types)

    # =========================================
    # SOAP conversion
    # =========================================

    @classmethod
    def from_soap_hash(cls, record: Dict[str, Any], proxy: Optional["Leads"] = None) -> "Lead":
        """Build a lead from a parsed <leadRecord>."""
        lead_id = record.get("id")
        lead = cls(id=int(lead_id) if lead_id is not None else None, proxy=proxy)

        if record.get("email") is not None:
            lead.email = record["email"]

        if record.get("foreign_sys_type"):
            lead.foreign(record["foreign_sys_type"], record.get("foreign_sys_person_id"))

        attribute_list = record.get("lead_attribute_list") or {}
        for attribute in as_list(attribute_list.get("attribute")):
            name = attribute.get("attr_name")
            if name is None:
                continue
            lead[name] = attribute.get("attr_value")
            if attribute.get("attr_type"):
                lead.types[name] = attribute["attr_type"]

        return lead

    @classmethod
    def from_params(cls, record: Dict[str, Any], proxy: Optional["Leads"] = None) -> "Lead":
        """Build a lead from a request-form leadRecord (Email, Id, leadAttributeList, ...)."""
        if "leadRecord" in record:
            record = record["leadRecord"]

        lead_id = record.get("Id")
        lead = cls(id=int(lead_id) if lead_id is not None else None, proxy=proxy)

        if record.get("Email") is not None:
            lead.email = record["Email"]

        if record.get("ForeignSysType"):
            lead.foreign(record["ForeignSysType"], record.get("ForeignSysPersonId"))

        attribute_list = record.get("leadAttributeList") or {}
        for attribute in as_list(attribute_list.get("attribute")):
            name = attribute.get("attrName")
            if name is None:
                continue
            lead[name] = attribute.get("attrValue")
            if attribute.get("attrType"):
                lead.types[name] = attribute["attrType"]

        return lead

    def params_for_get(self) -> Dict[str, Dict[str, Any]]:
        """
        Build the getLead key for this lead: by id, else email, else cookie.

        Raises:
            ValueError: If the lead has none of these
        """
        if self.id is not None:
            return self.key("IDNUM", self.id)
        if self.email:
            return self.key("EMAIL", self.email)
        if self.cookie:
            return self.key("COOKIE", self.cookie)
        raise ValueError(f"{self!r} has no id, email or cookie to look up by")

    def params_for_sync(self) -> Dict[str, Any]:
        """Build the syncLead parameters; empty values are left out."""
        attributes = [
            _minimize({"attrName": name, "attrType": self.types.get(name), "attrValue": value})
            for name, value in self.attributes.items()
            if name != "Email" and not _is_empty(value)
        ]
        record = _minimize(
            {
                "Id": self.id,
                "Email": self.email,
                "ForeignSysPersonId": self.foreign_id,
                "ForeignSysType": self.foreign_type,
                "leadAttributeList": _minimize({"attribute": attributes}),
            }
        )
        # Element order follows the paramsSyncLead sequence in the WSDL
        return _minimize({"leadRecord": record, "returnLead": True, "marketoCookie": self.cookie})

    # =========================================
    # Remote operations
    # =========================================

    def _require_proxy(self) -> "Leads":
        if self.proxy is None:
            raise RuntimeError(f"{self!r} is not bound to a client")
        return self.proxy

    def sync(self) -> "Lead":
        """Create or update this lead remotely; returns the lead as the server has it."""
        return self._require_proxy().sync(self)

    def save(self) -> "Lead":
        """Sync this lead and take on the server's state (assigned id, computed fields)."""
        synced = self.sync()
        if synced is not None:
            self.update_from(synced)
        return self


def leads_to_dataframe(leads: List[Lead]) -> pd.DataFrame:
    """Tabulate leads: id, email, then one column per attribute."""
    rows = []
    for lead in leads:
        row: Dict[str, Any] = {"id": lead.id, "email": lead.email}
        row.update((name, value) for name, value in lead.attributes.items() if name != "Email")
        rows.append(row)
    return pd.DataFrame(rows, columns=_columns(rows))


def _columns(rows: List[Dict[str, Any]]) -> List[str]:
    columns: List[str] = ["id", "email"]
    for row in rows:
        for name in row:
            if name not in columns:
                columns.append(name)
    return columns
