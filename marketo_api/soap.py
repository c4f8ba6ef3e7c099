"""
SOAP envelope codec for the Marketo web service.

Requests are built as plain dicts and serialized into a SOAP 1.1 envelope.
Responses are parsed back into nested dicts with snake_case keys, e.g.

    <leadRecordList><leadRecord><Id>12</Id>...</leadRecord></leadRecordList>

becomes

    {"lead_record_list": {"lead_record": {"id": "12", ...}}}

A repeated element becomes a list, a single one stays a dict; use as_list()
when reading elements that may repeat.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from .exceptions import MarketoAPIError

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
MKTOWS_NS = "http://www.marketo.com/mktows/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

ET.register_namespace("SOAP-ENV", SOAP_ENV_NS)
ET.register_namespace("mkt", MKTOWS_NS)

_FIRST_CAP = re.compile(r"([A-Z]+)([A-Z][a-z])")
_ALL_CAP = re.compile(r"([a-z\d])([A-Z])")


# =========================================
# Names
# =========================================


def camelize(name: str) -> str:
    """sync_multiple_leads -> syncMultipleLeads"""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_case(name: str) -> str:
    """leadRecordList -> lead_record_list, SFDCLeadId -> sfdc_lead_id"""
    name = _FIRST_CAP.sub(r"\1_\2", name)
    name = _ALL_CAP.sub(r"\1_\2", name)
    return name.replace("-", "_").lower()


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def as_list(value: Any) -> List:
    """Normalize an element that may be missing, single, or repeated."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


# =========================================
# Requests
# =========================================


def _append(parent: ET.Element, tag: str, value: Any) -> None:
    if value is None:
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _append(parent, tag, item)
        return

    element = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, child in value.items():
            _append(element, key, child)
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)


def build_envelope(method: str, message: Dict[str, Any], header: Optional[Dict[str, Any]] = None) -> bytes:
    """
    Build the SOAP envelope for a remote operation.

    Args:
        method: Remote operation name, e.g. "getLead"
        message: Request parameters; becomes the children of params<Method>
        header: AuthenticationHeader fields (mktowsUserId, requestSignature, requestTimestamp)

    Returns:
        UTF-8 encoded envelope
    """
    envelope = ET.Element(f"{{{SOAP_ENV_NS}}}Envelope")

    if header:
        soap_header = ET.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Header")
        auth = ET.SubElement(soap_header, f"{{{MKTOWS_NS}}}AuthenticationHeader")
        for key, value in header.items():
            _append(auth, key, value)

    body = ET.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    params = ET.SubElement(body, f"{{{MKTOWS_NS}}}params{method[:1].upper()}{method[1:]}")
    for key, value in (message or {}).items():
        _append(params, key, value)

    return ET.tostring(envelope, encoding="utf-8", xml_declaration=True)


# =========================================
# Responses
# =========================================


def _element_value(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        if element.get(f"{{{XSI_NS}}}nil") == "true":
            return None
        text = element.text
        if text is None or not text.strip():
            return None
        return text

    value: Dict[str, Any] = {}
    repeated = set()
    for child in children:
        key = snake_case(_local_name(child.tag))
        child_value = _element_value(child)
        if key not in value:
            value[key] = child_value
        elif key in repeated:
            value[key].append(child_value)
        else:
            value[key] = [value[key], child_value]
            repeated.add(key)
    return value


def _parse_xml(content: bytes) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise MarketoAPIError(f"Malformed SOAP response: {e}")


def _body(root: ET.Element) -> Optional[ET.Element]:
    for child in root:
        if _local_name(child.tag) == "Body":
            return child
    return None


def _fault_error(fault: ET.Element, status_code: Optional[int] = None) -> MarketoAPIError:
    detail = _element_value(fault) or {}
    exception = (detail.get("detail") or {}).get("service_exception") or {}
    message = exception.get("message") or detail.get("faultstring") or "SOAP fault"
    return MarketoAPIError(
        message,
        status_code=status_code,
        fault_code=detail.get("faultcode"),
        service_code=exception.get("code"),
        payload=detail,
    )


def find_fault(content: bytes, status_code: Optional[int] = None) -> Optional[MarketoAPIError]:
    """Return the fault carried by a response body as an error, or None if there is none."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return None

    body = _body(root)
    if body is None:
        return None
    for child in body:
        if _local_name(child.tag) == "Fault":
            return _fault_error(child, status_code)
    return None


def parse_response(content: bytes) -> Dict[str, Any]:
    """
    Parse a response envelope into the result of its success<Method> element.

    Raises:
        MarketoAPIError: If the response is a SOAP fault or has no success element
    """
    root = _parse_xml(content)
    body = _body(root)
    if body is None:
        raise MarketoAPIError("SOAP response has no Body")

    for child in body:
        name = _local_name(child.tag)
        if name == "Fault":
            raise _fault_error(child)
        if name.startswith("success"):
            value = _element_value(child) or {}
            logger.debug("Parsed %s response", name)
            return value.get("result") or {}

    raise MarketoAPIError("SOAP response has no success element")
