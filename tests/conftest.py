from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import pytest
import requests

from marketo_api import MarketoClient

ENDPOINT = "https://mock.mktoapi.com/soap/mktows/2_3"


def soap_envelope(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<SOAP-ENV:Envelope xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/"'
        ' xmlns:ns1="http://www.marketo.com/mktows/"'
        ' xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
        f"<SOAP-ENV:Body>{body}</SOAP-ENV:Body>"
        "</SOAP-ENV:Envelope>"
    )


GET_LEAD_RESPONSE = soap_envelope(
    "<ns1:successGetLead><result>"
    "<count>1</count>"
    "<leadRecordList><leadRecord>"
    "<Id>1090240</Id>"
    "<Email>jane@example.org</Email>"
    '<ForeignSysPersonId xsi:nil="true" />'
    '<ForeignSysType xsi:nil="true" />'
    "<leadAttributeList>"
    "<attribute><attrName>FirstName</attrName><attrType>string</attrType><attrValue>Jane</attrValue></attribute>"
    "<attribute><attrName>AnnualRevenue</attrName><attrType>currency</attrType><attrValue>1000</attrValue></attribute>"
    "</leadAttributeList>"
    "</leadRecord></leadRecordList>"
    "</result></ns1:successGetLead>"
)

LEAD_NOT_FOUND_FAULT = soap_envelope(
    "<SOAP-ENV:Fault>"
    "<faultcode>SOAP-ENV:Client</faultcode>"
    "<faultstring>20103 - Lead not found</faultstring>"
    "<detail><ns1:serviceException>"
    "<name>mktServiceException</name>"
    "<message>No lead found with EMAIL = nobody@example.org (20103)</message>"
    "<code>20103</code>"
    "</ns1:serviceException></detail>"
    "</SOAP-ENV:Fault>"
)


def make_response(status_code: int, content: str, headers: Optional[Dict[str, str]] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = content.encode("utf-8")
    response.headers.update(headers or {})
    response.url = ENDPOINT
    return response


class CallRecorder:
    """Stands in for MarketoClient.call: records (method, message) and answers with `result`."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.result: Dict[str, Any] = {}

    def __call__(self, method: str, message: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((method, message))
        return self.result

    @property
    def last(self) -> Tuple[str, Dict[str, Any]]:
        return self.calls[-1]


@pytest.fixture
def client():
    with MarketoClient(user_id="user", encryption_key="key", endpoint=ENDPOINT) as marketo:
        yield marketo


@pytest.fixture
def calls(client, monkeypatch) -> CallRecorder:
    recorder = CallRecorder()
    monkeypatch.setattr(client, "call", recorder)
    return recorder


@pytest.fixture
def leads(client, calls):
    return client.leads


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("marketo_api.client.time.sleep", lambda _seconds: None)
