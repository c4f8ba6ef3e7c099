import pytest

from marketo_api.lead import NAMED_KEYS, Lead
from marketo_api.leads import Leads

JANE = {
    "id": "1090240",
    "email": "jane@example.org",
    "lead_attribute_list": {"attribute": {"attr_name": "FirstName", "attr_type": "string", "attr_value": "Jane"}},
}
SAM = {"id": "1090241", "email": "sam@example.org", "lead_attribute_list": None}


def test_client_leads_is_cached(client):
    assert isinstance(client.leads, Leads)
    assert client.leads is client.leads


def test_new_binds_proxy(leads):
    lead = leads.new(email="jane@example.org", attributes={"FirstName": "Jane"})

    assert lead.proxy is leads
    assert lead["FirstName"] == "Jane"


def test_get_with_lead_key(leads, calls):
    key = Lead.key("EMAIL", "jane@example.org")

    assert leads.get(key) is None
    assert calls.last == ("get_lead", key)


def test_get_with_lead(leads, calls):
    leads.get(Lead(id=77))

    assert calls.last == ("get_lead", {"leadKey": {"keyType": "IDNUM", "keyValue": 77}})


def test_get_with_type_and_value(leads, calls):
    leads.get("sfdcleadid", "00Q5000000abcde")

    assert calls.last == ("get_lead", {"leadKey": {"keyType": "SFDCLEADID", "keyValue": "00Q5000000abcde"}})


@pytest.mark.parametrize(
    "args",
    [
        ("favourite_colour", "blue"),
        ("email",),
        ({"leadKey": {"keyType": "NOPE", "keyValue": "x"}},),
        ({"email": "jane@example.org"},),
        (Lead(),),
        (None,),
    ],
)
def test_get_rejects_invalid_keys(leads, calls, args):
    with pytest.raises(ValueError, match="is not a valid lead key"):
        leads.get(*args)
    assert calls.calls == []


def test_get_returns_bound_lead(leads, calls):
    calls.result = {"count": "1", "lead_record_list": {"lead_record": JANE}}

    lead = leads.get("email", "jane@example.org")

    assert lead.id == 1090240
    assert lead["FirstName"] == "Jane"
    assert lead.types["FirstName"] == "string"
    assert lead.proxy is leads


def test_get_returns_list_for_several_matches(leads, calls):
    calls.result = {"count": "2", "lead_record_list": {"lead_record": [JANE, SAM]}}

    found = leads.get_by_email("shared@example.org")

    assert [lead.id for lead in found] == [1090240, 1090241]


@pytest.mark.parametrize("name, key_type", sorted(NAMED_KEYS.items()))
def test_named_getters_dispatch_to_get(leads, calls, name, key_type):
    getter = getattr(leads, f"get_by_{name}")

    getter("value")

    assert getter.__name__ == f"get_by_{name}"
    assert calls.last == ("get_lead", {"leadKey": {"keyType": key_type, "keyValue": "value"}})


def test_sync_sends_params_for_sync(leads, calls):
    lead = leads.new(email="jane@example.org", attributes={"FirstName": "Jane"})
    calls.result = {
        "lead_id": "1090240",
        "sync_status": {"lead_id": "1090240", "status": "CREATED", "error": None},
        "lead_record": JANE,
    }

    synced = leads.sync(lead)

    assert calls.last == ("sync_lead", lead.params_for_sync())
    assert synced.id == 1090240
    assert synced.proxy is leads


def test_sync_without_returned_record_uses_lead_id(leads, calls):
    lead = Lead(email="jane@example.org", attributes={"FirstName": "Jane"})
    calls.result = {"lead_id": "55", "sync_status": {"lead_id": "55", "status": "UPDATED", "error": None}}

    synced = leads.sync(lead)

    assert synced.id == 55
    assert synced["FirstName"] == "Jane"
    assert lead.id is None


def test_lead_sync_goes_through_proxy(leads, calls):
    lead = leads.new(email="jane@example.org")
    calls.result = {"lead_record": JANE}

    lead.save()

    assert calls.last[0] == "sync_lead"
    assert lead.id == 1090240


def test_sync_multiple_message(leads, calls):
    first = Lead(email="a@example.org")
    second = Lead(email="b@example.org", attributes={"Company": "B Corp"})

    leads.sync_multiple([first, second], dedup_enabled=False)

    method, message = calls.last
    assert method == "sync_multiple_leads"
    assert message["dedupEnabled"] is False
    assert message["leadRecordList"] == {
        "leadRecord": [
            {"Email": "a@example.org"},
            {"Email": "b@example.org", "leadAttributeList": {"attribute": [{"attrName": "Company", "attrValue": "B Corp"}]}},
        ]
    }


def test_sync_multiple_defaults_to_dedup(leads, calls):
    calls.result = {"sync_status_list": {"sync_status": {"lead_id": "9", "status": "CREATED", "error": None}}}
    raw = {
        "Email": "raw@example.org",
        "ForeignSysPersonId": "0035000000abcde",
        "ForeignSysType": "SFDC",
        "leadAttributeList": {"attribute": [{"attrName": "FirstName", "attrType": "string", "attrValue": "Raw"}]},
    }

    synced = leads.sync_multiple([raw])

    assert calls.last[1] == {"leadRecordList": {"leadRecord": [raw]}, "dedupEnabled": True}
    assert len(synced) == 1
    assert synced[0].id == 9
    assert synced[0].email == "raw@example.org"
    assert synced[0]["FirstName"] == "Raw"
    assert synced[0].types == {"FirstName": "string"}
    assert synced[0].foreign() == {"type": "SFDC", "id": "0035000000abcde"}
    assert synced[0].proxy is leads


def test_sync_with_raw_params_keeps_submitted_fields(leads, calls):
    calls.result = {"lead_id": "31"}

    synced = leads.sync({"leadRecord": {"Email": "raw@example.org", "Id": 31}, "returnLead": False})

    assert synced.id == 31
    assert synced.email == "raw@example.org"


def test_sync_multiple_keeps_leads_without_statuses(leads, calls, caplog):
    first = Lead(email="a@example.org")
    second = Lead(email="b@example.org")
    calls.result = {"sync_status_list": {"sync_status": {"lead_id": "10", "status": "CREATED", "error": None}}}

    with caplog.at_level("WARNING", logger="marketo_api.leads"):
        synced = leads.sync_multiple([first, second])

    assert [lead.id for lead in synced] == [10, None]
    assert [lead.email for lead in synced] == ["a@example.org", "b@example.org"]
    assert "returned 1 statuses for 2 leads" in caplog.text


def test_sync_multiple_with_empty_response_returns_every_lead(leads, calls):
    synced = leads.sync_multiple([Lead(email="a@example.org"), Lead(email="b@example.org")])

    assert [lead.email for lead in synced] == ["a@example.org", "b@example.org"]
    assert all(lead.id is None for lead in synced)


def test_sync_multiple_from_sync_statuses(leads, calls, caplog):
    first = Lead(email="a@example.org")
    second = Lead(email="b@example.org")
    calls.result = {
        "sync_status_list": {
            "sync_status": [
                {"lead_id": "10", "status": "CREATED", "error": None},
                {"lead_id": None, "status": "FAILED", "error": "Invalid email"},
            ]
        }
    }

    with caplog.at_level("WARNING", logger="marketo_api.leads"):
        synced = leads.sync_multiple([first, second])

    assert [lead.id for lead in synced] == [10, None]
    assert [lead.email for lead in synced] == ["a@example.org", "b@example.org"]
    assert "Sync failed" in caplog.text
    assert "Invalid email" in caplog.text
    assert all(lead.proxy is leads for lead in synced)


def test_sync_multiple_from_lead_record_list(leads, calls):
    calls.result = {"lead_record_list": {"lead_record": [JANE, SAM]}}

    synced = leads.sync_multiple([Lead(email="jane@example.org"), Lead(email="sam@example.org")])

    assert [lead.email for lead in synced] == ["jane@example.org", "sam@example.org"]


@pytest.mark.parametrize(
    "operation, args",
    [
        ("get_multiple", ({},)),
        ("merge", (Lead.key("id", 1), [Lead.key("id", 2)])),
        ("activity", (Lead.key("id", 1),)),
        ("changes", ("2026-01-01T00:00:00Z",)),
    ],
)
def test_unimplemented_operations(leads, operation, args):
    with pytest.raises(NotImplementedError):
        getattr(leads, operation)(*args)
