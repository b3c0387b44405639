import pytest

from callsync.adapters.hubspot.associations import AssociationPipeline
from callsync.adapters.hubspot.client import HubspotError
from callsync.domain.models import AssociationPair
from callsync.domain.stages import AssociationStatus, AssociationTypeId
from fakes import FakeHubspot


def _pairs(count: int) -> list[AssociationPair]:
    return [
        AssociationPair(f"call-{i}", f"contact-{i}", AssociationTypeId.CALL_TO_CONTACT)
        for i in range(count)
    ]


def test_typed_batch_used_first() -> None:
    client = FakeHubspot()
    outcomes = AssociationPipeline(client).link_objects("calls", "contacts", _pairs(2))
    assert [o.status for o in outcomes] == [AssociationStatus.SUCCESS] * 2
    (from_type, to_type, inputs), = client.requests_of("typed_batch")
    assert (from_type, to_type) == ("calls", "contacts")
    assert inputs[0]["types"] == [{"associationCategory": "HUBSPOT_DEFINED", "associationTypeId": 219}]
    assert client.requests_of("default_batch") == []


def test_default_batch_when_typed_fails() -> None:
    client = FakeHubspot()
    client.fail_methods.add("batch_create_associations")
    outcomes = AssociationPipeline(client).link_objects("calls", "contacts", _pairs(3))
    assert all(o.succeeded for o in outcomes)
    (_, _, inputs), = client.requests_of("default_batch")
    assert inputs[0] == {"from": {"id": "call-0"}, "to": {"id": "contact-0"}}
    assert client.requests_of("single") == []


def test_individual_when_both_batches_fail() -> None:
    client = FakeHubspot()
    client.fail_methods.update({"batch_create_associations", "batch_associate_default"})
    outcomes = AssociationPipeline(client).link_objects("calls", "contacts", _pairs(3))
    assert [o.to_id for o in outcomes] == ["contact-0", "contact-1", "contact-2"]
    assert len(client.requests_of("single")) == 3


def test_individual_failure_is_fatal() -> None:
    client = FakeHubspot()
    client.fail_methods.update(
        {"batch_create_associations", "batch_associate_default", "associate_default"}
    )
    with pytest.raises(HubspotError):
        AssociationPipeline(client).link_objects("calls", "contacts", _pairs(2))


def test_batches_are_chunked() -> None:
    client = FakeHubspot()
    outcomes = AssociationPipeline(client, batch_size=2).link_objects("calls", "contacts", _pairs(5))
    assert len(outcomes) == 5
    assert [len(inputs) for _, _, inputs in client.requests_of("typed_batch")] == [2, 2, 1]


def test_multi_status_errors_marked_per_pair() -> None:
    class PartialClient(FakeHubspot):
        def batch_create_associations(self, from_type, to_type, inputs):
            return {
                "status": "COMPLETE",
                "results": [],
                "errors": [{"message": "no such contact", "context": {"toObjectId": ["contact-1"]}}],
            }

    outcomes = AssociationPipeline(PartialClient()).link_objects("calls", "contacts", _pairs(2))
    assert [o.status for o in outcomes] == [AssociationStatus.SUCCESS, AssociationStatus.ERROR]


def test_link_call_groups_by_object_type() -> None:
    client = FakeHubspot()
    result = AssociationPipeline(client).link_call("call-1", contact_id="101", company_id="501")
    assert result.contact is not None and result.contact.to_id == "101"
    assert result.company is not None and result.company.to_id == "501"
    groups = [(f, t) for f, t, _ in client.requests_of("typed_batch")]
    assert groups == [("calls", "contacts"), ("calls", "companies")]
    company_inputs = client.requests_of("typed_batch")[1][2]
    assert company_inputs[0]["types"][0]["associationTypeId"] == 220


def test_link_call_without_targets_is_noop() -> None:
    client = FakeHubspot()
    result = AssociationPipeline(client).link_call("call-1")
    assert result.contact is None and result.company is None
    assert client.requests == []


def test_link_call_keeps_outcomes_apart_when_ids_collide() -> None:
    class CompanyRejected(FakeHubspot):
        def batch_create_associations(self, from_type, to_type, inputs):
            response = super().batch_create_associations(from_type, to_type, inputs)
            if to_type == "companies":
                response["errors"] = [{"message": "rejected", "context": {"toObjectId": ["777"]}}]
            return response

    result = AssociationPipeline(CompanyRejected()).link_call("call-1", contact_id="777", company_id="777")
    assert result.contact is not None and result.contact.succeeded
    assert result.company is not None and result.company.status is AssociationStatus.ERROR


def test_link_grouped_returns_outcomes_per_type_pair() -> None:
    client = FakeHubspot()
    grouped = AssociationPipeline(client).link_grouped(
        [
            ("calls", "contacts", AssociationPair("call-1", "5", AssociationTypeId.CALL_TO_CONTACT)),
            ("calls", "companies", AssociationPair("call-1", "5", AssociationTypeId.CALL_TO_COMPANY)),
            ("calls", "contacts", AssociationPair("call-2", "6", AssociationTypeId.CALL_TO_CONTACT)),
        ]
    )
    assert list(grouped) == [("calls", "contacts"), ("calls", "companies")]
    assert [o.to_id for o in grouped[("calls", "contacts")]] == ["5", "6"]
    assert len(client.requests_of("typed_batch")) == 2
