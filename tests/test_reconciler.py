from crh.models import ServiceRecord
from crh.reconciler import orphaned_secured


def _ids(records):
    return [r.id for r in records]


def test_secured_counterpart_present():
    records = [ServiceRecord(id="A"), ServiceRecord(id="A-secured")]
    assert orphaned_secured(records) == []


def test_missing_counterpart_is_deregistered():
    out = orphaned_secured([ServiceRecord(id="A", name="svc", port=1, tags=("x",))])
    assert _ids(out) == ["A-secured"]
    # deregistration-only record
    assert out[0].name == ""
    assert out[0].tags == ()
    assert out[0].check is None


def test_mixed_records():
    records = [
        ServiceRecord(id="192.0.2.2_31000"),
        ServiceRecord(id="192.0.2.2_31002-secured"),
        ServiceRecord(id="192.0.2.2_31003"),
        ServiceRecord(id="192.0.2.2_31003-secured"),
    ]
    assert _ids(orphaned_secured(records)) == ["192.0.2.2_31000-secured"]


def test_empty():
    assert orphaned_secured([]) == []


def test_records_are_hashable():
    a = ServiceRecord(id="A", name="svc", port=1, tags=("x", "y"))
    same = ServiceRecord(id="A", name="svc", port=1, tags=("x", "y"))
    assert {a, same, ServiceRecord(id="A-secured")} == {a, ServiceRecord(id="A-secured")}
