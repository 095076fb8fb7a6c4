"""Unit tests for identities, records and notifications."""

from __future__ import annotations

import pytest

from nodewatch.models.events import AddEvent, DeleteEvent, Notification, NotificationKind, UpdateEvent
from nodewatch.models.resources import ResourceIdentity, ResourceRecord

from tests.fakes import make_record

# ---------------------------------------------------------------------------
# ResourceIdentity
# ---------------------------------------------------------------------------


class TestResourceIdentity:
    def test_parse_cluster_scoped(self) -> None:
        assert ResourceIdentity.parse("node-1") == ResourceIdentity("", "node-1")

    def test_parse_namespaced(self) -> None:
        assert ResourceIdentity.parse("kube-system/coredns") == ResourceIdentity("kube-system", "coredns")

    @pytest.mark.parametrize("value", ["", "/", "a/", "/b", "a/b/c"])
    def test_parse_rejects_malformed(self, value: str) -> None:
        with pytest.raises(ValueError, match="Invalid resource identity"):
            ResourceIdentity.parse(value)

    def test_str_round_trips_through_parse(self) -> None:
        for identity in (ResourceIdentity("", "n1"), ResourceIdentity("ns", "pod")):
            assert ResourceIdentity.parse(str(identity)) == identity

    def test_from_metadata_missing_namespace(self) -> None:
        identity = ResourceIdentity.from_metadata({"name": "worker-3"})
        assert identity.namespace == ""
        assert str(identity) == "worker-3"

    def test_ordering_is_namespace_then_name(self) -> None:
        ids = [ResourceIdentity("b", "a"), ResourceIdentity("", "z"), ResourceIdentity("a", "b")]
        assert sorted(ids) == [ResourceIdentity("", "z"), ResourceIdentity("a", "b"), ResourceIdentity("b", "a")]


# ---------------------------------------------------------------------------
# ResourceRecord
# ---------------------------------------------------------------------------


class TestResourceRecord:
    def test_from_object_reads_metadata(self) -> None:
        obj = {"kind": "Node", "metadata": {"name": "n1", "resourceVersion": "42"}, "spec": {}}
        record = ResourceRecord.from_object("Node", obj)
        assert record.identity == ResourceIdentity("", "n1")
        assert record.version == "42"
        assert record.name == "n1"
        assert record.namespace == ""
        assert record.payload is obj

    def test_from_object_without_metadata(self) -> None:
        record = ResourceRecord.from_object("Node", {})
        assert record.version == ""
        assert record.name == ""

    def test_payload_ignored_for_equality(self) -> None:
        a = ResourceRecord(ResourceIdentity("", "n1"), "1", payload={"x": 1})
        b = ResourceRecord(ResourceIdentity("", "n1"), "1", payload={"x": 2})
        assert a == b
        assert hash(a) == hash(b)

    def test_records_are_immutable(self) -> None:
        record = make_record("n1")
        with pytest.raises(AttributeError):
            record.version = "2"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Events and notifications
# ---------------------------------------------------------------------------


class TestEvents:
    def test_mutation_events_expose_record_version(self) -> None:
        record = make_record("n1", "7")
        for event in (AddEvent(record), UpdateEvent(record), DeleteEvent(record)):
            assert event.version == "7"


class TestNotification:
    def test_added_describe(self) -> None:
        n = Notification(NotificationKind.ADDED, make_record("n1", "5"))
        assert n.describe() == "[node added] n1 resource version: 5"
        assert n.old_version is None
        assert n.changed

    def test_updated_describe_contains_both_versions(self) -> None:
        n = Notification(NotificationKind.UPDATED, make_record("n1", "6"), make_record("n1", "5"))
        assert n.describe() == "[node updated] n1 old resource version: 5\tnew resource version: 6"
        assert n.old_version == "5"
        assert n.version == "6"

    def test_updated_with_same_version_is_not_changed(self) -> None:
        n = Notification(NotificationKind.UPDATED, make_record("n1", "5"), make_record("n1", "5"))
        assert not n.changed

    def test_deleted_reports_last_known_state(self) -> None:
        n = Notification(NotificationKind.DELETED, make_record("n1", "9"))
        assert n.identity == ResourceIdentity("", "n1")
        assert n.describe() == "[node deleted] n1 resource version: 9"
