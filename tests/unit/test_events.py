"""
Unit tests for change events.
Tests: ChangeEvent.record_snapshot, to_fields, from_fields
"""
import json
import pytest
from shared.events import (
    ChangeEvent,
    EventKind,
    created_event,
    removed_event
)


class TestEventKind:
    """Tests for EventKind enum."""

    def test_stream_names(self):
        assert EventKind.CREATED.value == "INSERT"
        assert EventKind.REMOVED.value == "REMOVE"
        assert EventKind.MODIFIED.value == "MODIFY"


class TestRecordSnapshot:
    """The snapshot comes from the post-image except for removals."""

    def test_created_uses_new_image(self, tenant_image):
        event = created_event("1-0", tenant_image)
        assert event.record_snapshot == tenant_image

    def test_removed_uses_old_image(self, tenant_image):
        event = removed_event("1-0", tenant_image)
        assert event.new_image is None
        assert event.record_snapshot == tenant_image

    def test_modified_uses_new_image(self, tenant_image):
        event = ChangeEvent(EventKind.MODIFIED, "1-0", new_image=tenant_image, old_image={})
        assert event.record_snapshot == tenant_image


class TestStreamFields:
    """Tests for encoding to and decoding from stream entries."""

    def test_to_fields_leaves_missing_image_empty(self, tenant_image):
        fields = created_event("", tenant_image).to_fields()

        assert fields["event_kind"] == "INSERT"
        assert json.loads(fields["new_image"]) == tenant_image
        assert fields["old_image"] == ""

    def test_from_fields_decodes_removal(self, tenant_image):
        fields = {"event_kind": "REMOVE", "new_image": "", "old_image": json.dumps(tenant_image)}
        event = ChangeEvent.from_fields("1700000000000-0", fields)

        assert event.event_kind == EventKind.REMOVED
        assert event.event_id == "1700000000000-0"
        assert event.old_image == tenant_image
        assert event.new_image is None

    def test_unknown_kind_kept_as_string(self):
        event = ChangeEvent.from_fields("1-0", {"event_kind": "TRUNCATE"})
        assert event.event_kind == "TRUNCATE"
        assert event.kind_name == "TRUNCATE"

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "null", "42"])
    def test_undecodable_image_is_none(self, raw):
        event = ChangeEvent.from_fields("1-0", {"event_kind": "INSERT", "new_image": raw})
        assert event.new_image is None

    def test_missing_fields(self):
        event = ChangeEvent.from_fields("1-0", None)
        assert event.event_kind == ""
        assert event.record_snapshot is None
