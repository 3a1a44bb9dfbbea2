"""
Unit tests for ProvisioningReactor class.
Tests: process_batch, handle_event, provision, decommission
"""
import pytest
from google.api_core.exceptions import ServiceUnavailable

from provisioner.reactor import BatchReport, EventOutcome, EventStatus, ProvisioningReactor
from shared.errors import BackendUnavailable
from shared.events import ChangeEvent, EventKind, created_event, removed_event


class TestProvision:
    """Created events provision stacks."""

    def test_created_event_provisions(self, reactor, config_client, tenant_image):
        outcome = reactor.handle_event(created_event("1-0", tenant_image))

        assert outcome.status == EventStatus.PROVISIONED
        assert outcome.tenant_name == "tenant-acme co"
        assert len(config_client.deployments) == 1

    def test_replayed_created_event_converges(self, reactor, config_client, tenant_image):
        """Redelivery leaves exactly one stack and does not fail."""
        event = created_event("1-0", tenant_image)

        first = reactor.handle_event(event)
        second = reactor.handle_event(event)

        assert first.status == EventStatus.PROVISIONED
        assert second.status == EventStatus.CONVERGED
        assert not second.failed
        assert len(config_client.deployments) == 1
        assert len(config_client.create_calls) == 2

    def test_backend_failure_marks_event_failed(self, reactor, stack_manager, mocker, tenant_image):
        mocker.patch.object(
            stack_manager, 'create_stack',
            side_effect=BackendUnavailable("quota exceeded", RuntimeError("quota"))
        )

        outcome = reactor.handle_event(created_event("1-0", tenant_image))

        assert outcome.status == EventStatus.FAILED
        assert "quota exceeded" in outcome.detail


class TestDecommission:
    """Removed events decommission stacks."""

    def test_removed_event_decommissions(self, reactor, config_client, tenant_image):
        reactor.handle_event(created_event("1-0", tenant_image))

        outcome = reactor.handle_event(removed_event("2-0", tenant_image))

        assert outcome.status == EventStatus.DECOMMISSIONED
        assert config_client.deployments == {}

    def test_missing_stack_converges(self, reactor, tenant_image):
        outcome = reactor.handle_event(removed_event("2-0", tenant_image))
        assert outcome.status == EventStatus.CONVERGED

    def test_backend_failure_marks_event_failed(self, reactor, stack_manager, mocker, tenant_image):
        mocker.patch.object(stack_manager, 'delete_stack', side_effect=BackendUnavailable("denied"))

        outcome = reactor.handle_event(removed_event("2-0", tenant_image))

        assert outcome.failed


class TestSkippedEvents:
    """Events that need no stack operation."""

    def test_modified_skipped(self, reactor, config_client, tenant_image):
        event = ChangeEvent(EventKind.MODIFIED, "3-0", new_image=tenant_image, old_image=tenant_image)

        outcome = reactor.handle_event(event)

        assert outcome.status == EventStatus.SKIPPED
        assert config_client.create_calls == []
        assert config_client.delete_calls == []

    def test_unknown_kind_skipped(self, reactor, tenant_image):
        outcome = reactor.handle_event(ChangeEvent("TRUNCATE", "4-0", new_image=tenant_image))
        assert outcome.status == EventStatus.SKIPPED
        assert "TRUNCATE" in outcome.detail

    def test_malformed_skipped(self, reactor, config_client):
        outcome = reactor.handle_event(ChangeEvent(EventKind.CREATED, "5-0"))

        assert outcome.status == EventStatus.SKIPPED
        assert not outcome.failed
        assert config_client.create_calls == []


class TestProcessBatch:
    """Tests for batch processing."""

    def test_partial_failure(self, reactor, config_client, tenant_image):
        """A malformed event does not stop a valid one."""
        batch = [
            ChangeEvent(EventKind.CREATED, "1-0", new_image={"description": "no name"}),
            created_event("2-0", tenant_image),
        ]

        report = reactor.process_batch(batch)

        assert [o.status for o in report.outcomes] == [EventStatus.SKIPPED, EventStatus.PROVISIONED]
        assert len(config_client.deployments) == 1

    def test_failing_event_does_not_abort(self, reactor, stack_manager, mocker, tenant_image):
        other = dict(tenant_image, tenant_name="tenant-globex")
        create = mocker.patch.object(
            stack_manager, 'create_stack',
            side_effect=[BackendUnavailable("throttled"), mocker.MagicMock(message="ok")]
        )

        report = reactor.process_batch([created_event("1-0", tenant_image), created_event("2-0", other)])

        assert create.call_count == 2
        assert report.failed_event_ids == ["1-0"]
        assert [o.event_id for o in report.completed] == ["2-0"]

    def test_failed_tenant_holds_later_events(self, reactor, config_client, tenant_image):
        """After a failure, later events for the same tenant wait for redelivery."""
        config_client.create_failures.append(ServiceUnavailable("backend busy"))
        other = dict(tenant_image, tenant_name="tenant-globex")

        report = reactor.process_batch([
            created_event("1-0", tenant_image),
            removed_event("2-0", tenant_image),
            created_event("3-0", other),
        ])

        assert [o.status for o in report.outcomes] == [
            EventStatus.FAILED, EventStatus.FAILED, EventStatus.PROVISIONED
        ]
        assert report.failed_event_ids == ["1-0", "2-0"]
        assert config_client.delete_calls == []

    def test_unexpected_error_contained(self, reactor, stack_manager, mocker, tenant_image):
        mocker.patch.object(stack_manager, 'create_stack', side_effect=KeyError("boom"))

        report = reactor.process_batch([created_event("1-0", tenant_image)])

        assert report.failed_event_ids == ["1-0"]

    def test_preserves_delivery_order(self, reactor, stack_manager, mocker, tenant_image):
        calls = []
        mocker.patch.object(stack_manager, 'create_stack', side_effect=lambda n: calls.append(("create", n)) or mocker.MagicMock(message=""))
        mocker.patch.object(stack_manager, 'delete_stack', side_effect=lambda n: calls.append(("delete", n)) or mocker.MagicMock(message=""))

        reactor.process_batch([
            created_event("1-0", tenant_image),
            removed_event("2-0", tenant_image),
            created_event("3-0", tenant_image),
        ])

        assert calls == [
            ("create", "tenant-acme co"),
            ("delete", "tenant-acme co"),
            ("create", "tenant-acme co"),
        ]

    def test_empty_batch(self, reactor):
        report = reactor.process_batch([])
        assert report.outcomes == []
        assert report.failed == []


class TestBatchReport:
    """Tests for BatchReport helpers."""

    def test_summary(self):
        report = BatchReport([
            EventOutcome("1-0", EventStatus.PROVISIONED),
            EventOutcome("2-0", EventStatus.SKIPPED),
            EventOutcome("3-0", EventStatus.FAILED),
            EventOutcome("4-0", EventStatus.SKIPPED),
        ])

        summary = report.summary()
        assert summary["provisioned"] == 1
        assert summary["skipped"] == 2
        assert summary["failed"] == 1
        assert summary["decommissioned"] == 0
        assert report.count(EventStatus.SKIPPED) == 2
