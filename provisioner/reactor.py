"""
Provisioning Reactor.

Turns registry change events into stack operations. Events in a batch are
handled one at a time in delivery order, and a failing event never stops the
rest of the batch.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Set

from shared.errors import AlreadyConverged, BackendUnavailable, MalformedEvent
from shared.events import ChangeEvent, StackIntent, StackOperation
from .intents import IntentClassifier
from .stack_manager import StackManagerClient

logger = logging.getLogger(__name__)


class EventStatus(str, Enum):
    PROVISIONED = "provisioned"
    DECOMMISSIONED = "decommissioned"
    CONVERGED = "converged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class EventOutcome:
    event_id: str
    status: EventStatus
    tenant_name: Optional[str] = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.status == EventStatus.FAILED


@dataclass
class BatchReport:
    outcomes: List[EventOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[EventOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def completed(self) -> List[EventOutcome]:
        """Outcomes that need no redelivery, skipped events included."""
        return [o for o in self.outcomes if not o.failed]

    @property
    def failed_event_ids(self) -> List[str]:
        return [o.event_id for o in self.failed]

    def count(self, status: EventStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def summary(self) -> dict:
        return {status.value: self.count(status) for status in EventStatus}


class ProvisioningReactor:
    def __init__(self, stack_manager: StackManagerClient, classifier: IntentClassifier = None):
        self.stack_manager = stack_manager
        self.classifier = classifier or IntentClassifier()

    def process_batch(self, events: Iterable[ChangeEvent]) -> BatchReport:
        events = list(events)
        logger.info(f"Beginning to process {len(events)} records...")

        report = BatchReport()
        # Tenants with a failed event; their later events must wait for redelivery
        blocked = set()
        for event in events:
            outcome = self.handle_event(event, blocked)
            if outcome.failed and outcome.tenant_name:
                blocked.add(outcome.tenant_name)
            report.outcomes.append(outcome)

        logger.info(f"Stream processing complete: {report.summary()}")
        if report.failed:
            logger.warning(f"{len(report.failed)} events failed and will be redelivered: {report.failed_event_ids}")
        return report

    def handle_event(self, event: ChangeEvent, blocked: Set[str] = frozenset()) -> EventOutcome:
        """
        Process one event. Never raises.

        Events for a tenant in `blocked` are failed without running, so they
        are redelivered after the earlier failure instead of overtaking it.
        """
        logger.info(f"Event ID: {event.event_id}, Event Name: {event.kind_name}")

        try:
            intent = self.classifier.classify(event)
        except MalformedEvent as e:
            logger.error(f"Skipping malformed event: {e}")
            return EventOutcome(event.event_id, EventStatus.SKIPPED, detail=e.reason)

        if intent is None:
            if event.event_kind in self.classifier.IGNORED_KINDS:
                reason = f"{event.kind_name} events need no stack operation"
            else:
                reason = f"unknown event kind {event.kind_name!r}"
            logger.info(f"Skipping event {event.event_id}: {reason}")
            return EventOutcome(event.event_id, EventStatus.SKIPPED, detail=reason)

        if intent.tenant_name in blocked:
            logger.warning(f"Holding event {event.event_id}: an earlier event for {intent.tenant_name} failed")
            return EventOutcome(event.event_id, EventStatus.FAILED, intent.tenant_name,
                                "held behind an earlier failed event for this tenant")

        try:
            return self.apply(event.event_id, intent)
        except Exception as e:
            logger.exception(f"Unexpected error handling event {event.event_id}")
            return EventOutcome(event.event_id, EventStatus.FAILED, intent.tenant_name, str(e))

    def apply(self, event_id: str, intent: StackIntent) -> EventOutcome:
        if intent.operation == StackOperation.PROVISION:
            logger.info(f"CREATION COMMAND RECEIVED FOR TENANTID: {intent.tenant_id}, TENANTNAME: {intent.tenant_name}")
            return self.provision(event_id, intent.tenant_name)

        logger.info(f"DELETION COMMAND RECEIVED FOR TENANTID: {intent.tenant_id}, TENANTNAME: {intent.tenant_name}")
        return self.decommission(event_id, intent.tenant_name)

    def provision(self, event_id: str, tenant_name: str) -> EventOutcome:
        """Create the tenant's stack; an existing stack counts as converged."""
        try:
            result = self.stack_manager.create_stack(tenant_name)
        except AlreadyConverged as e:
            logger.info(f"Stack already provisioned for {tenant_name}: {e}")
            return EventOutcome(event_id, EventStatus.CONVERGED, tenant_name, str(e))
        except BackendUnavailable as e:
            logger.error(f"Provisioning failed for {tenant_name}: {e} ({e.cause!r})")
            return EventOutcome(event_id, EventStatus.FAILED, tenant_name, str(e))

        logger.info(f"Provisioned stack for {tenant_name}: {result.message}")
        return EventOutcome(event_id, EventStatus.PROVISIONED, tenant_name, result.message)

    def decommission(self, event_id: str, tenant_name: str) -> EventOutcome:
        """Delete the tenant's stack; a missing stack counts as converged."""
        try:
            result = self.stack_manager.delete_stack(tenant_name)
        except AlreadyConverged as e:
            logger.info(f"Stack already absent for {tenant_name}: {e}")
            return EventOutcome(event_id, EventStatus.CONVERGED, tenant_name, str(e))
        except BackendUnavailable as e:
            logger.error(f"Decommissioning failed for {tenant_name}: {e} ({e.cause!r})")
            return EventOutcome(event_id, EventStatus.FAILED, tenant_name, str(e))

        logger.info(f"Decommissioned stack for {tenant_name}: {result.message}")
        return EventOutcome(event_id, EventStatus.DECOMMISSIONED, tenant_name, result.message)
