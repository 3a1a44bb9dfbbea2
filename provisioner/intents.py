from dataclasses import dataclass
from typing import Optional

from shared.errors import MalformedEvent
from shared.events import ChangeEvent, EventKind, StackIntent, StackOperation
from shared.naming import is_canonical


@dataclass
class IntentRule:
    event_kind: EventKind
    image: str
    operation: StackOperation


class IntentClassifier:
    """Maps a change event onto the stack operation it calls for."""

    RULES = [
        IntentRule(EventKind.CREATED, "new_image", StackOperation.PROVISION),
        # Removals only carry a pre-image.
        IntentRule(EventKind.REMOVED, "old_image", StackOperation.DECOMMISSION),
    ]

    # Kinds that are known but deliberately produce no stack operation.
    IGNORED_KINDS = [EventKind.MODIFIED]

    def rule_for(self, event_kind) -> Optional[IntentRule]:
        for rule in self.RULES:
            if rule.event_kind == event_kind:
                return rule
        return None

    def classify(self, event: ChangeEvent) -> Optional[StackIntent]:
        """
        Returns None for events that need no stack operation.

        Raises:
            MalformedEvent: the image the operation depends on is missing or
                does not name a canonical tenant
        """
        rule = self.rule_for(event.event_kind)
        if rule is None:
            return None

        image = getattr(event, rule.image)
        if not image:
            raise MalformedEvent(event.event_id, f"{event.kind_name} event has no {rule.image}")

        tenant_name = image.get("tenant_name")
        if not isinstance(tenant_name, str) or not tenant_name:
            raise MalformedEvent(event.event_id, f"{rule.image} has no tenant_name")
        if not is_canonical(tenant_name):
            raise MalformedEvent(event.event_id, f"'{tenant_name}' is not a canonical tenant name")

        return StackIntent(
            tenant_name=tenant_name,
            operation=rule.operation,
            tenant_id=image.get("tenant_id")
        )
