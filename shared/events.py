from enum import Enum
from dataclasses import dataclass
from typing import Optional, Union
import json


class EventKind(str, Enum):
    CREATED = "INSERT"
    REMOVED = "REMOVE"
    # Never emitted by the registry; tolerated for forward compatibility.
    MODIFIED = "MODIFY"


class StackOperation(str, Enum):
    PROVISION = "provision"
    DECOMMISSION = "decommission"


@dataclass
class ChangeEvent:
    event_kind: Union[EventKind, str]
    event_id: str
    new_image: Optional[dict] = None
    old_image: Optional[dict] = None

    @property
    def record_snapshot(self) -> Optional[dict]:
        # A removal has no post-image; its record lives in the pre-image.
        if self.event_kind == EventKind.REMOVED:
            return self.old_image
        return self.new_image

    @property
    def kind_name(self) -> str:
        return self.event_kind.value if isinstance(self.event_kind, EventKind) else str(self.event_kind)

    def to_fields(self) -> dict:
        """Encode as flat Redis stream entry fields."""
        return {
            "event_kind": self.kind_name,
            "new_image": json.dumps(self.new_image) if self.new_image is not None else "",
            "old_image": json.dumps(self.old_image) if self.old_image is not None else "",
        }

    @classmethod
    def from_fields(cls, event_id: str, fields: dict) -> "ChangeEvent":
        """
        Decode a stream entry.

        Never raises: an image that cannot be decoded is left as None so the
        reactor can treat the event as malformed.
        """
        fields = fields or {}
        kind = fields.get("event_kind", "")
        return cls(
            event_kind=EventKind(kind) if kind in [k.value for k in EventKind] else kind,
            event_id=event_id,
            new_image=_decode_image(fields.get("new_image")),
            old_image=_decode_image(fields.get("old_image")),
        )


def _decode_image(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        image = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return image if isinstance(image, dict) else None


@dataclass(frozen=True)
class StackIntent:
    tenant_name: str
    operation: StackOperation
    tenant_id: Optional[str] = None


def created_event(event_id: str, record: dict) -> ChangeEvent:
    return ChangeEvent(event_kind=EventKind.CREATED, event_id=event_id, new_image=record)


def removed_event(event_id: str, record: dict) -> ChangeEvent:
    return ChangeEvent(event_kind=EventKind.REMOVED, event_id=event_id, old_image=record)
