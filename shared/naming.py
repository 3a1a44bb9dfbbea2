"""
Tenant name validation and canonicalisation.

The canonical name is the join key between the registry and the stack
backend, so every component derives and parses it through this module.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Shared by registration and provisioning; changing it orphans existing stacks.
NAMESPACE_PREFIX = "tenant-"

MAX_NAME_LENGTH = 30

ALLOWED_NAME = re.compile(r"[A-Za-z0-9 -]+")


class RejectionReason(str, Enum):
    EMPTY_NAME = "empty_name"
    TOO_LONG = "too_long"
    INVALID_CHARACTERS = "invalid_characters"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.EMPTY_NAME: "Tenant name must not be empty",
    RejectionReason.TOO_LONG: f"Tenant name must be at most {MAX_NAME_LENGTH} characters long",
    RejectionReason.INVALID_CHARACTERS: (
        "Tenant name may only contain letters, digits, spaces and hyphens"
    ),
}


@dataclass(frozen=True)
class NameValidation:
    canonical_name: Optional[str] = None
    reason: Optional[RejectionReason] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


def validate_name(raw_name: Optional[str]) -> NameValidation:
    """Turn a raw candidate into a canonical name or a rejection reason."""
    candidate = (raw_name or "").strip()

    if not candidate:
        return NameValidation(reason=RejectionReason.EMPTY_NAME)
    if len(candidate) > MAX_NAME_LENGTH:
        return NameValidation(reason=RejectionReason.TOO_LONG)
    if not ALLOWED_NAME.fullmatch(candidate):
        return NameValidation(reason=RejectionReason.INVALID_CHARACTERS)

    return NameValidation(canonical_name=NAMESPACE_PREFIX + candidate.lower())


def is_canonical(name: Optional[str]) -> bool:
    """Check that a name read back from a record is a canonical tenant name."""
    if not name or not name.startswith(NAMESPACE_PREFIX):
        return False
    result = validate_name(name[len(NAMESPACE_PREFIX):])
    return result.ok and result.canonical_name == name
