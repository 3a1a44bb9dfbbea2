import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from shared.errors import BackendUnavailable, DuplicateName, InvalidInput
from shared.naming import validate_name
from .models import TenantRecord
from .registry import TenantRegistryClient

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "The tenant name already exists in the system"
REGISTER_FAILURE_MESSAGE = "Internal provision error"
DEREGISTER_FAILURE_MESSAGE = "Internal deletion error"


@dataclass
class Outcome:
    status_code: int
    message: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {'message': self.message}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RegistrationService:
    """
    Public intake for tenant registrations.

    Handles one request per call and never retries; retry policy belongs to
    the caller.
    """

    def __init__(self, registry: TenantRegistryClient, clock: Callable[[], str] = _now):
        self.registry = registry
        self.clock = clock

    def canonical_name(self, name_candidate: Optional[str]) -> str:
        """
        Raises:
            InvalidInput: with the rejection reason attached
        """
        result = validate_name(name_candidate)
        if not result.ok:
            raise InvalidInput(result.reason.message, reason=result.reason)
        return result.canonical_name

    def register(self, name_candidate: Optional[str], description: Optional[str]) -> Outcome:
        """Validate and record a new tenant."""
        try:
            if description is None:
                raise InvalidInput("Description is required")
            tenant_name = self.canonical_name(name_candidate)
        except InvalidInput as e:
            logger.info(f"Registration rejected for {name_candidate!r}: {e}")
            return Outcome(400, str(e), error='InvalidInput')

        record = TenantRecord.new(tenant_name, description)

        try:
            self.registry.put_if_absent(record)
        except DuplicateName as e:
            logger.info(f"Registration rejected, tenant already exists: {e}")
            return Outcome(400, DUPLICATE_NAME_MESSAGE, error='DuplicateName')
        except BackendUnavailable as e:
            logger.error(f"Registration failed for {tenant_name}: {e} ({e.cause!r})")
            return Outcome(500, REGISTER_FAILURE_MESSAGE, error='BackendUnavailable')

        logger.info(f"Registered tenant {record.tenant_id} as {tenant_name}")
        return Outcome(200, f"A new tenant added - {self.clock()}")

    def deregister(self, name_candidate: Optional[str]) -> Outcome:
        """Remove a tenant. Succeeds whether or not the tenant existed."""
        try:
            tenant_name = self.canonical_name(name_candidate)
        except InvalidInput as e:
            logger.info(f"Deregistration rejected for {name_candidate!r}: {e}")
            return Outcome(400, str(e), error='InvalidInput')

        try:
            removed = self.registry.delete(tenant_name)
        except BackendUnavailable as e:
            logger.error(f"Deregistration failed for {tenant_name}: {e} ({e.cause!r})")
            return Outcome(500, DEREGISTER_FAILURE_MESSAGE, error='BackendUnavailable')

        if removed:
            logger.info(f"Deregistered tenant {removed.tenant_id} ({tenant_name})")
        else:
            logger.info(f"Deregistration of unknown tenant {tenant_name} ignored")
        return Outcome(200, f"Tenant destroyed - {self.clock()}")
