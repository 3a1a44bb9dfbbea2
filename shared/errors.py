from typing import Optional


class OnboardingError(Exception):
    """Base class for tenant onboarding failures."""


class InvalidInput(OnboardingError):
    def __init__(self, message: str, reason=None):
        self.reason = reason
        super().__init__(message)


class DuplicateName(OnboardingError):
    def __init__(self, tenant_name: str):
        self.tenant_name = tenant_name
        super().__init__(f"Tenant name '{tenant_name}' is already registered")


class BackendUnavailable(OnboardingError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class AlreadyConverged(OnboardingError):
    """The external system is already in the requested state."""

    def __init__(self, tenant_name: str, reason: str = None):
        self.tenant_name = tenant_name
        super().__init__(reason or f"Stack for '{tenant_name}' already converged")


class StackAlreadyExists(AlreadyConverged):
    def __init__(self, tenant_name: str):
        super().__init__(tenant_name, f"Stack for '{tenant_name}' already exists")


class StackNotFound(AlreadyConverged):
    def __init__(self, tenant_name: str):
        super().__init__(tenant_name, f"Stack for '{tenant_name}' does not exist")


class MalformedEvent(OnboardingError):
    def __init__(self, event_id: str, reason: str):
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"Malformed event {event_id}: {reason}")
