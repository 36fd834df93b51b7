"""Onboarding error taxonomy.

Validation failures are not exceptions: they come back as ``ValidationResult``
data so callers can render inline feedback. The exceptions below are reserved
for genuine faults and for commands issued against an incompatible state.
"""


class OnboardingError(Exception):
    """Base class for all onboarding errors."""


class InitializationError(OnboardingError):
    """No onboarding path matched the context, or the path lookup failed."""


class StateError(OnboardingError):
    """Operation requested on a session in an incompatible status."""


class NotFoundError(OnboardingError):
    """A session, path, tutorial or environment does not exist."""


class PersistenceError(OnboardingError):
    """The persistence collaborator failed during a transition.

    The in-memory session is left at its pre-call snapshot, so the same
    command can be retried.
    """

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        super().__init__(message or f"Persistence failure during {operation}")
