"""Error taxonomy shared by every layer.

Services raise these; HTTP handlers translate them into status codes.
Cache operations never raise, so there is no cache error type.
"""


class HustleDataError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnauthorizedError(HustleDataError):
    """The caller does not own or author the target entity."""


class UnauthenticatedError(UnauthorizedError):
    """No caller identity is present where one is required.

    A subclass of UnauthorizedError: code that only cares whether the
    caller may act can catch the parent.
    """

    def __init__(self, message: str = "No authenticated user") -> None:
        super().__init__(message)


class NotFoundError(HustleDataError):
    """A referenced id does not resolve to an existing document."""


class ValidationFailedError(HustleDataError):
    """A domain precondition was violated."""


class BackendUnavailableError(HustleDataError):
    """The document store, blob store or push backend call itself failed."""
