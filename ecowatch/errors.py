"""Exception types shared by the monitoring pipeline."""


class MonitoringError(Exception):
    """Base class for errors raised by ecowatch components."""


class FetchError(MonitoringError):
    """An environmental reading could not be obtained from the provider."""

    kind = "FetchError"

    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class ProviderUnavailable(FetchError):
    """Network failure, timeout, or a non-success HTTP status."""

    kind = "ProviderUnavailable"


class MalformedResponse(FetchError):
    """The provider answered but the body could not be interpreted."""

    kind = "MalformedResponse"


class PersistenceError(MonitoringError):
    """The record store rejected a read or write."""

    kind = "PersistenceError"
