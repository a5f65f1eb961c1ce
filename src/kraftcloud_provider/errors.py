"""
Provider Errors - Exception taxonomy for the KraftCloud provider.

Connect-stage errors abort a reconciliation cycle before the remote
instance is inspected. Remote errors are raised by the instances client
and either downgraded by Observe or propagated by Create/Update/Delete.
"""


class ProviderError(Exception):
    """Base class for all errors raised by the provider."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ProviderError):
    """The remote instance does not exist."""


class TransientError(ProviderError):
    """The remote API failed in a way that may succeed on a later cycle."""


class SpecValidationError(ProviderError):
    """The desired state is malformed and needs user correction."""


class TrackingError(ProviderError):
    """Provider config usage could not be tracked."""


class ConfigNotFoundError(ProviderError):
    """The referenced provider config could not be resolved."""


class CredentialError(ProviderError):
    """Credentials could not be extracted from the provider config."""


class ClientConstructionError(ProviderError):
    """An instances client could not be built from the credentials."""


class TransitionError(ProviderError):
    """A start, stop or delete call against the remote instance failed."""
