"""Exception hierarchy for the intake pipeline.

Extraction degradations are not exceptions: a field that fails to match only
lowers the confidence score. Everything here is either rejected at the upload
boundary or caught at the resolver/orchestrator boundary.
"""


class PickupIntakeError(Exception):
    """Base class for all intake errors."""


class InvalidUploadError(PickupIntakeError):
    """Uploaded file has the wrong type or exceeds the size ceiling."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class UnreadableDocumentError(PickupIntakeError):
    """The document could not be decoded or has no selectable text."""


class RegistryError(PickupIntakeError):
    """Base class for registry API failures."""


class RegistryUnavailableError(RegistryError):
    """The registry could not be reached, timed out, or answered with a 5xx."""


class RegistryWriteError(RegistryError):
    """The registry refused a create request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(PickupIntakeError):
    """The registry is missing data the creation flow cannot do without."""
