"""Error taxonomy for sync jobs."""


class SyncError(Exception):
    """Base sync error."""


class TransportError(SyncError):
    """Network, HTTP or payload-parsing failure talking to an external service."""


class MappingError(SyncError):
    """A source record cannot be converted to a canonical datapoint."""


class ClassificationError(SyncError):
    """Classifier call failed or returned an unusable response."""


class TargetWriteError(SyncError):
    """Create or delete against the goal tracker failed."""


class CredentialError(SyncError):
    """A configured secret could not be resolved."""


class ConfigError(SyncError):
    """Configuration file missing, unreadable or invalid."""
