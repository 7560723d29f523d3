"""Exception taxonomy for the sentiment pipeline."""


class PinpointError(Exception):
    """Base class for pipeline errors."""


class CollectionError(PinpointError):
    """A collector could not produce raw data (no network, no data, rejected query, missing page element)."""


class SummarizationError(PinpointError):
    """Both completion attempts failed or the reply never validated."""


class PersistenceError(PinpointError):
    """The store rejected a read or write."""
