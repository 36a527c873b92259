class UnrecoverableError(ValueError):
    """Base class for all unrecoverable errors in the TFS relay."""

    pass


class DecodeError(UnrecoverableError):
    """Raised when an inbound payload or event resource is malformed or incomplete."""

    pass


class InvalidParameterError(UnrecoverableError):
    """Raised when a requested parameter is unknown or cannot produce a value."""

    pass


class UnknownJobError(UnrecoverableError):
    """Raised when a build is requested for a job that is not registered."""

    pass


class InvalidDelayError(UnrecoverableError):
    """Raised when the requested scheduling delay cannot be parsed."""

    pass
