"""Exception hierarchy for the TV time client."""


class TVTimeError(Exception):
    """Base class for all TV time client errors."""


class ValidationError(TVTimeError):
    """Raised when user input breaks a naming or value rule.

    The operation is aborted before any state is touched.
    """


class DateParseError(TVTimeError, ValueError):
    """Raised when a stored check date is not a valid ISO date."""


class RemoteUnavailable(TVTimeError):
    """Raised when the remote family document cannot be read or written."""
