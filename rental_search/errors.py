# rental_search/errors.py

"""Exception taxonomy shared by the extraction engine.

Only :class:`ConfigError` is fatal for a whole run.  Everything raised
inside a scraper task is caught at the task boundary by the
orchestrator, logged, and reported alongside the other sources'
results.
"""


class RentalSearchError(Exception):
    """Base class for every error raised by rental_search."""


class ConfigError(RentalSearchError):
    """Search criteria are missing or malformed."""


class ValidationError(RentalSearchError, ValueError):
    """A value object was built with invalid field values."""


class SessionError(RentalSearchError):
    """The browsing session is unusable for the scraper that owns it."""


class ExtractionTimeout(RentalSearchError):
    """A bounded wait for page content ran out."""

    def __init__(self, selector: str, timeout: float) -> None:
        super().__init__(
            f"Timed out after {timeout:g}s waiting for {selector!r}"
        )
        self.selector = selector
        self.timeout = timeout


class ParseError(RentalSearchError):
    """An expected field or pattern is absent from a page or payload."""


class TrafficCaptureEmpty(RentalSearchError):
    """No usable API traffic was captured by the browsing session."""
