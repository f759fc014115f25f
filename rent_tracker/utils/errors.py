"""Error types raised by the rent check engine and its collaborators.

Every error below is caught at the per-property boundary of the rent checker
and turned into the ``error`` string of that property's result.
"""


class RentTrackerError(Exception):
    """Base class for all domain errors."""


class NotFound(RentTrackerError):
    pass


class NotConfigured(RentTrackerError):
    pass


class InvalidSchedule(RentTrackerError, ValueError):
    pass


class UpstreamError(RentTrackerError):
    """The bank data aggregator answered with an error or garbage."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnauthorized(UpstreamError):
    pass


class UpstreamForbidden(UpstreamError):
    pass


class UpstreamUnreachable(UpstreamError):
    pass


class NotificationFailed(RentTrackerError):
    def __init__(self, recipient, message):
        super().__init__(f"Could not send mail to {recipient}: {message}")
        self.recipient = recipient
