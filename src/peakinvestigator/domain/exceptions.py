"""Domain exceptions for the PeakInvestigator job client."""

from typing import Optional


class DomainException(Exception):
    """Base exception for all domain errors."""
    pass


class TransportError(DomainException):
    """Raised when the service cannot be reached or the transfer breaks."""
    pass


class TransferError(TransportError):
    """Raised when a bulk upload or download fails."""
    pass


class ProtocolError(DomainException):
    """Raised when a response is malformed or lacks an expected field."""
    pass


class ServiceError(DomainException):
    """Raised when the service itself reports a problem."""
    pass


class RejectedError(ServiceError):
    """Raised when the response carries an explicit ``Error`` field."""

    def __init__(self, message: str, action: Optional[str] = None):
        self.action = action
        self.message = message
        prefix = f"{action} rejected" if action else "Request rejected"
        super().__init__(f"{prefix}: {message}")


class MisconfiguredError(ServiceError):
    """Raised when the endpoint answers with an HTML page instead of JSON."""
    pass


class PrepTimeoutError(DomainException, TimeoutError):
    """Raised when PREP analysis did not finish within the time budget."""
    pass


class ConfigurationError(DomainException):
    """Raised when configuration is invalid."""
    pass


class InvalidExperimentError(DomainException):
    """Raised when an experiment cannot be submitted."""
    pass


class ArchiveError(DomainException):
    """Raised when a scans archive cannot be written or read."""
    pass


class SessionError(DomainException):
    """
    Failure of one JobSession run.

    Wraps the first failing step's exception together with the mode
    it occurred in.
    """

    def __init__(self, mode: str, step: str, cause: Exception):
        self.mode = mode
        self.step = step
        self.cause = cause
        super().__init__(f"{mode} failed at {step}: {cause}")
