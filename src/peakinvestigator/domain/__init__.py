"""Domain layer package."""

from .models import (
    Account,
    Job,
    JobStatus,
    MassBounds,
    PrepOutcome,
    PrepStatus,
    RtoOption,
    SessionMode,
    SessionOutcome,
    SessionResult,
    TransferCredentials,
)
from .spectra import Experiment, Spectrum, DataProcessing
from .commands import SubmitCommand, CheckCommand, FetchCommand, DeleteCommand, Command
from .exceptions import (
    DomainException,
    TransportError,
    TransferError,
    ProtocolError,
    ServiceError,
    RejectedError,
    MisconfiguredError,
    PrepTimeoutError,
    ConfigurationError,
    InvalidExperimentError,
    ArchiveError,
    SessionError,
)
from .protocols import IArchiveCodec, IBulkTransferClient, ITierSelector, TransferClientFactory

__all__ = [
    # Models
    "Account",
    "Job",
    "JobStatus",
    "MassBounds",
    "PrepOutcome",
    "PrepStatus",
    "RtoOption",
    "SessionMode",
    "SessionOutcome",
    "SessionResult",
    "TransferCredentials",
    "Experiment",
    "Spectrum",
    "DataProcessing",
    # Commands
    "SubmitCommand",
    "CheckCommand",
    "FetchCommand",
    "DeleteCommand",
    "Command",
    # Exceptions
    "DomainException",
    "TransportError",
    "TransferError",
    "ProtocolError",
    "ServiceError",
    "RejectedError",
    "MisconfiguredError",
    "PrepTimeoutError",
    "ConfigurationError",
    "InvalidExperimentError",
    "ArchiveError",
    "SessionError",
    # Protocols
    "IArchiveCodec",
    "IBulkTransferClient",
    "ITierSelector",
    "TransferClientFactory",
]
