"""Domain models for PeakInvestigator jobs."""

import math
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List

from peakinvestigator.domain.exceptions import ProtocolError, SessionError


# Experiment metadata keys, namespaced to stay clear of unrelated metadata
META_SERVER = 'veritomyx:server'
META_USERNAME = 'veritomyx:username'
META_ACCOUNT = 'veritomyx:account'
META_JOB = 'veritomyx:job'
META_RTO = 'veritomyx:RTO'
META_PI_VERSION = 'veritomyx:PIVersion'


class JobStatus:
    """Job status values reported by STATUS."""
    RUNNING = 'Running'
    DONE = 'Done'


class PrepStatus:
    """PREP status values reported per poll."""
    READY = 'Ready'
    ANALYZING = 'Analyzing'
    ERROR = 'Error'


class SessionMode(str, Enum):
    SUBMIT = 'SUBMIT'
    CHECK = 'CHECK'
    FETCH = 'FETCH'
    DELETE = 'DELETE'


class SessionOutcome(str, Enum):
    SUBMITTED = 'submitted'
    SUBMITTED_BUT_UNCONFIRMED = 'submitted_but_unconfirmed'
    RUNNING = 'running'
    DONE = 'done'
    FETCHED = 'fetched'
    DELETED = 'deleted'
    FAILED = 'failed'


@dataclass(frozen=True)
class Account:
    """Account registered with the PeakInvestigator service."""

    server: str
    username: str
    password: str = field(repr=False)
    account_number: str

    def __post_init__(self):
        if not self.server:
            raise ValueError("Server address is required")
        if not self.username:
            raise ValueError("Username is required")

    def for_server(self, server: str) -> 'Account':
        """Same credentials against another server address."""
        return Account(
            server=server,
            username=self.username,
            password=self.password,
            account_number=self.account_number
        )


@dataclass(frozen=True)
class MassBounds:
    """Mass range admitted into the outsourced computation."""

    min_mass: float
    max_mass: float

    def __post_init__(self):
        if not (math.isfinite(self.min_mass) and math.isfinite(self.max_mass)):
            raise ValueError(f"Mass bounds must be finite, got {self.min_mass}..{self.max_mass}")
        if self.min_mass < 0:
            raise ValueError("Minimum mass cannot be negative")
        if self.min_mass > self.max_mass:
            raise ValueError(
                f"Minimum mass {self.min_mass} exceeds maximum mass {self.max_mass}"
            )


@dataclass(frozen=True)
class TransferCredentials:
    """Short-lived bulk transfer grant for one account."""

    host: str
    port: int
    directory: str
    login: str
    password: str = field(repr=False)

    def remote_path(self, *parts: str) -> str:
        """Join path parts below the remote base directory."""
        return posixpath.join(self.directory, *[str(p) for p in parts])

    def __str__(self) -> str:
        return f"{self.login}@{self.host}:{self.port}{self.directory}"


@dataclass(frozen=True)
class RtoOption:
    """Response-time objective offered by the service."""

    rto: str
    estimated_cost: Optional[str] = None


@dataclass
class PrepOutcome:
    """Result of waiting on server-side PREP analysis."""

    status: str
    scan_count: Optional[int] = None
    ms_type: Optional[str] = None
    expected_scan_count: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.status == PrepStatus.READY

    @property
    def scan_count_matches(self) -> bool:
        if self.expected_scan_count is None or self.scan_count is None:
            return True
        return self.scan_count == self.expected_scan_count


@dataclass
class Job:
    """One paid remote peak-picking job."""

    job_id: str = ''
    server: str = ''
    account_number: str = ''
    rto: Optional[str] = None
    pi_version: Optional[str] = None
    funds: Optional[str] = None
    min_mass: Optional[float] = None
    max_mass: Optional[float] = None
    status: Optional[str] = None
    status_timestamp: Optional[str] = None
    results_file: Optional[str] = None
    log_file: Optional[str] = None
    available_rtos: List[RtoOption] = field(default_factory=list)
    available_versions: List[str] = field(default_factory=list)
    retired: bool = False
    _actual_cost: Optional[str] = field(default=None, repr=False)

    @property
    def is_initialized(self) -> bool:
        return bool(self.job_id)

    @property
    def is_done(self) -> bool:
        return self.status == JobStatus.DONE

    @property
    def actual_cost(self) -> str:
        """Cost charged for the job; only known once it is done."""
        if not self.is_done:
            raise ValueError(f"Cost of job {self.job_id or '<new>'} is not known before it is done")
        return self._actual_cost

    def update_status(
        self,
        status: str,
        timestamp: Optional[str] = None,
        actual_cost: Optional[str] = None
    ) -> None:
        """
        Record a status reported by the service.

        Raises:
            ProtocolError: On an unknown status or a Done -> Running regression
        """
        if status not in (JobStatus.RUNNING, JobStatus.DONE):
            raise ProtocolError(f"Unexpected job status: {status}")
        if self.status == JobStatus.DONE and status == JobStatus.RUNNING:
            raise ProtocolError(f"Job {self.job_id} went back from Done to Running")

        self.status = status
        self.status_timestamp = timestamp
        if status == JobStatus.DONE:
            self._actual_cost = actual_cost

    def retire(self) -> None:
        self.retired = True

    def to_meta(self) -> Dict[str, Any]:
        """Job identity as namespaced experiment metadata."""
        meta = {
            META_SERVER: self.server,
            META_ACCOUNT: self.account_number,
            META_JOB: self.job_id,
        }
        if self.rto:
            meta[META_RTO] = self.rto
        if self.pi_version:
            meta[META_PI_VERSION] = self.pi_version
        return meta

    def __str__(self) -> str:
        return f"Job {self.job_id or '<new>'} ({self.status or 'unsubmitted'})"


@dataclass
class SessionResult:
    """Result of one JobSession run."""

    success: bool
    mode: SessionMode
    outcome: SessionOutcome
    job: Optional[Job] = None
    error: Optional[SessionError] = None
    warnings: List[str] = field(default_factory=list)
    acknowledgement: Optional[Dict[str, Any]] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)
