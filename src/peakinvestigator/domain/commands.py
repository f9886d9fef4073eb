"""Commands accepted by JobSession.run, one per mode."""

from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from peakinvestigator.domain.models import MassBounds, SessionMode
from peakinvestigator.domain.spectra import Experiment


@dataclass
class SubmitCommand:
    """Package the experiment and start a new remote job."""

    mode: ClassVar[SessionMode] = SessionMode.SUBMIT

    experiment: Experiment
    bounds: Optional[MassBounds] = None


@dataclass
class CheckCommand:
    """Ask for the status of the job recorded in the experiment metadata."""

    mode: ClassVar[SessionMode] = SessionMode.CHECK

    experiment: Experiment


@dataclass
class FetchCommand:
    """Retrieve results into the experiment once the job is done."""

    mode: ClassVar[SessionMode] = SessionMode.FETCH

    experiment: Experiment


@dataclass
class DeleteCommand:
    """Release a remote job."""

    mode: ClassVar[SessionMode] = SessionMode.DELETE

    job_id: str
    server: Optional[str] = None

    def __post_init__(self):
        if not self.job_id:
            raise ValueError("Job ID is required")


Command = Union[SubmitCommand, CheckCommand, FetchCommand, DeleteCommand]
