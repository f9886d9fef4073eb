"""Protocol definitions for dependency inversion."""

from pathlib import Path
from typing import Protocol, List, Optional, Tuple, Callable

from peakinvestigator.domain.models import RtoOption, TransferCredentials
from peakinvestigator.domain.spectra import Experiment


class IArchiveCodec(Protocol):
    """Interface for bundling spectra into a transportable file."""

    def store(self, path: Path, experiment: Experiment) -> Path:
        """Write all spectra of the experiment to a single archive."""
        ...

    def load(self, path: Path) -> Experiment:
        """Read spectra back from an archive."""
        ...


class IBulkTransferClient(Protocol):
    """Interface for the authenticated bulk file channel."""

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Upload a local file to a remote path."""
        ...

    def download(self, remote_path: str, local_path: Path) -> Path:
        """Download a remote file to a local path."""
        ...

    def close(self) -> None:
        """Release the connection."""
        ...


# Builds a transfer client once credentials have been negotiated
TransferClientFactory = Callable[[TransferCredentials], IBulkTransferClient]


class ITierSelector(Protocol):
    """Interface for choosing the response-time tier and service version."""

    def choose(
        self,
        rtos: List[RtoOption],
        versions: List[str],
        funds: Optional[str]
    ) -> Tuple[str, str]:
        """Return the (RTO, PIVersion) pair to run the job with."""
        ...
