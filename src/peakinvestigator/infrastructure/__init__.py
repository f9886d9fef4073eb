"""Infrastructure layer package."""

from peakinvestigator.infrastructure.config import ConfigLoader, PeakInvestigatorConfig
from peakinvestigator.infrastructure.service import RemoteServiceClient, CredentialNegotiator
from peakinvestigator.infrastructure.archive import TarArchiveCodec
from peakinvestigator.infrastructure.transfer import SFTPTransferClient

__all__ = [
    'ConfigLoader',
    'PeakInvestigatorConfig',
    'RemoteServiceClient',
    'CredentialNegotiator',
    'TarArchiveCodec',
    'SFTPTransferClient',
]
