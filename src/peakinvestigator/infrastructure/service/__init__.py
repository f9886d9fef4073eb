"""PeakInvestigator control-plane client."""

from peakinvestigator.infrastructure.service.client import RemoteServiceClient, require_field
from peakinvestigator.infrastructure.service.credentials import CredentialNegotiator

__all__ = ['RemoteServiceClient', 'CredentialNegotiator', 'require_field']
