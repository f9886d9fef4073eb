"""Factory wiring a JobSession from configuration."""

from typing import Optional

import requests

from peakinvestigator.application.prep_poller import PrepPoller
from peakinvestigator.application.selectors import ConfiguredTierSelector
from peakinvestigator.application.session import JobSession
from peakinvestigator.domain.models import TransferCredentials
from peakinvestigator.domain.protocols import IArchiveCodec, ITierSelector
from peakinvestigator.infrastructure.archive import TarArchiveCodec
from peakinvestigator.infrastructure.config import PeakInvestigatorConfig
from peakinvestigator.infrastructure.service import CredentialNegotiator, RemoteServiceClient
from peakinvestigator.infrastructure.transfer import SFTPTransferClient
from peakinvestigator.shared.logging import get_logger

logger = get_logger(__name__)


def create_session_from_config(
    config: PeakInvestigatorConfig,
    tier_selector: Optional[ITierSelector] = None,
    archive_codec: Optional[IArchiveCodec] = None,
    http_session: Optional[requests.Session] = None
) -> JobSession:
    """
    Create a JobSession with the default collaborators.

    Args:
        config: Loaded configuration
        tier_selector: RTO/version chooser (defaults to the configured values)
        archive_codec: Scans archive codec (defaults to TarArchiveCodec)
        http_session: Optional requests session for the control plane

    Returns:
        Ready-to-run session

    Raises:
        ConfigurationError: If account credentials are missing
    """
    account = config.to_account()

    client = RemoteServiceClient(
        server=config.server,
        api_version=config.api_version,
        timeout=config.request_timeout,
        session=http_session
    )

    def transfer_factory(credentials: TransferCredentials) -> SFTPTransferClient:
        return SFTPTransferClient(
            credentials,
            host_key_fingerprint=config.sftp_host_key,
            allow_unverified_host_key=config.sftp_insecure,
            timeout=config.transfer_timeout
        )

    if config.sftp_insecure and not config.sftp_host_key:
        logger.warning("SFTP host keys will not be verified (sftp_insecure is set)")

    logger.debug(f"Session for {account.username}@{config.server}, work dir {config.work_dir}")

    return JobSession(
        account=account,
        client=client,
        archive_codec=archive_codec or TarArchiveCodec(),
        transfer_factory=transfer_factory,
        tier_selector=tier_selector or ConfiguredTierSelector(config.rto, config.pi_version),
        negotiator=CredentialNegotiator(client),
        poller=PrepPoller(client),
        work_dir=config.work_dir,
        prep_check_interval=config.prep_check_interval,
        prep_timeout=config.prep_timeout
    )
