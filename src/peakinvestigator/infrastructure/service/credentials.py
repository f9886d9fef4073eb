"""Bulk transfer credential negotiation."""

import logging
from typing import Any, Optional

from peakinvestigator.domain.exceptions import ProtocolError
from peakinvestigator.domain.models import Account, TransferCredentials
from peakinvestigator.infrastructure.service.client import (
    RemoteServiceClient,
    SFTP,
    require_field,
)


def parse_port(value: Any) -> int:
    """
    Validate the port reported by the service.

    Raises:
        ProtocolError: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise ProtocolError(f"invalid port {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ProtocolError(f"invalid port {value!r}")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ProtocolError(f"invalid port {value!r}")
    return value


class CredentialNegotiator:
    """Fetches transient SFTP credentials for an account."""

    def __init__(
        self,
        client: RemoteServiceClient,
        logger: Optional[logging.Logger] = None
    ):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def negotiate(self, account: Account) -> TransferCredentials:
        """
        Request bulk transfer credentials.

        Args:
            account: Account to request credentials for

        Returns:
            Credentials valid for the current session only

        Raises:
            ProtocolError: If a field is missing or the port is invalid
            ServiceError, TransportError: Propagated from the client
        """
        self.logger.info(f"Requesting transfer credentials for account {account.account_number}")

        response = self.client.with_server(account.server).call(
            SFTP,
            account,
            {'ID': account.account_number}
        )

        credentials = TransferCredentials(
            host=require_field(response, 'Host'),
            port=parse_port(require_field(response, 'Port', (int, str))),
            directory=require_field(response, 'Directory'),
            login=require_field(response, 'Login'),
            password=require_field(response, 'Password'),
        )

        self.logger.info(f"Transfer channel: {credentials.host}:{credentials.port}")
        return credentials
