"""
SFTP bulk transfer client implementation.

Infrastructure layer for the data-plane channel, using paramiko.
"""

import logging
import socket
from pathlib import Path
from typing import Optional

import paramiko

from peakinvestigator.domain.exceptions import TransferError
from peakinvestigator.domain.models import TransferCredentials


def normalize_fingerprint(fingerprint: str) -> str:
    return fingerprint.replace(':', '').strip().lower()


class SFTPTransferClient:
    """
    Uploads and downloads scan archives over SFTP.

    Connects lazily on first use; one instance serves one session and is
    closed when the session is done with it.
    """

    def __init__(
        self,
        credentials: TransferCredentials,
        host_key_fingerprint: Optional[str] = None,
        allow_unverified_host_key: bool = False,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize SFTP client.

        Args:
            credentials: Negotiated transfer credentials
            host_key_fingerprint: Expected server key fingerprint (hex, colons allowed)
            allow_unverified_host_key: Accept any server key when no fingerprint is set
            timeout: Socket timeout in seconds
            logger: Logger instance
        """
        self.credentials = credentials
        self.host_key_fingerprint = (
            normalize_fingerprint(host_key_fingerprint) if host_key_fingerprint else None
        )
        self.allow_unverified_host_key = allow_unverified_host_key
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self._transport: Optional[paramiko.Transport] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    def __enter__(self) -> 'SFTPTransferClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _connect(self) -> paramiko.SFTPClient:
        if self._sftp is not None:
            return self._sftp

        host, port = self.credentials.host, self.credentials.port
        if not self.host_key_fingerprint and not self.allow_unverified_host_key:
            error_msg = (
                f"Refusing to send credentials to {host}:{port}: no host key fingerprint configured "
                f"(set sftp_host_key, or sftp_insecure to skip the check)"
            )
            self.logger.error(error_msg)
            raise TransferError(error_msg)

        self.logger.info(f"Connecting to SFTP {host}:{port}")

        try:
            sock = socket.create_connection((host, port), timeout=self.timeout)
            transport = paramiko.Transport(sock)
            transport.start_client(timeout=self.timeout)
            self._transport = transport

            self._verify_host_key(transport)

            transport.auth_password(self.credentials.login, self.credentials.password)
            self._sftp = paramiko.SFTPClient.from_transport(transport)

        except (paramiko.SSHException, OSError) as e:
            self.close()
            error_msg = f"SFTP connection to {host}:{port} failed: {e}"
            self.logger.error(error_msg)
            raise TransferError(error_msg) from e

        return self._sftp

    def _verify_host_key(self, transport: paramiko.Transport) -> None:
        if not self.host_key_fingerprint:
            self.logger.warning(f"Host key of {self.credentials.host} not verified (sftp_insecure is set)")
            return

        actual = transport.get_remote_server_key().get_fingerprint().hex()
        if actual != self.host_key_fingerprint:
            raise paramiko.SSHException(
                f"Host key mismatch for {self.credentials.host}: got {actual}"
            )

    def upload(self, local_path: Path, remote_path: str) -> None:
        """Upload file to the remote directory."""
        local_path = Path(local_path)
        if not local_path.exists():
            raise FileNotFoundError(f"File not found: {local_path}")

        sftp = self._connect()
        size = local_path.stat().st_size
        self.logger.info(f"Uploading {local_path} -> {remote_path} ({size} bytes)")

        try:
            sftp.put(str(local_path), remote_path)
        except (paramiko.SSHException, OSError) as e:
            error_msg = f"Upload of {local_path.name} failed: {e}"
            self.logger.error(error_msg)
            raise TransferError(error_msg) from e

        self.logger.info(f"Upload completed: {remote_path}")

    def download(self, remote_path: str, local_path: Path) -> Path:
        """Download file from the remote directory."""
        local_path = Path(local_path)
        sftp = self._connect()
        self.logger.info(f"Downloading {remote_path} -> {local_path}")

        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            sftp.get(remote_path, str(local_path))
        except (paramiko.SSHException, OSError) as e:
            error_msg = f"Download of {remote_path} failed: {e}"
            self.logger.error(error_msg)
            raise TransferError(error_msg) from e

        self.logger.info(f"Download completed: {local_path}")
        return local_path

    def close(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        if self._transport is not None:
            self._transport.close()
            self._transport = None
