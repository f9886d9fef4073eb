"""Bulk transfer infrastructure."""

from peakinvestigator.infrastructure.transfer.sftp_client import SFTPTransferClient

__all__ = ['SFTPTransferClient']
