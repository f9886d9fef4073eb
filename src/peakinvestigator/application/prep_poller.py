"""Bounded polling of server-side PREP analysis."""

import logging
import time
from typing import Optional

from peakinvestigator.domain.exceptions import PrepTimeoutError, ProtocolError
from peakinvestigator.domain.models import Account, PrepOutcome, PrepStatus
from peakinvestigator.infrastructure.service.client import PREP, RemoteServiceClient, require_field
from peakinvestigator.shared.types import SleepFunc


def _optional_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class PrepPoller:
    """
    Waits for the service to finish validating an uploaded archive.

    The only component that re-issues a request: it polls PREP every
    ``check_interval`` seconds until the status leaves ``Analyzing`` or the
    ``timeout`` budget runs out.
    """

    def __init__(
        self,
        client: RemoteServiceClient,
        sleep: SleepFunc = time.sleep,
        logger: Optional[logging.Logger] = None
    ):
        self.client = client
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def poll(self, account: Account, remote_file: str) -> PrepOutcome:
        """Issue a single PREP request."""
        response = self.client.with_server(account.server).call(
            PREP,
            account,
            {'ID': account.account_number, 'File': remote_file}
        )
        status = require_field(response, 'Status')

        if status != PrepStatus.READY:
            return PrepOutcome(status=status)

        return PrepOutcome(
            status=status,
            scan_count=_optional_int(response.get('ScanCount')),
            ms_type=response.get('MSType'),
        )

    def wait_for_prep(
        self,
        account: Account,
        remote_file: str,
        check_interval: float,
        timeout: float,
        expected_scan_count: Optional[int] = None
    ) -> PrepOutcome:
        """
        Poll PREP until the uploaded file is ready.

        Args:
            account: Account that owns the uploaded file
            remote_file: Name of the uploaded archive
            check_interval: Seconds to wait between polls
            timeout: Total seconds to keep polling
            expected_scan_count: Number of scans submitted, checked against the report

        Returns:
            Ready outcome with scan count and detected spectrum type

        Raises:
            ProtocolError: If PREP reports anything other than Ready or Analyzing
            PrepTimeoutError: If still Analyzing once the budget is spent
        """
        if check_interval <= 0:
            raise ValueError("check_interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        remaining = timeout
        polls = 0

        while remaining > 0:
            outcome = self.poll(account, remote_file)
            polls += 1

            if outcome.status == PrepStatus.READY:
                outcome.expected_scan_count = expected_scan_count
                if not outcome.scan_count_matches:
                    warning = (
                        f"PREP reported {outcome.scan_count} scans for {remote_file}, "
                        f"{expected_scan_count} were submitted"
                    )
                    self.logger.warning(warning)
                    outcome.warnings.append(warning)
                self.logger.info(
                    f"PREP ready for {remote_file}: {outcome.scan_count} scans, "
                    f"type {outcome.ms_type} (after {polls} polls)"
                )
                return outcome

            if outcome.status != PrepStatus.ANALYZING:
                self.logger.error(f"PREP of {remote_file} returned status {outcome.status}")
                raise ProtocolError("prep failed")

            remaining -= check_interval
            if remaining <= 0:
                break

            self.logger.info(
                f"Waiting for PREP analysis of {remote_file} to complete "
                f"({remaining:.0f}s left)"
            )
            self._sleep(check_interval)

        raise PrepTimeoutError(
            f"PREP analysis of {remote_file} did not finish within {timeout:.0f}s ({polls} polls)"
        )
