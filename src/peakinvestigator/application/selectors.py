"""Non-interactive response-time tier and version selection."""

from typing import List, Optional, Tuple

from peakinvestigator.domain.exceptions import ConfigurationError
from peakinvestigator.domain.models import RtoOption
from peakinvestigator.shared.logging import get_logger

logger = get_logger(__name__)


class ConfiguredTierSelector:
    """
    Picks the RTO and PIVersion from configuration.

    Falls back to the first option the service offered when a value is
    not configured.
    """

    def __init__(self, rto: Optional[str] = None, pi_version: Optional[str] = None):
        self.rto = rto
        self.pi_version = pi_version

    def choose(
        self,
        rtos: List[RtoOption],
        versions: List[str],
        funds: Optional[str]
    ) -> Tuple[str, str]:
        offered_rtos = [option.rto for option in rtos]

        rto = self._pick('RTO', self.rto, offered_rtos)
        version = self._pick('PIVersion', self.pi_version, versions)

        estimate = next((o.estimated_cost for o in rtos if o.rto == rto), None)
        logger.info(
            f"Using {rto} with PeakInvestigator {version} "
            f"(funds: {funds or 'unknown'}, estimated cost: {estimate or 'unknown'})"
        )
        return rto, version

    @staticmethod
    def _pick(name: str, configured: Optional[str], offered: List[str]) -> str:
        if configured:
            if offered and configured not in offered:
                logger.warning(f"Configured {name} {configured} not offered by service ({', '.join(offered)})")
            return configured
        if offered:
            return offered[0]
        raise ConfigurationError(f"No {name} configured and none offered by the service")
