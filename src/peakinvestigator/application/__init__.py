"""Application layer package."""

from peakinvestigator.application.session import JobSession
from peakinvestigator.application.prep_poller import PrepPoller
from peakinvestigator.application.selectors import ConfiguredTierSelector
from peakinvestigator.application.factories import create_session_from_config

__all__ = ["JobSession", "PrepPoller", "ConfiguredTierSelector", "create_session_from_config"]
