"""Configuration infrastructure."""

from peakinvestigator.infrastructure.config.loader import ConfigLoader, PeakInvestigatorConfig

__all__ = ['ConfigLoader', 'PeakInvestigatorConfig']
