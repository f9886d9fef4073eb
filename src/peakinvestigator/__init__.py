"""Client for outsourcing peak picking to the PeakInvestigator service."""

__version__ = "0.1.0"
