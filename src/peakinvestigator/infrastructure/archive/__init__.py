"""Scan archive infrastructure."""

from peakinvestigator.infrastructure.archive.tar_codec import TarArchiveCodec

__all__ = ['TarArchiveCodec']
