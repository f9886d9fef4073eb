"""
In-memory spectra container.

Minimal experiment/spectrum model holding mass and intensity arrays plus
the processing history stamped onto each scan.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Set

import numpy as np

from peakinvestigator.domain.models import MassBounds


PROFILE = 'profile'
PEAKS = 'peaks'
UNKNOWN = 'unknown'

SPECTRUM_TYPES = (PROFILE, PEAKS, UNKNOWN)

PEAK_PICKING = 'peak_picking'


@dataclass
class DataProcessing:
    """One processing step applied to a spectrum."""

    actions: Set[str] = field(default_factory=set)
    software: str = ''
    completion_time: Optional[datetime] = None
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class Spectrum:
    """A single scan with its m/z and intensity arrays."""

    mz: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))
    intensity: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))
    native_id: str = ''
    ms_level: int = 1
    rt: float = 0.0
    type: str = UNKNOWN
    data_processing: List[DataProcessing] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.mz = np.asarray(self.mz, dtype=np.float64)
        self.intensity = np.asarray(self.intensity, dtype=np.float64)
        if self.mz.shape != self.intensity.shape:
            raise ValueError(
                f"mz and intensity lengths differ: {self.mz.size} != {self.intensity.size}"
            )
        if self.type not in SPECTRUM_TYPES:
            raise ValueError(f"Invalid spectrum type: {self.type}")

    def __len__(self) -> int:
        return int(self.mz.size)

    @property
    def is_empty(self) -> bool:
        return self.mz.size == 0

    def clear_data(self) -> None:
        """Drop the data points, keeping identity and metadata."""
        self.mz = np.empty(0, dtype=np.float64)
        self.intensity = np.empty(0, dtype=np.float64)


@dataclass
class Experiment:
    """Ordered collection of spectra with experiment-level metadata."""

    spectra: List[Spectrum] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.spectra)

    def __iter__(self) -> Iterator[Spectrum]:
        return iter(self.spectra)

    def __getitem__(self, index: int) -> Spectrum:
        return self.spectra[index]

    @property
    def is_empty(self) -> bool:
        return not self.spectra

    def mass_bounds(self) -> MassBounds:
        """
        Compute the m/z range covered by all non-empty spectra.

        Raises:
            ValueError: If no spectrum holds any data points
        """
        filled = [s.mz for s in self.spectra if not s.is_empty]
        if not filled:
            raise ValueError("Experiment holds no data points")

        min_mass = min(float(mz.min()) for mz in filled)
        max_mass = max(float(mz.max()) for mz in filled)
        return MassBounds(min_mass=min_mass, max_mass=max_mass)

    def clear_data(self) -> None:
        """Drop data points from every spectrum."""
        for spectrum in self.spectra:
            spectrum.clear_data()

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.meta.get(key, default)
