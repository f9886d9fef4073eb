"""Tar archive codec for bundling spectra into a single transportable file."""

import io
import tarfile
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import numpy as np
import yaml

from peakinvestigator.domain.exceptions import ArchiveError
from peakinvestigator.domain.spectra import DataProcessing, Experiment, Spectrum
from peakinvestigator.shared.logging import get_logger
from peakinvestigator.shared.types import PathLike

logger = get_logger(__name__)

MANIFEST_NAME = 'manifest.yaml'
SCAN_DIR = 'scans'


def _scan_name(index: int) -> str:
    return f"{SCAN_DIR}/scan_{index:05d}.txt"


def _add_bytes(tf: tarfile.TarFile, name: str, payload: bytes) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(payload)
    info.mtime = int(time.time())
    tf.addfile(info, io.BytesIO(payload))


def _encode_scan(spectrum: Spectrum) -> bytes:
    buffer = io.BytesIO()
    if not spectrum.is_empty:
        data = np.column_stack((spectrum.mz, spectrum.intensity))
        np.savetxt(buffer, data, fmt='%.17g', delimiter='\t')
    return buffer.getvalue()


def _decode_scan(payload: bytes, name: str):
    if not payload.strip():
        return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)
    try:
        data = np.loadtxt(io.BytesIO(payload), delimiter='\t', dtype=np.float64, ndmin=2)
    except ValueError as e:
        raise ArchiveError(f"Unreadable scan {name}: {e}") from e
    if data.shape[1] != 2:
        raise ArchiveError(f"Scan {name} has {data.shape[1]} columns, expected 2")
    return data[:, 0].copy(), data[:, 1].copy()


def _processing_to_dict(dp: DataProcessing) -> Dict[str, Any]:
    return {
        'actions': sorted(dp.actions),
        'software': dp.software,
        'completion_time': dp.completion_time.isoformat() if dp.completion_time else None,
        'meta': dict(dp.meta),
    }


def _processing_from_dict(data: Dict[str, Any]) -> DataProcessing:
    completion = data.get('completion_time')
    return DataProcessing(
        actions=set(data.get('actions') or []),
        software=data.get('software') or '',
        completion_time=datetime.fromisoformat(completion) if completion else None,
        meta=dict(data.get('meta') or {}),
    )


class TarArchiveCodec:
    """
    Stores an experiment as a tar of tab-separated scan files.

    Layout::

        manifest.yaml          experiment metadata and per-scan attributes
        scans/scan_00000.txt   "mz<TAB>intensity" rows, one per data point
    """

    def store(self, path: PathLike, experiment: Experiment) -> Path:
        """
        Write all spectra of the experiment to ``path``.

        Raises:
            ArchiveError: If the archive cannot be written
        """
        path = Path(path)
        scans: List[Dict[str, Any]] = []
        manifest = {'meta': dict(experiment.meta), 'scans': scans}

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tarfile.open(path, 'w') as tf:
                for index, spectrum in enumerate(experiment):
                    name = _scan_name(index)
                    _add_bytes(tf, name, _encode_scan(spectrum))
                    scans.append({
                        'file': name,
                        'native_id': spectrum.native_id,
                        'ms_level': spectrum.ms_level,
                        'rt': float(spectrum.rt),
                        'type': spectrum.type,
                        'points': len(spectrum),
                        'meta': dict(spectrum.meta),
                        'data_processing': [_processing_to_dict(dp) for dp in spectrum.data_processing],
                    })

                _add_bytes(tf, MANIFEST_NAME, yaml.safe_dump(manifest, sort_keys=False).encode('utf-8'))

        except (OSError, tarfile.TarError, yaml.YAMLError) as e:
            raise ArchiveError(f"Failed to write archive {path}: {e}") from e

        logger.info(f"Archived {len(scans)} scans to {path}")
        return path

    def load(self, path: PathLike) -> Experiment:
        """
        Read an experiment back from an archive written by ``store``.

        Raises:
            ArchiveError: If the archive is unreadable or incomplete
        """
        path = Path(path)
        if not path.exists():
            raise ArchiveError(f"Archive not found: {path}")

        try:
            with tarfile.open(path, 'r') as tf:
                manifest = yaml.safe_load(self._read_member(tf, MANIFEST_NAME)) or {}
                if not isinstance(manifest, dict):
                    raise ArchiveError(f"Manifest of {path} is not a mapping")
                spectra = [self._load_scan(tf, entry) for entry in manifest.get('scans') or []]
                meta = dict(manifest.get('meta') or {})

        except (OSError, tarfile.TarError, yaml.YAMLError) as e:
            raise ArchiveError(f"Failed to read archive {path}: {e}") from e
        except (ValueError, TypeError, AttributeError) as e:
            raise ArchiveError(f"Invalid manifest in {path}: {e}") from e

        logger.info(f"Loaded {len(spectra)} scans from {path}")
        return Experiment(spectra=spectra, meta=meta)

    def _load_scan(self, tf: tarfile.TarFile, entry: Dict[str, Any]) -> Spectrum:
        name = entry.get('file')
        if not name:
            raise ArchiveError("Manifest entry without file name")
        mz, intensity = _decode_scan(self._read_member(tf, name), name)
        return Spectrum(
            mz=mz,
            intensity=intensity,
            native_id=entry.get('native_id') or '',
            ms_level=int(entry.get('ms_level', 1)),
            rt=float(entry.get('rt', 0.0)),
            type=entry.get('type') or 'unknown',
            meta=dict(entry.get('meta') or {}),
            data_processing=[
                _processing_from_dict(dp) for dp in entry.get('data_processing') or []
            ],
        )

    @staticmethod
    def _read_member(tf: tarfile.TarFile, name: str) -> bytes:
        try:
            member = tf.getmember(name)
        except KeyError:
            raise ArchiveError(f"Archive is missing {name}")
        handle = tf.extractfile(member)
        if handle is None:
            raise ArchiveError(f"Archive member {name} is not a regular file")
        with handle:
            return handle.read()
