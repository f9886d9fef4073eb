import json
import sys
import os
from unittest.mock import Mock

import numpy as np
import pytest

# Ensure src/ is on sys.path so the package is importable without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from peakinvestigator.domain.models import Account  # noqa: E402
from peakinvestigator.domain.spectra import Experiment, Spectrum  # noqa: E402


def make_response(body, status_code=200):
    """Build a mock requests.Response for a body (dict/list are JSON-encoded)."""
    text = body if isinstance(body, str) else json.dumps(body)
    response = Mock()
    response.text = text
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = 'OK' if status_code < 400 else 'Error'
    response.json.side_effect = lambda: json.loads(text)
    return response


@pytest.fixture
def account():
    """Provide test account."""
    return Account(
        server="pi.example.com",
        username="alice",
        password="s3cret-code",
        account_number="1001"
    )


@pytest.fixture
def experiment():
    """Provide a small profile-mode experiment."""
    spectra = [
        Spectrum(
            mz=np.linspace(100.0 + i, 2000.0 - i, 50),
            intensity=np.arange(50, dtype=np.float64) * (i + 1),
            native_id=f"scan={i}",
            rt=1.5 * i,
            type='profile'
        )
        for i in range(10)
    ]
    return Experiment(spectra=spectra)


@pytest.fixture
def response_factory():
    """Provide the mock response builder."""
    return make_response
