"""
Unit tests for domain models.
"""

import numpy as np
import pytest

from peakinvestigator.domain.commands import CheckCommand, DeleteCommand, FetchCommand, SubmitCommand
from peakinvestigator.domain.exceptions import (
    DomainException,
    PrepTimeoutError,
    ProtocolError,
    RejectedError,
    ServiceError,
    SessionError,
    TransferError,
    TransportError,
)
from peakinvestigator.domain.models import (
    Account,
    Job,
    MassBounds,
    PrepOutcome,
    SessionMode,
    TransferCredentials,
)
from peakinvestigator.domain.spectra import Experiment, Spectrum


class TestAccount:
    """Test Account model."""

    def test_password_hidden_from_repr(self, account):
        assert "s3cret-code" not in repr(account)

    def test_server_required(self):
        with pytest.raises(ValueError):
            Account(server="", username="alice", password="x", account_number="1")

    def test_for_server(self, account):
        other = account.for_server("other.example.com")

        assert other.server == "other.example.com"
        assert other.username == account.username
        assert other.password == account.password
        assert account.server == "pi.example.com"


class TestMassBounds:
    """Test MassBounds model."""

    def test_valid(self):
        bounds = MassBounds(100.0, 2000.0)
        assert bounds.min_mass == 100.0
        assert bounds.max_mass == 2000.0

    def test_equal_bounds_allowed(self):
        MassBounds(500.0, 500.0)

    @pytest.mark.parametrize("min_mass,max_mass", [
        (-1.0, 10.0),
        (20.0, 10.0),
        (float("nan"), float("nan")),
        (100.0, float("nan")),
        (100.0, float("inf")),
    ])
    def test_invalid(self, min_mass, max_mass):
        with pytest.raises(ValueError):
            MassBounds(min_mass, max_mass)


class TestJob:
    """Test Job model."""

    def test_new_job(self):
        job = Job()

        assert not job.is_initialized
        assert not job.is_done
        assert str(job) == "Job <new> (unsubmitted)"

    def test_running_then_done(self):
        job = Job(job_id="J123", server="pi.example.com", account_number="1001")

        job.update_status("Running", "2024-05-01 10:00:00")
        assert job.status == "Running"

        job.update_status("Done", "2024-05-01 12:00:00", actual_cost="3.10")
        assert job.is_done
        assert job.actual_cost == "3.10"
        assert job.status_timestamp == "2024-05-01 12:00:00"

    def test_actual_cost_unknown_until_done(self):
        job = Job(job_id="J123")
        job.update_status("Running")

        with pytest.raises(ValueError):
            job.actual_cost

    def test_done_cannot_go_back_to_running(self):
        job = Job(job_id="J123")
        job.update_status("Done", actual_cost="1.00")

        with pytest.raises(ProtocolError):
            job.update_status("Running")

        assert job.is_done

    def test_unknown_status(self):
        with pytest.raises(ProtocolError):
            Job(job_id="J123").update_status("Queued")

    def test_to_meta(self):
        job = Job(job_id="J123", server="pi.example.com", account_number="1001", rto="RTO-24")

        assert job.to_meta() == {
            "veritomyx:server": "pi.example.com",
            "veritomyx:account": "1001",
            "veritomyx:job": "J123",
            "veritomyx:RTO": "RTO-24",
        }

    def test_retire(self):
        job = Job(job_id="J123")
        job.retire()
        assert job.retired


class TestTransferCredentials:
    """Test TransferCredentials model."""

    def test_password_hidden(self):
        credentials = TransferCredentials("h", 22, "/files", "login", "pw-secret")

        assert "pw-secret" not in repr(credentials)
        assert str(credentials) == "login@h:22/files"


class TestPrepOutcome:
    """Test PrepOutcome model."""

    def test_scan_count_unknown_matches(self):
        assert PrepOutcome(status="Ready", expected_scan_count=10).scan_count_matches

    def test_scan_count_mismatch(self):
        outcome = PrepOutcome(status="Ready", scan_count=9, expected_scan_count=10)
        assert not outcome.scan_count_matches


class TestSpectra:
    """Test Spectrum and Experiment."""

    def test_shapes_must_match(self):
        with pytest.raises(ValueError):
            Spectrum(mz=[1.0, 2.0], intensity=[1.0])

    def test_invalid_type(self):
        with pytest.raises(ValueError):
            Spectrum(type="centroid")

    def test_mass_bounds_skip_empty_scans(self):
        experiment = Experiment(spectra=[
            Spectrum(mz=[150.0, 300.0], intensity=[1.0, 2.0]),
            Spectrum(),
            Spectrum(mz=[120.5, 250.0], intensity=[1.0, 2.0]),
        ])

        bounds = experiment.mass_bounds()

        assert bounds == MassBounds(120.5, 300.0)

    def test_mass_bounds_without_points(self):
        with pytest.raises(ValueError):
            Experiment(spectra=[Spectrum()]).mass_bounds()

    def test_clear_data_keeps_scans(self, experiment):
        experiment.clear_data()

        assert len(experiment) == 10
        assert experiment[3].native_id == "scan=3"
        assert all(s.is_empty for s in experiment)
        assert experiment[0].mz.dtype == np.float64


class TestCommands:
    """Test command objects."""

    def test_modes(self, experiment):
        assert SubmitCommand(experiment).mode is SessionMode.SUBMIT
        assert CheckCommand(experiment).mode is SessionMode.CHECK
        assert FetchCommand(experiment).mode is SessionMode.FETCH
        assert DeleteCommand(job_id="J1").mode is SessionMode.DELETE

    def test_delete_requires_job(self):
        with pytest.raises(ValueError):
            DeleteCommand(job_id="")


class TestExceptions:
    """Test exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(TransferError, TransportError)
        assert issubclass(RejectedError, ServiceError)
        assert issubclass(PrepTimeoutError, DomainException)
        assert issubclass(PrepTimeoutError, TimeoutError)

    def test_session_error_names_step(self):
        cause = RejectedError("Bad credentials", action="INIT")
        error = SessionError("SUBMIT", "INIT", cause)

        assert error.mode == "SUBMIT"
        assert error.step == "INIT"
        assert error.cause is cause
        assert str(error) == "SUBMIT failed at INIT: INIT rejected: Bad credentials"
