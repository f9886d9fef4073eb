"""
Unit tests for the command line interface.
"""

import pytest
import yaml
from unittest.mock import MagicMock, patch

from peakinvestigator.domain.commands import CheckCommand, DeleteCommand, FetchCommand, SubmitCommand
from peakinvestigator.domain.exceptions import ConfigurationError, RejectedError, SessionError
from peakinvestigator.domain.models import Job, SessionMode, SessionOutcome, SessionResult
from peakinvestigator.domain.spectra import Experiment, Spectrum
from peakinvestigator.infrastructure.archive import TarArchiveCodec
from peakinvestigator.presentation.cli import load_job_file, main, save_job_file

JOB_META = {
    "veritomyx:server": "pi.example.com",
    "veritomyx:account": "1001",
    "veritomyx:job": "J123",
}


@pytest.fixture
def session():
    """Patch session creation and return the mock session."""
    session = MagicMock()
    with patch("peakinvestigator.presentation.cli.create_session_from_config", return_value=session):
        yield session


@pytest.fixture
def base_args(tmp_path):
    return ["--config", str(tmp_path / "absent.yaml")]


@pytest.fixture
def job_file(tmp_path):
    path = tmp_path / "job.yaml"
    path.write_text(yaml.safe_dump({"meta": JOB_META}))
    return path


def result(mode, outcome, success=True, job=None, error=None):
    return SessionResult(success=success, mode=mode, outcome=outcome, job=job, error=error)


class TestJobFile:
    """Test job file persistence."""

    def test_save_and_load(self, tmp_path):
        experiment = Experiment(meta=dict(JOB_META))
        job = Job(job_id="J123", server="pi.example.com", account_number="1001", status="Running")
        path = tmp_path / "jobs" / "job.yaml"

        save_job_file(path, experiment, result(SessionMode.SUBMIT, SessionOutcome.SUBMITTED, job=job))
        loaded = load_job_file(path)

        assert loaded.meta == JOB_META
        assert yaml.safe_load(path.read_text())["job"]["id"] == "J123"


class TestMain:
    """Test main entry point."""

    def test_submit_writes_job_file(self, session, base_args, tmp_path):
        scans = tmp_path / "scans.tar"
        TarArchiveCodec().store(scans, Experiment(spectra=[
            Spectrum(mz=[100.0, 200.0], intensity=[1.0, 2.0], type="profile"),
        ]))
        job_path = tmp_path / "job.yaml"

        def run(command):
            command.experiment.meta.update(JOB_META)
            job = Job(job_id="J123", server="pi.example.com", account_number="1001", status="Running")
            return result(SessionMode.SUBMIT, SessionOutcome.SUBMITTED, job=job)

        session.run.side_effect = run

        code = main(base_args + ["submit", "--input", str(scans), "--job-file", str(job_path)])

        assert code == 0
        command = session.run.call_args[0][0]
        assert isinstance(command, SubmitCommand)
        assert command.bounds is None
        assert load_job_file(job_path).meta["veritomyx:job"] == "J123"

    def test_submit_with_partial_bounds(self, session, base_args, tmp_path):
        scans = tmp_path / "scans.tar"
        TarArchiveCodec().store(scans, Experiment(spectra=[
            Spectrum(mz=[100.0, 200.0], intensity=[1.0, 2.0], type="profile"),
        ]))
        session.run.return_value = result(SessionMode.SUBMIT, SessionOutcome.FAILED, success=False)

        main(base_args + ["submit", "-i", str(scans), "-j", str(tmp_path / "j.yaml"), "--min-mass", "150"])

        bounds = session.run.call_args[0][0].bounds
        assert bounds.min_mass == 150.0
        assert bounds.max_mass == 200.0

    def test_check_running_is_pending(self, session, base_args, job_file):
        session.run.return_value = result(SessionMode.CHECK, SessionOutcome.RUNNING, success=False)

        code = main(base_args + ["check", "--job-file", str(job_file)])

        assert code == 2
        command = session.run.call_args[0][0]
        assert isinstance(command, CheckCommand)
        assert command.experiment.meta == JOB_META

    def test_fetch_writes_output(self, session, base_args, job_file, tmp_path):
        output = tmp_path / "peaks.tar"

        def run(command):
            command.experiment.spectra = [Spectrum(mz=[150.0], intensity=[5.0], type="peaks")]
            return result(SessionMode.FETCH, SessionOutcome.FETCHED)

        session.run.side_effect = run

        code = main(base_args + ["fetch", "--job-file", str(job_file), "--output", str(output)])

        assert code == 0
        assert isinstance(session.run.call_args[0][0], FetchCommand)
        assert TarArchiveCodec().load(output)[0].type == "peaks"

    def test_delete_by_job_id(self, session, base_args):
        session.run.return_value = result(SessionMode.DELETE, SessionOutcome.DELETED)

        code = main(base_args + ["delete", "--job", "J123"])

        assert code == 0
        command = session.run.call_args[0][0]
        assert isinstance(command, DeleteCommand)
        assert command.job_id == "J123"
        assert command.server is None

    def test_delete_from_job_file(self, session, base_args, job_file):
        session.run.return_value = result(SessionMode.DELETE, SessionOutcome.DELETED)

        main(base_args + ["delete", "--job-file", str(job_file)])

        command = session.run.call_args[0][0]
        assert command.job_id == "J123"
        assert command.server == "pi.example.com"

    def test_failure_exit_code(self, session, base_args):
        error = SessionError("DELETE", "DELETE", RejectedError("unknown job", action="DELETE"))
        session.run.return_value = result(SessionMode.DELETE, SessionOutcome.FAILED, success=False, error=error)

        assert main(base_args + ["delete", "--job", "J999"]) == 1

    def test_configuration_error(self, base_args):
        with patch(
            "peakinvestigator.presentation.cli.create_session_from_config",
            side_effect=ConfigurationError("username and password are required"),
        ):
            assert main(base_args + ["delete", "--job", "J1"]) == 1
