"""Job lifecycle orchestration for PeakInvestigator."""

import logging
from contextlib import closing, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from peakinvestigator.application.prep_poller import PrepPoller
from peakinvestigator.domain.commands import (
    CheckCommand,
    Command,
    DeleteCommand,
    FetchCommand,
    SubmitCommand,
)
from peakinvestigator.domain.exceptions import (
    DomainException,
    InvalidExperimentError,
    PrepTimeoutError,
    ProtocolError,
    SessionError,
)
from peakinvestigator.domain.models import (
    META_ACCOUNT,
    META_JOB,
    META_PI_VERSION,
    META_RTO,
    META_SERVER,
    META_USERNAME,
    Account,
    Job,
    JobStatus,
    MassBounds,
    RtoOption,
    SessionMode,
    SessionOutcome,
    SessionResult,
    TransferCredentials,
)
from peakinvestigator.domain.protocols import IArchiveCodec, ITierSelector, TransferClientFactory
from peakinvestigator.domain.spectra import PEAK_PICKING, PEAKS, DataProcessing, Experiment
from peakinvestigator.infrastructure.service.client import (
    DELETE,
    INIT,
    RUN,
    SFTP,
    STATUS,
    PREP,
    RemoteServiceClient,
    require_field,
)
from peakinvestigator.infrastructure.service.credentials import CredentialNegotiator
from peakinvestigator.shared.metrics import SessionMetrics

SOFTWARE_NAME = 'PeakInvestigator'

DEFAULT_PREP_CHECK_INTERVAL = 2 * 60
DEFAULT_PREP_TIMEOUT = 20 * 60


def _format_mass(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _parse_rtos(raw: Any) -> List[RtoOption]:
    options = []
    for item in raw or []:
        if isinstance(item, dict) and item.get('RTO'):
            options.append(RtoOption(rto=str(item['RTO']), estimated_cost=_optional_str(item.get('EstCost'))))
        elif isinstance(item, str):
            options.append(RtoOption(rto=item))
    return options


class JobSession:
    """
    Drives one remote job through INIT, upload, RUN, PREP, STATUS, FETCH and DELETE.

    Each ``run`` call handles one command and returns a SessionResult; the
    first failing step aborts the rest and is reported as a SessionError.
    Transfer credentials live only for the duration of the call that
    negotiated them.
    """

    def __init__(
        self,
        account: Account,
        client: RemoteServiceClient,
        archive_codec: IArchiveCodec,
        transfer_factory: TransferClientFactory,
        tier_selector: ITierSelector,
        negotiator: Optional[CredentialNegotiator] = None,
        poller: Optional[PrepPoller] = None,
        work_dir: Optional[Path] = None,
        prep_check_interval: float = DEFAULT_PREP_CHECK_INTERVAL,
        prep_timeout: float = DEFAULT_PREP_TIMEOUT,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None
    ):
        self.account = account
        self.client = client
        self.archive_codec = archive_codec
        self.transfer_factory = transfer_factory
        self.tier_selector = tier_selector
        self.negotiator = negotiator or CredentialNegotiator(client)
        self.poller = poller or PrepPoller(client)
        self.work_dir = Path(work_dir) if work_dir else Path('.')
        self.prep_check_interval = prep_check_interval
        self.prep_timeout = prep_timeout
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)

        self.job: Optional[Job] = None
        self.kept_archive: Optional[Path] = None

    def run(self, command: Command) -> SessionResult:
        """Execute one command."""
        handlers = {
            SessionMode.SUBMIT: self._submit,
            SessionMode.CHECK: self._check,
            SessionMode.FETCH: self._fetch,
            SessionMode.DELETE: self._delete,
        }
        mode = command.mode
        metrics = SessionMetrics()
        self.logger.info(f"Starting {mode.value} against {self.account.server}")

        try:
            result = handlers[mode](command, metrics)
        except SessionError as e:
            self.logger.error(str(e))
            result = SessionResult(
                success=False,
                mode=mode,
                outcome=SessionOutcome.FAILED,
                job=self.job,
                error=e
            )
            if mode is SessionMode.SUBMIT and self.job is not None and self.job.is_initialized:
                warning = (
                    f"Job {self.job.job_id} was created on {self.job.server} but the submission "
                    f"did not complete; it has not been deleted"
                )
                self.logger.warning(warning)
                result.add_warning(warning)
            if mode is SessionMode.SUBMIT and self.kept_archive is not None:
                warning = f"Scans archive kept at {self.kept_archive} for a manual retry"
                self.logger.warning(warning)
                result.add_warning(warning)

        result.metrics = metrics.get_summary()
        return result

    @contextmanager
    def _step(self, mode: SessionMode, step: str, metrics: SessionMetrics) -> Iterator[None]:
        with metrics.step(step):
            try:
                yield
            except SessionError:
                raise
            except DomainException as e:
                raise SessionError(mode.value, step, e) from e

    def _client_for(self, account: Account) -> RemoteServiceClient:
        return self.client.with_server(account.server)

    # SUBMIT

    def _submit(self, command: SubmitCommand, metrics: SessionMetrics) -> SessionResult:
        mode = SessionMode.SUBMIT
        experiment = command.experiment
        account = self.account
        self.job = None
        self.kept_archive = None

        with self._step(mode, 'validate', metrics):
            self._validate_experiment(experiment)
            bounds = command.bounds or self._bounds_of(experiment)
        scan_count = len(experiment)
        metrics.increment('scans_submitted', scan_count)

        with self._step(mode, INIT, metrics):
            job = self._initialize_job(account, scan_count, bounds)
        self.job = job

        with self._step(mode, 'select', metrics):
            job.rto, job.pi_version = self.tier_selector.choose(
                job.available_rtos, job.available_versions, job.funds
            )

        experiment.meta.update(job.to_meta())
        experiment.meta[META_USERNAME] = account.username

        filename = f"{job.job_id}.scans.tar"
        local_path = self.work_dir / filename

        data_cleared = False
        try:
            with self._step(mode, 'archive', metrics):
                self.archive_codec.store(local_path, experiment)

            # The archive is authoritative from here on
            experiment.clear_data()
            data_cleared = True

            with self._step(mode, SFTP, metrics):
                credentials = self.negotiator.negotiate(account)

            with self._step(mode, 'upload', metrics):
                self._upload(credentials, local_path, credentials.remote_path(filename))

            with self._step(mode, RUN, metrics):
                self._client_for(account).call(RUN, account, {
                    'Job': job.job_id,
                    'InputFile': filename,
                    'RTO': job.rto,
                    'PIVersion': job.pi_version,
                })
                job.update_status(JobStatus.RUNNING)
            self.logger.info(f"Job {job.job_id} started with {job.rto}, PeakInvestigator {job.pi_version}")

            try:
                with self._step(mode, PREP, metrics):
                    prep = self.poller.wait_for_prep(
                        account,
                        filename,
                        check_interval=self.prep_check_interval,
                        timeout=self.prep_timeout,
                        expected_scan_count=scan_count,
                    )
            except SessionError as e:
                if not isinstance(e.cause, PrepTimeoutError):
                    raise
                warning = (
                    f"Job {job.job_id} is running but PREP did not confirm the input in time; "
                    f"check it later or delete it"
                )
                self.logger.warning(warning)
                return SessionResult(
                    success=False,
                    mode=mode,
                    outcome=SessionOutcome.SUBMITTED_BUT_UNCONFIRMED,
                    job=job,
                    error=e,
                    warnings=[warning]
                )
        except SessionError:
            if data_cleared:
                self.kept_archive = local_path
            raise
        finally:
            if self.kept_archive is None:
                self._remove_local(local_path)

        self.logger.info(f"Job {job.job_id} submitted ({prep.scan_count} scans, {prep.ms_type})")
        return SessionResult(
            success=True,
            mode=mode,
            outcome=SessionOutcome.SUBMITTED,
            job=job,
            warnings=list(prep.warnings)
        )

    @staticmethod
    def _validate_experiment(experiment: Experiment) -> None:
        if experiment.is_empty:
            raise InvalidExperimentError("The experiment does not contain any m/z-intensity data points")
        if experiment[0].type == PEAKS:
            raise InvalidExperimentError("The experiment holds peak-picked data; profile data is required")

    @staticmethod
    def _bounds_of(experiment: Experiment) -> MassBounds:
        try:
            return experiment.mass_bounds()
        except ValueError as e:
            raise InvalidExperimentError(str(e)) from e

    def _initialize_job(self, account: Account, scan_count: int, bounds: MassBounds) -> Job:
        self.logger.info(f"Requesting new job for {account.username} ({scan_count} scans)")
        response = self._client_for(account).call(INIT, account, {
            'ID': account.account_number,
            'ScanCount': scan_count,
            'MinMass': _format_mass(bounds.min_mass),
            'MaxMass': _format_mass(bounds.max_mass),
        })

        job_id = str(require_field(response, 'Job', (str, int))).strip()
        if not job_id:
            raise ProtocolError("missing field Job")

        job = Job(
            job_id=job_id,
            server=account.server,
            account_number=account.account_number,
            funds=_optional_str(response.get('Funds')),
            min_mass=bounds.min_mass,
            max_mass=bounds.max_mass,
            available_rtos=_parse_rtos(response.get('RTOs')),
            available_versions=[str(v) for v in response.get('PI_Versions') or []],
        )
        self.logger.info(f"Initialized job {job.job_id} (funds: {job.funds})")
        return job

    def _upload(self, credentials: TransferCredentials, local_path: Path, remote_path: str) -> None:
        with closing(self.transfer_factory(credentials)) as transfer:
            transfer.upload(local_path, remote_path)

    def _remove_local(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Could not remove local archive {path}: {e}")

    # CHECK

    def _check(self, command: CheckCommand, metrics: SessionMetrics) -> SessionResult:
        job = self._check_job(SessionMode.CHECK, command.experiment, metrics)
        return SessionResult(
            success=job.is_done,
            mode=SessionMode.CHECK,
            outcome=SessionOutcome.DONE if job.is_done else SessionOutcome.RUNNING,
            job=job
        )

    def _job_from_meta(self, experiment: Experiment) -> Job:
        server = experiment.get_meta(META_SERVER)
        job_id = experiment.get_meta(META_JOB)
        if not server or not job_id:
            raise ProtocolError("no job metadata")

        server, job_id = str(server), str(job_id)
        if self.job is not None and self.job.job_id == job_id and self.job.server == server:
            return self.job

        return Job(
            job_id=job_id,
            server=server,
            account_number=str(experiment.get_meta(META_ACCOUNT, self.account.account_number)),
            rto=_optional_str(experiment.get_meta(META_RTO)),
            pi_version=_optional_str(experiment.get_meta(META_PI_VERSION)),
        )

    def _check_job(self, mode: SessionMode, experiment: Experiment, metrics: SessionMetrics) -> Job:
        with self._step(mode, 'metadata', metrics):
            job = self._job_from_meta(experiment)
        self.job = job
        account = self.account.for_server(job.server)

        with self._step(mode, STATUS, metrics):
            response = self._client_for(account).call(STATUS, account, {'Job': job.job_id})
            status = require_field(response, 'Status')
            timestamp = _optional_str(response.get('Datetime'))

            if status == JobStatus.DONE:
                results_file = require_field(response, 'ResultsFile')
                job.update_status(status, timestamp, actual_cost=_optional_str(response.get('ActualCost')))
                job.results_file = results_file
                job.log_file = _optional_str(response.get('JobLogFile'))
                self.logger.info(f"{job.job_id} has finished (cost: {job.actual_cost})")
            elif status == JobStatus.RUNNING:
                job.update_status(status, timestamp)
                self.logger.info(f"{job.job_id} is still running")
            else:
                raise ProtocolError(f"unexpected status {status}")

        return job

    # FETCH

    def _fetch(self, command: FetchCommand, metrics: SessionMetrics) -> SessionResult:
        mode = SessionMode.FETCH
        experiment = command.experiment
        job = self._check_job(mode, experiment, metrics)

        if not job.is_done:
            self.logger.info(f"Nothing to fetch for {job.job_id} yet")
            return SessionResult(success=False, mode=mode, outcome=SessionOutcome.RUNNING, job=job)

        account = self.account.for_server(job.server)

        with self._step(mode, SFTP, metrics):
            credentials = self.negotiator.negotiate(account)

        local_path = self.work_dir / Path(job.results_file).name
        try:
            with self._step(mode, 'download', metrics):
                with closing(self.transfer_factory(credentials)) as transfer:
                    transfer.download(
                        credentials.remote_path(job.account_number, job.results_file),
                        local_path
                    )

            with self._step(mode, 'decode', metrics):
                results = self.archive_codec.load(local_path)
        finally:
            self._remove_local(local_path)

        self._stamp_results(experiment, results, job, account)
        metrics.increment('spectra_fetched', len(results))

        with self._step(mode, DELETE, metrics):
            acknowledgement = self._delete_job(account, job)

        return SessionResult(
            success=True,
            mode=mode,
            outcome=SessionOutcome.FETCHED,
            job=job,
            acknowledgement=acknowledgement
        )

    def _stamp_results(self, experiment: Experiment, results: Experiment, job: Job, account: Account) -> None:
        completed = self._clock()
        meta: Dict[str, Any] = {
            META_SERVER: job.server,
            META_USERNAME: account.username,
            META_ACCOUNT: job.account_number,
            META_JOB: job.job_id,
            META_RTO: job.rto,
            META_PI_VERSION: job.pi_version,
        }
        meta = {key: value for key, value in meta.items() if value is not None}

        experiment.spectra = results.spectra
        for spectrum in experiment:
            spectrum.data_processing.append(DataProcessing(
                actions={PEAK_PICKING},
                software=SOFTWARE_NAME,
                completion_time=completed,
                meta=dict(meta),
            ))
            spectrum.type = PEAKS

        self.logger.info(f"Recovered {len(experiment)} peak-picked spectra for job {job.job_id}")

    # DELETE

    def _delete(self, command: DeleteCommand, metrics: SessionMetrics) -> SessionResult:
        server = command.server or self.account.server
        account = self.account.for_server(server)

        if self.job is not None and self.job.job_id == command.job_id and self.job.server == server:
            job = self.job
        else:
            job = Job(job_id=command.job_id, server=server, account_number=account.account_number)
        self.job = job

        with self._step(SessionMode.DELETE, DELETE, metrics):
            acknowledgement = self._delete_job(account, job)

        return SessionResult(
            success=True,
            mode=SessionMode.DELETE,
            outcome=SessionOutcome.DELETED,
            job=job,
            acknowledgement=acknowledgement
        )

    def _delete_job(self, account: Account, job: Job) -> Dict[str, Any]:
        acknowledgement = self._client_for(account).call(DELETE, account, {'Job': job.job_id})
        job.retire()
        self.logger.info(f"Deleted job {job.job_id}: {acknowledgement}")
        return acknowledgement
