"""CLI interface for PeakInvestigator jobs."""
import sys
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from peakinvestigator import __version__
from peakinvestigator.application.factories import create_session_from_config
from peakinvestigator.domain.commands import CheckCommand, DeleteCommand, FetchCommand, SubmitCommand
from peakinvestigator.domain.exceptions import DomainException
from peakinvestigator.domain.models import META_JOB, META_SERVER, MassBounds, SessionOutcome, SessionResult
from peakinvestigator.domain.spectra import Experiment
from peakinvestigator.infrastructure.archive import TarArchiveCodec
from peakinvestigator.infrastructure.config import ConfigLoader
from peakinvestigator.shared.logging import setup_logger, get_logger

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PENDING = 2
EXIT_INTERRUPTED = 130

PENDING_OUTCOMES = (SessionOutcome.RUNNING, SessionOutcome.SUBMITTED_BUT_UNCONFIRMED)


def save_job_file(path: Path, experiment: Experiment, result: SessionResult) -> None:
    """Persist job metadata so check/fetch can pick the job up later."""
    job = result.job
    payload: Dict[str, Any] = {'meta': dict(experiment.meta)}
    if job is not None:
        payload['job'] = {
            'id': job.job_id,
            'status': job.status,
            'status_timestamp': job.status_timestamp,
            'funds': job.funds,
            'rto': job.rto,
            'pi_version': job.pi_version,
            'results_file': job.results_file,
        }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(payload, f, sort_keys=False)


def load_job_file(path: Path) -> Experiment:
    """Experiment carrying only the metadata stored in a job file."""
    with open(path, 'r') as f:
        payload = yaml.safe_load(f) or {}
    if not isinstance(payload, dict):
        raise DomainException(f"Job file {path} must contain a mapping")
    return Experiment(meta=dict(payload.get('meta') or {}))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='peakinvestigator',
        description="Outsource peak picking to the PeakInvestigator service"
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', type=Path, help='Config YAML file')
    parser.add_argument('--server', help='Server address (without https://)')
    parser.add_argument('--rto', help='Response time objective, e.g. RTO-24')
    parser.add_argument('--pi-version', help='PeakInvestigator version to run')
    parser.add_argument('--work-dir', type=Path, help='Directory for local archives')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')

    subparsers = parser.add_subparsers(dest='mode', required=True)

    submit = subparsers.add_parser('submit', help='Submit scans for peak picking')
    submit.add_argument('--input', '-i', type=Path, required=True, help='Scans archive to submit')
    submit.add_argument('--job-file', '-j', type=Path, required=True, help='Where to write job metadata')
    submit.add_argument('--min-mass', type=float, help='Lower mass bound (default: from scans)')
    submit.add_argument('--max-mass', type=float, help='Upper mass bound (default: from scans)')

    check = subparsers.add_parser('check', help='Check job status')
    check.add_argument('--job-file', '-j', type=Path, required=True, help='Job metadata file')

    fetch = subparsers.add_parser('fetch', help='Fetch results of a finished job')
    fetch.add_argument('--job-file', '-j', type=Path, required=True, help='Job metadata file')
    fetch.add_argument('--output', '-o', type=Path, required=True, help='Where to write the peak-picked archive')

    delete = subparsers.add_parser('delete', help='Delete a remote job')
    target = delete.add_mutually_exclusive_group(required=True)
    target.add_argument('--job-file', '-j', type=Path, help='Job metadata file')
    target.add_argument('--job', help='Job ID')

    return parser


def _bounds_from_args(args, experiment: Experiment) -> Optional[MassBounds]:
    if args.min_mass is None and args.max_mass is None:
        return None
    derived = experiment.mass_bounds() if (args.min_mass is None or args.max_mass is None) else None
    return MassBounds(
        min_mass=args.min_mass if args.min_mass is not None else derived.min_mass,
        max_mass=args.max_mass if args.max_mass is not None else derived.max_mass,
    )


def _report(logger: logging.Logger, result: SessionResult) -> int:
    logger.info("=" * 60)
    if result.job is not None:
        logger.info(f"{result.job}")
    for warning in result.warnings:
        logger.warning(warning)

    if result.success:
        logger.info(f"{result.mode.value} completed: {result.outcome.value}")
        return EXIT_OK

    if result.outcome in PENDING_OUTCOMES:
        logger.info(f"{result.mode.value}: {result.outcome.value}")
        if result.error is not None:
            logger.warning(f"  - {result.error}")
        return EXIT_PENDING

    logger.error(f"{result.mode.value} failed")
    if result.error is not None:
        logger.error(f"  - {result.error}")
    return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger('peakinvestigator', level=log_level)
    logger = get_logger('peakinvestigator.cli')

    try:
        overrides = {
            'server': args.server,
            'rto': args.rto,
            'pi_version': args.pi_version,
            'work_dir': args.work_dir,
        }
        config = ConfigLoader(config_path=args.config).load(overrides=overrides)
        session = create_session_from_config(config)
        codec = TarArchiveCodec()

        if args.mode == 'submit':
            experiment = codec.load(args.input)
            result = session.run(SubmitCommand(experiment, bounds=_bounds_from_args(args, experiment)))
            if result.job is not None and result.job.is_initialized:
                save_job_file(args.job_file, experiment, result)
                logger.info(f"Job metadata written to {args.job_file}")

        elif args.mode == 'check':
            experiment = load_job_file(args.job_file)
            result = session.run(CheckCommand(experiment))
            if result.success:
                save_job_file(args.job_file, experiment, result)

        elif args.mode == 'fetch':
            experiment = load_job_file(args.job_file)
            result = session.run(FetchCommand(experiment))
            if result.outcome is SessionOutcome.FETCHED:
                codec.store(args.output, experiment)
                save_job_file(args.job_file, experiment, result)
                logger.info(f"Peak-picked scans written to {args.output}")

        else:
            if args.job_file:
                meta = load_job_file(args.job_file).meta
                command = DeleteCommand(job_id=str(meta.get(META_JOB) or ''), server=meta.get(META_SERVER))
            else:
                command = DeleteCommand(job_id=args.job)
            result = session.run(command)

        return _report(logger, result)

    except (DomainException, ValueError, OSError) as e:
        logger.error(f"Error: {e}")
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())
