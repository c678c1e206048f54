"""CLI interface for the auto-segmentation job supervisor."""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from autoseg_supervisor import __version__
from autoseg_supervisor.application.cleanup import CleanupHandler
from autoseg_supervisor.application.factories import create_supervisor_from_config
from autoseg_supervisor.application.parameters import (
    REQUIRED_PARAMETERS,
    ParameterValidator,
    parse_argument_pairs,
)
from autoseg_supervisor.domain.exceptions import JobError, JobInterrupted
from autoseg_supervisor.infrastructure.config import ConfigLoader
from autoseg_supervisor.shared.logging import PACKAGE_LOGGER, get_logger, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoseg-supervisor",
        description="Supervise one auto-segmentation job: bootstrap, feed the worker, "
                    "wait for each phase and publish the result",
        epilog="Parameters may be given as 'key value' pairs or as environment "
               "variables of the same name: " + ", ".join(REQUIRED_PARAMETERS.values()),
    )
    parser.add_argument('pairs', nargs='*', metavar='KEY VALUE', help='Job parameters as key/value pairs')
    parser.add_argument('--config', type=Path, help='Config YAML file (default: $AUTOSEG_CONFIG)')
    parser.add_argument('--log-file', type=Path, help='Also write supervisor logs to this file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    environ = os.environ if environ is None else environ

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logger(PACKAGE_LOGGER, level=log_level, log_file=args.log_file)
    logger = get_logger(__name__)

    cleanup = CleanupHandler()
    cleanup.install()

    exit_code = 1
    try:
        config = ConfigLoader(config_path=args.config, environ=environ).load()
        cleanup.keep_staging = config.keep_staging
        if config.supervisor_log_file and not args.log_file:
            setup_logger(PACKAGE_LOGGER, level=log_level, log_file=config.supervisor_log_file)

        logger.info("=" * 60)
        logger.info(f"Auto-segmentation job supervisor v{__version__}")
        logger.info(f"Pipeline root: {config.pipeline_root}")
        logger.info("=" * 60)

        params = ParameterValidator(environ).validate(parse_argument_pairs(args.pairs))

        supervisor = create_supervisor_from_config(config, cleanup)
        result = supervisor.run(params)

        logger.info("=" * 60)
        logger.info("Job completed successfully")
        logger.info(f"Output: {result.publish.location} ({result.publish.size_bytes} bytes)")
        logger.info("=" * 60)
        exit_code = 0

    except JobInterrupted as e:
        logger.error(e.message)
        exit_code = e.exit_code
    except JobError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        if e.diagnostics:
            logger.error(f"Diagnostics:\n{e.diagnostics}")
        exit_code = 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        exit_code = 130
    except Exception as e:
        logger.exception(f"Error: {e}")
        exit_code = 1
    finally:
        exit_code = cleanup.finalize(exit_code)

    return exit_code


if __name__ == '__main__':
    sys.exit(main())
