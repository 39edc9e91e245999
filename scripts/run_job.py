#!/usr/bin/env python3
"""
Run a cartridge audit job once.

Jobs are read from config/jobs.yaml. Parameters can be overridden on the
command line, or a step can be run without a job definition.

Usage:
    python scripts/run_job.py cartridge_path_comparison
    python scripts/run_job.py send_cartridge_difference --param emailTo=ops@example.com
    python scripts/run_job.py --step compare --param "hostInstances=['h1','h2']" --param ocapiVersion=v23_2
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv()

from cartridge_audit.config import JOB_STEPS, Config, JobDefinition, load_job_definitions
from cartridge_audit.logging_config import setup_logging
from cartridge_audit.results import ConfigError
from jobs.runner import run_job

logger = logging.getLogger("scripts.run_job")


def parse_params(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse ``key=value`` pairs."""
    params = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Invalid --param '{item}' (expected key=value)")
        params[key.strip()] = value
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a cartridge path audit job")
    parser.add_argument("job_id", nargs="?", help="Job id from the jobs config file")
    parser.add_argument("--step", choices=JOB_STEPS, help="Run a step without a job definition")
    parser.add_argument("--param", action="append", metavar="KEY=VALUE",
                        help="Parameter override (repeatable)")
    parser.add_argument("--jobs-file", help="Jobs config file (default: JOBS_CONFIG_FILE)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = Config()
    setup_logging(config.log_level)

    if not args.job_id and not args.step:
        parser.error("either a job id or --step is required")

    try:
        overrides = parse_params(args.param)
    except ValueError as e:
        parser.error(str(e))

    try:
        if args.job_id:
            jobs = load_job_definitions(args.jobs_file or config.jobs_file)
            if args.job_id not in jobs:
                logger.error(f"❌ Unknown job id: {args.job_id} (known: {', '.join(jobs)})")
                return 1
            job = jobs[args.job_id]
            if args.step and args.step != job.step:
                parser.error(f"job {job.job_id} runs step '{job.step}', not '{args.step}'")
        else:
            job = JobDefinition(job_id=f"adhoc_{args.step}", step=args.step)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return 1

    status = run_job(job, config, overrides)
    return status.exit_code


if __name__ == "__main__":
    sys.exit(main())
