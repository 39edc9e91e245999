"""Run configured job definitions with a per-run log."""

import logging
from typing import Any, Dict, Optional

from cartridge_audit.config import Config, JobDefinition
from cartridge_audit.logging_config import attach_run_log, detach_run_log
from cartridge_audit.results import StepStatus

from . import STEPS

logger = logging.getLogger(__name__)


def run_job(job: JobDefinition, config: Optional[Config] = None,
            overrides: Optional[Dict[str, Any]] = None, **step_kwargs) -> StepStatus:
    """
    Execute one job definition.

    Args:
        job: Job definition (step + parameter bag)
        config: Runtime configuration
        overrides: Parameters replacing those of the definition
        **step_kwargs: Passed through to the step (session, mailer, today...)

    Returns:
        The step's StepStatus
    """
    config = config or Config()
    step = STEPS[job.step]
    params = dict(job.parameters)
    params.update(overrides or {})

    handler = attach_run_log(config.run_logs_dir, job.job_id)
    logger.info("=" * 80)
    logger.info(f"🚀 JOB {job.job_id} ({job.step})")
    logger.info("=" * 80)

    status = None
    try:
        status = step(params, config=config, **step_kwargs)
        if status.is_error:
            logger.error(f"❌ Job {job.job_id} failed: {status.message}")
        else:
            logger.info(f"✅ Job {job.job_id} finished: {status.code} - {status.message}")
        return status
    finally:
        detach_run_log(handler, status.to_dict() if status else None)
