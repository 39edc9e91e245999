#!/usr/bin/env python3
"""
Cartridge Audit Scheduler

Runs every enabled job of config/jobs.yaml on its cron schedule:
1. Comparison jobs write the day's cartridge difference reports
2. The notification job mails and archives them later the same day

The notification job must be scheduled after every comparison job of the
day has finished; the jobs share the working folder without locking.

Usage:
    python scripts/cartridge_scheduler.py
"""

import sys
import time
import logging
from pathlib import Path
from typing import Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv()

from cartridge_audit.config import Config, JobDefinition, load_job_definitions
from cartridge_audit.logging_config import setup_logging
from cartridge_audit.results import ConfigError
from jobs.runner import run_job

logger = logging.getLogger("scripts.cartridge_scheduler")


def scheduled_run(job: JobDefinition, config: Config) -> None:
    """Scheduled job run"""
    logger.info(f"⏰ Scheduled run triggered: {job.job_id}")
    run_job(job, config)


def schedule_jobs(scheduler, jobs: Dict[str, JobDefinition], config: Config) -> int:
    """
    Register every enabled job that has a schedule.

    Returns:
        Number of jobs registered
    """
    count = 0
    for job in jobs.values():
        if not job.enabled:
            logger.info(f"   • {job.job_id}: disabled")
            continue
        if not job.schedule:
            logger.info(f"   • {job.job_id}: no schedule (manual only)")
            continue

        scheduler.add_job(
            scheduled_run,
            CronTrigger.from_crontab(job.schedule),
            args=[job, config],
            id=job.job_id,
            name=job.description or job.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        logger.info(f"   • {job.job_id} ({job.step}): {job.schedule}")
        count += 1
    return count


def start_scheduler(config: Optional[Config] = None) -> BackgroundScheduler:
    """Create and start a background scheduler for the configured jobs."""
    config = config or Config()
    jobs = load_job_definitions(config.jobs_file)

    scheduler = BackgroundScheduler()
    logger.info("📅 Scheduled jobs:")
    schedule_jobs(scheduler, jobs, config)
    scheduler.start()
    logger.info("✅ Scheduler started")
    return scheduler


def main():
    """Main scheduler loop"""
    config = Config()
    setup_logging(config.log_level)

    logger.info("=" * 80)
    logger.info("🚀 CARTRIDGE AUDIT SCHEDULER STARTING")
    logger.info("=" * 80)

    try:
        scheduler = start_scheduler(config)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    logger.info("🛑 Press Ctrl+C to stop")

    # Keep running
    try:
        while True:
            time.sleep(60)
    except (KeyboardInterrupt, SystemExit):
        logger.info("🛑 Stopping scheduler...")
        scheduler.shutdown()
        logger.info("✅ Scheduler stopped")


if __name__ == "__main__":
    main()
