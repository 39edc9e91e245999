"""
Send Site Cartridge Path Difference - job step

Collects the cartridge difference reports written today, mails them (or a
"no differences found" notice) and archives the processed files.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from cartridge_audit.config import NO_DIFF_TEMPLATE, Config, NotifyJobParams, load_job_params
from cartridge_audit.mail import Mailer, SMTPTransport
from cartridge_audit.report_files import archive_reports, collect_reports
from cartridge_audit.results import ConfigError, StepStatus

logger = logging.getLogger(__name__)


def execute(args: Optional[Dict[str, Any]],
            config: Optional[Config] = None,
            mailer: Optional[Mailer] = None,
            today: Optional[date] = None) -> StepStatus:
    """
    Run the notification step.

    Args:
        args: Job parameter bag (emailTo, emailFrom, emailCC, emailSubject,
            emailSubjectWithoutDiff, template, workingfolder)
        config: Runtime configuration (default: from environment)
        mailer: Mailer to send with (default: SMTP mailer from config)
        today: Report date to collect (default: current local date)

    Returns:
        StepStatus; ERROR for missing arguments or when the mail could not be
        sent (files are then left in place for the next run)
    """
    config = config or Config()
    logger.info("Starting Site Cartridge Path Comparison Email Job")

    try:
        params = load_job_params(NotifyJobParams, args)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return StepStatus.error("Missing required arguments.", fields=e.fields)

    working_folder = config.working_folder_path(params.working_folder or config.default_working_folder)
    aggregate = collect_reports(working_folder, today)

    if aggregate.is_empty:
        logger.info("No valid cartridge diff JSON data found to process.")
        return StepStatus.ok("No report data to send.", filesFound=len(aggregate.files))

    has_diff_data = aggregate.has_diff_data
    if has_diff_data:
        subject = params.email_subject
        template = params.template
        context = {"combinedResults": aggregate.combined_results()}
    else:
        logger.info("No cartridge path differences found in audit data.")
        subject = params.subject_without_diff
        template = NO_DIFF_TEMPLATE
        context = {}

    mailer = mailer or Mailer(config.templates_dir, SMTPTransport.from_config(config))

    logger.info("Sending cartridge comparison report via email")
    sent = mailer.send_mail(
        params.email_from,
        params.email_to,
        params.email_cc,
        subject,
        template,
        context
    )
    if not sent.ok:
        logger.error(f"❌ Failed to send audit email: {sent.message}")
        return StepStatus.error("Failed to send audit email.", error=sent.message)

    archived = archive_reports(working_folder, aggregate.files)
    details = {
        "hasDiffData": has_diff_data,
        "reports": len(aggregate.reports),
        "archived": [p.name for p in archived.value] if archived.ok else [],
    }
    if not archived.ok:
        details["archiveError"] = archived.message

    return StepStatus.ok("Cartridge difference email sent.", **details)
