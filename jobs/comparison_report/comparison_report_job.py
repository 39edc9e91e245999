"""
Cartridge Path Comparison Report - job step

Fetches the cartridge path of the current site from each configured host
pair, diffs each pair and writes the result as a dated JSON report into the
job's working folder.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

import requests

from cartridge_audit.cartridge_diff import compare_cartridges
from cartridge_audit.config import CompareJobParams, Config, load_job_params
from cartridge_audit.filenames import check_site_id
from cartridge_audit.ocapi import OCAPIClient, ServiceRegistry, create_http_session
from cartridge_audit.report_files import SiteReport, write_report
from cartridge_audit.results import ConfigError, StepStatus

logger = logging.getLogger(__name__)


def build_site_report(client: OCAPIClient, params: CompareJobParams, site_id: str,
                      token: str) -> Dict[str, Any]:
    """
    Compare every host pair and build the site report.

    A pair where either host could not be read is skipped.

    Returns:
        Dict with the report and the processed / skipped pair counts
    """
    report = SiteReport(site_id=site_id)
    processed = 0
    skipped = []

    for host_a, host_b in params.host_pairs:
        cartridges_a = client.fetch_cartridges(host_a, site_id, params.ocapi_version, token)
        cartridges_b = client.fetch_cartridges(host_b, site_id, params.ocapi_version, token)

        if not (cartridges_a.ok and cartridges_b.ok):
            logger.warning(f"Skipping host pair due to fetch error: {host_a}, {host_b}")
            skipped.append([host_a, host_b])
            continue

        diff = compare_cartridges(cartridges_a.value, cartridges_b.value)
        report.add_pair(host_a, host_b, diff.only_in_a, diff.only_in_b)
        processed += 1

        if diff.is_empty:
            logger.info(f"   {host_a} <-> {host_b}: identical cartridge paths")
        else:
            logger.info(
                f"   {host_a} <-> {host_b}: {len(diff.only_in_a)} only on {host_a}, "
                f"{len(diff.only_in_b)} only on {host_b}"
            )

    return {"report": report, "processed": processed, "skipped": skipped}


def execute(args: Optional[Dict[str, Any]],
            config: Optional[Config] = None,
            session: Optional[requests.Session] = None,
            registry: Optional[ServiceRegistry] = None,
            today: Optional[date] = None) -> StepStatus:
    """
    Run the comparison step.

    Args:
        args: Job parameter bag (hostInstances, ocapiVersion, serviceName,
            workingfolder, siteId, disableStep)
        config: Runtime configuration (default: from environment)
        session: HTTP session for OCAPI calls (default: new session)
        registry: Service registry (default: loaded from config.services_file)
        today: Report date (default: current local date)

    Returns:
        StepStatus; ERROR for missing arguments, a bad host list or a failed
        token request, OK otherwise
    """
    config = config or Config()

    try:
        params = load_job_params(CompareJobParams, args)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return StepStatus.error("Missing required arguments.", fields=e.fields)

    if params.disable_step:
        logger.info("Step disabled - skipping cartridge comparison")
        return StepStatus.disabled()

    hosts = params.host_instances
    if len(hosts) < 2 or len(hosts) % 2 != 0:
        return StepStatus.error("hostInstances must contain even number of hosts to form pairs.")

    site_id = params.site_id or config.site_id
    if not site_id:
        return StepStatus.error("Missing required arguments.", fields=["siteId"])

    try:
        check_site_id(site_id)
    except ValueError as e:
        logger.error(f"❌ {e}")
        return StepStatus.error("Invalid siteId.", fields=["siteId"])

    try:
        registry = registry or ServiceRegistry.from_file(config.services_file)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return StepStatus.error(str(e))

    client = OCAPIClient(session or create_http_session(), registry, timeout=config.ocapi_timeout)

    token = client.get_token(params.service_name or config.token_service_name)
    if not token.ok:
        logger.error("❌ Failed to fetch OCAPI token")
        return StepStatus.error("OCAPI token failed.")

    logger.info(f"Comparing cartridges for site: {site_id}")
    outcome = build_site_report(client, params, site_id, token.value)
    report: SiteReport = outcome["report"]

    working_folder = config.working_folder_path(params.working_folder or config.default_working_folder)
    written = write_report(working_folder, site_id, report, today)

    details = {
        "siteId": site_id,
        "reportFile": str(written.value) if written.ok else None,
        "pairsProcessed": outcome["processed"],
        "pairsSkipped": outcome["skipped"],
        "report": report.to_dict(),
    }

    if not written.ok:
        if config.fail_on_persist_error:
            return StepStatus.error(written.message, **details)
        details["persistError"] = written.message

    logger.info(
        f"✅ Cartridge comparison completed for {site_id}: "
        f"{outcome['processed']} pair(s) compared, {len(outcome['skipped'])} skipped"
    )
    return StepStatus.ok("Cartridge comparison completed.", **details)
