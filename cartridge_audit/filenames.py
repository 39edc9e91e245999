"""
Report file naming.

Reports are stored as ``cartridge_difference_{YYYYMMDD}_{siteId}.json``; the
writer and the collector both go through this module so the convention lives
in one place.
"""

from datetime import date, datetime
from typing import Optional, Tuple

REPORT_PREFIX = "cartridge_difference_"
REPORT_SUFFIX = ".json"
DATE_FORMAT = "%Y%m%d"
ARCHIVE_FOLDER = "archive"

# Site ids end up in file names inside the working folder
UNSAFE_SITE_ID_PARTS = ("/", "\\", "..")


def date_stamp(day: Optional[date] = None) -> str:
    """Format ``day`` (default: today, local time) as YYYYMMDD."""
    return (day or datetime.now().date()).strftime(DATE_FORMAT)


def day_prefix(day: Optional[date] = None) -> str:
    return f"{REPORT_PREFIX}{date_stamp(day)}"


def check_site_id(site_id: str) -> str:
    """
    Reject site ids that cannot be used as part of a report file name.

    Raises:
        ValueError: site id contains a path separator or ".."
    """
    if any(part in site_id for part in UNSAFE_SITE_ID_PARTS):
        raise ValueError(f"siteId must not contain path separators: {site_id!r}")
    return site_id


def build_report_filename(site_id: str, day: Optional[date] = None) -> str:
    check_site_id(site_id)
    return f"{day_prefix(day)}_{site_id}{REPORT_SUFFIX}"


def matches_day(filename: str, day: Optional[date] = None) -> bool:
    """True if ``filename`` is a report file written on ``day``."""
    return filename.startswith(day_prefix(day)) and filename.endswith(REPORT_SUFFIX)


def parse_report_filename(filename: str) -> Optional[Tuple[date, str]]:
    """
    Split a report file name into its date and site id.

    Returns:
        (date, site_id), or None if the name does not follow the convention
    """
    if not filename.startswith(REPORT_PREFIX) or not filename.endswith(REPORT_SUFFIX):
        return None

    stem = filename[len(REPORT_PREFIX):-len(REPORT_SUFFIX)]
    stamp, sep, site_id = stem.partition("_")
    if not sep or not site_id:
        return None
    try:
        return datetime.strptime(stamp, DATE_FORMAT).date(), site_id
    except ValueError:
        return None
