"""
Report persistence for the cartridge audit jobs.

The comparison job writes one SiteReport per run into its working folder;
the notification job collects the day's reports, and archives them once the
notification has been sent.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import filenames
from .results import ErrorKind, Result

logger = logging.getLogger(__name__)

# Characters of file content included in parse error logs
CONTENT_SNIPPET_LENGTH = 200


class ReportFormatError(ValueError):
    """JSON content does not have the SiteReport shape."""


@dataclass
class ReportElement:
    host_instance: str
    cartridgediff: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"hostInstance": self.host_instance, "cartridgediff": list(self.cartridgediff)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportElement":
        if not isinstance(data, dict) or not isinstance(data.get("hostInstance"), str):
            raise ReportFormatError("report element has no hostInstance string")
        diff = data.get("cartridgediff") or []
        if not isinstance(diff, list) or not all(isinstance(c, str) for c in diff):
            raise ReportFormatError(f"cartridgediff of {data['hostInstance']} is not a list of strings")
        return cls(host_instance=data["hostInstance"], cartridgediff=list(diff))


@dataclass
class SiteReport:
    """Cartridge differences of every processed host pair of one site."""
    site_id: str
    elements_to_report: List[ReportElement] = field(default_factory=list)

    def add_pair(self, host_a: str, host_b: str, only_in_a: List[str], only_in_b: List[str]) -> None:
        self.elements_to_report.append(ReportElement(host_a, list(only_in_a)))
        self.elements_to_report.append(ReportElement(host_b, list(only_in_b)))

    @property
    def has_diff(self) -> bool:
        return any(element.cartridgediff for element in self.elements_to_report)

    @property
    def max_len(self) -> int:
        """Longer of the first two elements' diff lists (0 for a missing element)."""
        lengths = [len(element.cartridgediff) for element in self.elements_to_report[:2]]
        return max(lengths, default=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "siteId": self.site_id,
            "elementsToReport": [element.to_dict() for element in self.elements_to_report],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteReport":
        if not isinstance(data, dict):
            raise ReportFormatError("report is not a JSON object")
        elements = data.get("elementsToReport")
        if not isinstance(data.get("siteId"), str) or not isinstance(elements, list):
            raise ReportFormatError("report needs a siteId string and an elementsToReport list")
        return cls(
            site_id=data["siteId"],
            elements_to_report=[ReportElement.from_dict(element) for element in elements],
        )


@dataclass
class CollectedReport:
    """A SiteReport read back from disk."""
    report: SiteReport
    source: Path

    @property
    def max_len(self) -> int:
        return self.report.max_len

    def to_dict(self) -> Dict[str, Any]:
        data = self.report.to_dict()
        data["maxLen"] = self.max_len
        return data


@dataclass
class AggregateReport:
    """All reports collected for one day, plus every file matching that day."""
    reports: List[CollectedReport] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)

    @property
    def has_diff_data(self) -> bool:
        return any(collected.report.has_diff for collected in self.reports)

    @property
    def is_empty(self) -> bool:
        return not self.reports

    def combined_results(self) -> List[Dict[str, Any]]:
        """Template context: each report as a dict annotated with maxLen."""
        return [collected.to_dict() for collected in self.reports]


def serialize_report(report: SiteReport) -> str:
    return json.dumps(report.to_dict(), indent=4, ensure_ascii=False)


def parse_report(content: str) -> SiteReport:
    """
    Parse report JSON.

    Raises:
        ValueError: invalid JSON or not a SiteReport
    """
    return SiteReport.from_dict(json.loads(content))


def write_report(working_folder: Path, site_id: str, report: SiteReport,
                 today: Optional[date] = None) -> Result[Path]:
    """
    Write a site report into the working folder.

    The folder is created if needed and a report already written today for
    the same site is overwritten.

    Returns:
        Result holding the written file path, or a PERSIST failure
    """
    working_folder = Path(working_folder)
    try:
        file_path = working_folder / filenames.build_report_filename(site_id, today)
    except ValueError as e:
        logger.error(f"Cannot write diff for site {site_id}: {e}")
        return Result.failure(ErrorKind.PERSIST, str(e))

    try:
        working_folder.mkdir(parents=True, exist_ok=True)
        file_path.write_text(serialize_report(report), encoding="utf-8")
    except OSError as e:
        message = f"Error writing diff for site {site_id} to {file_path}: {e}"
        logger.error(message)
        return Result.failure(ErrorKind.PERSIST, message)

    logger.info(f"Differences JSON written to file: {file_path}")
    return Result.success(file_path)


def read_report_content(file_path: Path) -> str:
    """Read a report file line by line, joining the lines without separators."""
    with open(file_path, "r", encoding="utf-8") as f:
        return "".join(line.rstrip("\r\n") for line in f)


def read_report_file(file_path: Path) -> Result[SiteReport]:
    """
    Read and parse one report file.

    Returns:
        Result holding the report, or a PARSE failure (logged with a snippet)
    """
    try:
        content = read_report_content(file_path)
    except (OSError, UnicodeDecodeError) as e:
        message = f"Failed to read report file {file_path.name}: {e}"
        logger.error(message)
        return Result.failure(ErrorKind.PARSE, message)

    try:
        report = parse_report(content)
    except ValueError as e:
        message = f"Failed to parse JSON content from file: {file_path.name}"
        logger.error(message)
        logger.error(f"Error: {e}")
        logger.error(f"Content snippet: {content[:CONTENT_SNIPPET_LENGTH]}")
        return Result.failure(ErrorKind.PARSE, f"{message}: {e}")

    logger.debug(f"Parsed JSON from file: {file_path.name}")
    return Result.success(report)


def collect_reports(working_folder: Path, today: Optional[date] = None) -> AggregateReport:
    """
    Collect the reports written on ``today`` (default: current local date).

    A missing working folder yields an empty aggregate. Files that fail to
    parse are skipped but still listed in ``files`` so they get archived
    with the rest of the day's reports.
    """
    working_folder = Path(working_folder)
    aggregate = AggregateReport()

    if not working_folder.is_dir():
        logger.warning(f"Cartridge results folder does not exist or is not a directory: {working_folder}")
        return aggregate

    logger.info(f"Looking for cartridge diff files matching date: {filenames.date_stamp(today)}")

    for entry in sorted(working_folder.iterdir()):
        if not entry.is_file() or not filenames.matches_day(entry.name, today):
            logger.debug(f"Skipping file (pattern mismatch): {entry.name}")
            continue

        parsed_name = filenames.parse_report_filename(entry.name)
        site_hint = parsed_name[1] if parsed_name else "?"
        logger.debug(f"Processing file: {entry.name} (site {site_hint})")

        aggregate.files.append(entry)
        result = read_report_file(entry)
        if result.ok:
            aggregate.reports.append(CollectedReport(report=result.value, source=entry))

    logger.info(f"Collected {len(aggregate.reports)} report(s) from {len(aggregate.files)} file(s)")
    return aggregate


def archive_reports(working_folder: Path, files: List[Path]) -> Result[List[Path]]:
    """
    Move report files into ``{working_folder}/archive``.

    Every file is attempted even if an earlier move fails.

    Returns:
        Result holding the archived paths, or a PERSIST failure listing the
        files that could not be moved
    """
    archive_folder = Path(working_folder) / filenames.ARCHIVE_FOLDER
    try:
        archive_folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        message = f"Failed to create archive folder {archive_folder}: {e}"
        logger.error(message)
        return Result.failure(ErrorKind.PERSIST, message)

    archived: List[Path] = []
    failed: List[str] = []
    for file_path in files:
        target = archive_folder / Path(file_path).name
        try:
            Path(file_path).replace(target)
            archived.append(target)
        except OSError as e:
            logger.error(f"Failed to archive {file_path}: {e}")
            failed.append(Path(file_path).name)

    if failed:
        return Result.failure(ErrorKind.PERSIST, f"Failed to archive: {', '.join(failed)}")

    logger.info(f"Archived {len(archived)} file(s) to {archive_folder}")
    return Result.success(archived)
