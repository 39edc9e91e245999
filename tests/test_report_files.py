import json
import logging
from datetime import date
from pathlib import Path

import pytest

from cartridge_audit.report_files import (
    ReportElement,
    SiteReport,
    archive_reports,
    collect_reports,
    parse_report,
    serialize_report,
    write_report,
)
from cartridge_audit.results import ErrorKind

TODAY = date(2024, 3, 5)


def _report(site_id: str, *pairs) -> SiteReport:
    report = SiteReport(site_id=site_id)
    for host_a, diff_a, host_b, diff_b in pairs:
        report.add_pair(host_a, host_b, diff_a, diff_b)
    return report


def test_write_report_creates_folder_and_pretty_json(tmp_path: Path) -> None:
    folder = tmp_path / "src" / "cartridge_compare"
    report = _report("RefArch", ("h1", ["c"], "h2", []))

    result = write_report(folder, "RefArch", report, TODAY)

    assert result.ok
    assert result.value == folder / "cartridge_difference_20240305_RefArch.json"
    text = result.value.read_text(encoding="utf-8")
    assert text.startswith('{\n    "siteId": "RefArch"')
    assert json.loads(text) == {
        "siteId": "RefArch",
        "elementsToReport": [
            {"hostInstance": "h1", "cartridgediff": ["c"]},
            {"hostInstance": "h2", "cartridgediff": []},
        ],
    }


def test_write_report_overwrites_same_day_file(tmp_path: Path) -> None:
    write_report(tmp_path, "RefArch", _report("RefArch", ("h1", ["old"], "h2", [])), TODAY)
    result = write_report(tmp_path, "RefArch", _report("RefArch", ("h1", [], "h2", ["new"])), TODAY)

    data = json.loads(result.value.read_text(encoding="utf-8"))
    assert data["elementsToReport"][1]["cartridgediff"] == ["new"]
    assert len(list(tmp_path.glob("*.json"))) == 1


def test_write_report_failure_is_returned_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a folder", encoding="utf-8")

    result = write_report(blocker / "sub", "RefArch", _report("RefArch"), TODAY)

    assert not result.ok
    assert result.error is ErrorKind.PERSIST
    assert "RefArch" in result.message


def test_write_report_rejects_site_id_outside_folder(tmp_path: Path) -> None:
    folder = tmp_path / "w"

    result = write_report(folder, "../escape", _report("../escape"), TODAY)

    assert not result.ok
    assert result.error is ErrorKind.PERSIST
    assert not list(tmp_path.rglob("*.json"))


def test_serialize_parse_round_trip() -> None:
    report = _report("Site-ü", ("h1", ["a", "b"], "h2", ["ç"]), ("h3", [], "h4", []))
    assert parse_report(serialize_report(report)) == report


def test_parse_report_rejects_wrong_shape() -> None:
    with pytest.raises(ValueError):
        parse_report('{"siteId": "RefArch"}')
    with pytest.raises(ValueError):
        parse_report('[1, 2]')
    with pytest.raises(ValueError):
        parse_report('{"siteId": "x", "elementsToReport": [{"cartridgediff": []}]}')


@pytest.mark.parametrize("content", [
    '{"siteId": "S", "elementsToReport": [{"hostInstance": "h1", "cartridgediff": [null, 1]}]}',
    '{"siteId": "S", "elementsToReport": [{"hostInstance": 7, "cartridgediff": ["a"]}]}',
    '{"siteId": 42, "elementsToReport": []}',
])
def test_parse_report_rejects_non_string_values(content: str) -> None:
    with pytest.raises(ValueError):
        parse_report(content)


def test_collect_skips_report_with_non_string_cartridges(tmp_path: Path) -> None:
    bad = tmp_path / "cartridge_difference_20240305_S.json"
    bad.write_text('{"siteId": "S", "elementsToReport": '
                   '[{"hostInstance": "h1", "cartridgediff": [null, 1]}]}', encoding="utf-8")

    aggregate = collect_reports(tmp_path, TODAY)

    assert aggregate.is_empty
    assert not aggregate.has_diff_data
    assert aggregate.files == [bad]


def test_collect_missing_folder_returns_empty(tmp_path: Path) -> None:
    aggregate = collect_reports(tmp_path / "missing", TODAY)

    assert aggregate.is_empty
    assert aggregate.files == []
    assert not aggregate.has_diff_data


def test_collect_with_no_matching_files_returns_empty(tmp_path: Path) -> None:
    (tmp_path / "cartridge_difference_20240304_RefArch.json").write_text("{}", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")

    aggregate = collect_reports(tmp_path, TODAY)

    assert aggregate.is_empty
    assert aggregate.files == []


def test_collect_annotates_max_len_and_detects_diff(tmp_path: Path) -> None:
    write_report(tmp_path, "SiteA", _report("SiteA", ("h1", ["a", "b", "c"], "h2", ["d"])), TODAY)
    write_report(tmp_path, "SiteB", _report("SiteB", ("h3", [], "h4", [])), TODAY)
    write_report(tmp_path, "SiteC", _report("SiteC", ("h5", ["x"], "h6", [])), date(2024, 3, 4))

    aggregate = collect_reports(tmp_path, TODAY)

    assert [c.report.site_id for c in aggregate.reports] == ["SiteA", "SiteB"]
    assert [c.max_len for c in aggregate.reports] == [3, 0]
    assert aggregate.has_diff_data
    combined = aggregate.combined_results()
    assert combined[0]["maxLen"] == 3
    assert combined[0]["elementsToReport"][0]["hostInstance"] == "h1"


def test_collect_reports_without_diff(tmp_path: Path) -> None:
    write_report(tmp_path, "RefArch", _report("RefArch", ("h1", [], "h2", [])), TODAY)

    aggregate = collect_reports(tmp_path, TODAY)

    assert len(aggregate.reports) == 1
    assert aggregate.has_diff_data is False


def test_collect_skips_malformed_file_and_keeps_siblings(tmp_path: Path, caplog) -> None:
    write_report(tmp_path, "Good", _report("Good", ("h1", ["a"], "h2", [])), TODAY)
    bad = tmp_path / "cartridge_difference_20240305_Bad.json"
    bad.write_text('{"siteId": "Bad", "elementsToReport": [', encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="cartridge_audit.report_files"):
        aggregate = collect_reports(tmp_path, TODAY)

    assert [c.report.site_id for c in aggregate.reports] == ["Good"]
    assert bad in aggregate.files
    assert "cartridge_difference_20240305_Bad.json" in caplog.text
    assert "Content snippet" in caplog.text


def test_max_len_with_single_element() -> None:
    report = SiteReport("RefArch", [ReportElement("h1", ["a", "b"])])
    assert report.max_len == 2
    assert SiteReport("RefArch").max_len == 0


def test_archive_moves_files(tmp_path: Path) -> None:
    first = write_report(tmp_path, "SiteA", _report("SiteA"), TODAY).value
    second = write_report(tmp_path, "SiteB", _report("SiteB"), TODAY).value

    result = archive_reports(tmp_path, [first, second])

    assert result.ok
    archive = tmp_path / "archive"
    assert sorted(p.name for p in archive.iterdir()) == [first.name, second.name]
    assert not first.exists()
    assert not second.exists()


def test_archive_continues_after_failed_move(tmp_path: Path) -> None:
    present = write_report(tmp_path, "SiteA", _report("SiteA"), TODAY).value
    missing = tmp_path / "cartridge_difference_20240305_Gone.json"

    result = archive_reports(tmp_path, [missing, present])

    assert not result.ok
    assert result.error is ErrorKind.PERSIST
    assert "cartridge_difference_20240305_Gone.json" in result.message
    assert (tmp_path / "archive" / present.name).exists()
