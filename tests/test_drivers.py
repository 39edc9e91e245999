import json
import logging
import threading
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import main
from cartridge_audit.config import JobDefinition, load_job_definitions
from cartridge_audit.logging_config import attach_run_log, detach_run_log
from cartridge_audit.report_files import SiteReport, write_report
from jobs.runner import run_job
from scripts import cartridge_scheduler, run_job as run_job_cli
from conftest import ROOT, TODAY


class RecordingScheduler:
    def __init__(self):
        self.jobs = []

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))


def test_run_job_writes_run_log_and_metadata(config) -> None:
    job = JobDefinition(job_id="compare_disabled", step="compare", parameters={
        "hostInstances": "['h1','h2']",
        "ocapiVersion": "v23_2",
        "disableStep": True,
    })

    status = run_job(job, config)

    assert status.code == "DISABLED"
    run_dirs = list(Path(config.run_logs_dir).iterdir())
    assert len(run_dirs) == 1
    metadata = json.loads((run_dirs[0] / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["job_id"] == "compare_disabled"
    assert metadata["status"]["code"] == "DISABLED"
    assert (run_dirs[0] / "run.log").exists()


def test_repeated_runs_get_separate_run_folders(config) -> None:
    job = JobDefinition(job_id="compare_disabled", step="compare", parameters={
        "hostInstances": "['h1','h2']",
        "ocapiVersion": "v23_2",
        "disableStep": True,
    })

    run_job(job, config)
    run_job(job, config)

    run_dirs = list(Path(config.run_logs_dir).iterdir())
    assert len(run_dirs) == 2
    assert all((run_dir / "metadata.json").exists() for run_dir in run_dirs)


def test_run_log_ignores_records_from_other_threads(tmp_path: Path) -> None:
    job_logger = logging.getLogger("jobs.thread_check")
    handler = attach_run_log(tmp_path, "threads")
    try:
        job_logger.warning("from the run thread")
        other = threading.Thread(target=job_logger.warning, args=("from another run",))
        other.start()
        other.join()
    finally:
        detach_run_log(handler)

    text = (handler.run_dir / "run.log").read_text(encoding="utf-8")
    assert "from the run thread" in text
    assert "from another run" not in text


def test_run_job_overrides_parameters(config) -> None:
    job = JobDefinition(job_id="compare", step="compare", parameters={"ocapiVersion": "v23_2"})

    status = run_job(job, config, {"hostInstances": "['h1']"})

    assert status.is_error
    assert "even number" in status.message


def test_schedule_jobs_registers_enabled_scheduled_jobs(config) -> None:
    jobs = load_job_definitions(ROOT / "config" / "jobs.yaml")
    jobs["manual"] = JobDefinition(job_id="manual", step="compare")
    jobs["off"] = JobDefinition(job_id="off", step="notify", schedule="0 3 * * *", enabled=False)
    scheduler = RecordingScheduler()

    count = cartridge_scheduler.schedule_jobs(scheduler, jobs, config)

    assert count == 2
    ids = [kwargs["id"] for _, _, kwargs in scheduler.jobs]
    assert ids == ["cartridge_path_comparison", "send_cartridge_difference"]
    assert all(kwargs["max_instances"] == 1 for _, _, kwargs in scheduler.jobs)


def test_cli_parse_params() -> None:
    assert run_job_cli.parse_params(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}
    with pytest.raises(ValueError):
        run_job_cli.parse_params(["novalue"])


def test_cli_adhoc_step_exit_code(config, monkeypatch) -> None:
    monkeypatch.setattr(run_job_cli, "Config", lambda: config)

    code = run_job_cli.main(["--step", "compare", "--param", "hostInstances=['h1']",
                             "--param", "ocapiVersion=v23_2"])

    assert code == 1


def test_cli_unknown_job_id(config, monkeypatch) -> None:
    monkeypatch.setattr(run_job_cli, "Config", lambda: config)

    assert run_job_cli.main(["no_such_job", "--jobs-file", str(ROOT / "config" / "jobs.yaml")]) == 1


def test_api_reports_today_preview(config, monkeypatch) -> None:
    monkeypatch.setattr(main, "config", config)
    folder = config.working_folder_path(config.default_working_folder)
    report = SiteReport(site_id="RefArch")
    report.add_pair("h1", "h2", ["c"], [])
    write_report(folder, "RefArch", report)

    response = TestClient(main.app).get("/api/reports/today")

    assert response.status_code == 200
    data = response.json()
    assert data["hasDiffData"] is True
    assert data["combinedResults"][0]["maxLen"] == 1
    assert (folder / data["files"][0]).exists()


def test_api_compare_rejects_bad_host_list(config, monkeypatch) -> None:
    monkeypatch.setattr(main, "config", config)

    response = TestClient(main.app).post("/api/compare", json={
        "host_instances": ["h1", "h2", "h3"],
        "ocapi_version": "v23_2",
        "site_id": "RefArch",
    })

    assert response.status_code == 400
    assert response.json()["detail"]["status"] == "ERROR"


def test_api_unknown_job(config, monkeypatch) -> None:
    config.jobs_file = str(ROOT / "config" / "jobs.yaml")
    monkeypatch.setattr(main, "config", config)

    response = TestClient(main.app).post("/api/jobs/nope/run")

    assert response.status_code == 404


def test_api_health() -> None:
    response = TestClient(main.app).get("/health")
    assert response.json()["status"] == "healthy"
