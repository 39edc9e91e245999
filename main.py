#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Cartridge Path Audit - API Server

Exposes the cartridge audit jobs over HTTP:
- Run a configured job (comparison or notification) on demand
- Run an ad-hoc comparison for a host list
- Preview today's collected reports without sending or archiving them

When SCHEDULER_ENABLED is true the configured jobs also run on their cron
schedules inside this process.

Server configuration via environment variables (defaults to 127.0.0.1:3000).
"""

import sys
import logging
from typing import Any, Dict, List, Optional, Union

import uvicorn
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from cartridge_audit.config import Config, JobDefinition, load_job_definitions
from cartridge_audit.logging_config import setup_logging
from cartridge_audit.report_files import collect_reports
from cartridge_audit.results import ConfigError
from jobs.runner import run_job

logger = logging.getLogger(__name__)

config = Config()

app = FastAPI(
    title="Cartridge Path Audit",
    description="Compare site cartridge paths across instance pairs and mail the differences",
    version="1.0.0"
)

scheduler = None


class CompareRequest(BaseModel):
    """Ad-hoc cartridge path comparison"""
    host_instances: Union[List[str], str] = Field(
        description="Host list (even length) or its JSON array string"
    )
    ocapi_version: str = Field(description="OCAPI version, e.g. 'v23_2'")
    site_id: Optional[str] = Field(default=None, description="Site to compare (default: SITE_ID)")
    service_name: Optional[str] = Field(default=None, description="Token service name")
    working_folder: Optional[str] = Field(default=None, description="Working folder under impex/src")

    @field_validator('ocapi_version')
    @classmethod
    def validate_ocapi_version(cls, v):
        if not v or not v.strip():
            raise ValueError('ocapi_version cannot be empty')
        return v.strip()

    def to_params(self) -> Dict[str, Any]:
        params = {
            "hostInstances": self.host_instances,
            "ocapiVersion": self.ocapi_version,
            "siteId": self.site_id,
            "serviceName": self.service_name,
            "workingfolder": self.working_folder,
        }
        return {key: value for key, value in params.items() if value is not None}


class RunJobRequest(BaseModel):
    """Parameter overrides for a configured job"""
    parameters: Dict[str, Any] = Field(default_factory=dict)


def _load_jobs() -> Dict[str, JobDefinition]:
    try:
        return load_job_definitions(config.jobs_file)
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "scheduler_running": bool(scheduler and scheduler.running),
    }


@app.get("/api/info")
async def api_info():
    """API information endpoint"""
    return {
        "service": "Cartridge Path Audit",
        "version": app.version,
        "steps": {
            "compare": "Fetch and diff cartridge paths of host pairs, write the day's report",
            "notify": "Mail the day's reports and archive them",
        },
        "endpoints": {
            "jobs": "/api/jobs",
            "run_job": "/api/jobs/{job_id}/run",
            "compare": "/api/compare",
            "today": "/api/reports/today",
        },
    }


@app.get("/api/jobs")
async def list_jobs():
    """List configured jobs"""
    jobs = _load_jobs()
    return {
        "jobs": [
            {
                "id": job.job_id,
                "step": job.step,
                "schedule": job.schedule,
                "enabled": job.enabled,
                "description": job.description,
            }
            for job in jobs.values()
        ]
    }


@app.post("/api/jobs/{job_id}/run")
def run_configured_job(job_id: str, request: Optional[RunJobRequest] = None):
    """Run a configured job now"""
    jobs = _load_jobs()
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail=f"Job '{job_id}' not found")

    overrides = request.parameters if request else {}
    status = run_job(jobs[job_id], config, overrides)
    return status.to_dict()


@app.post("/api/compare")
def compare_now(request: CompareRequest):
    """Run an ad-hoc cartridge path comparison"""
    job = JobDefinition(job_id="adhoc_compare", step="compare", parameters=request.to_params())
    status = run_job(job, config)
    if status.is_error:
        raise HTTPException(status_code=400, detail=status.to_dict())
    return status.to_dict()


@app.get("/api/reports/today")
def reports_today(working_folder: Optional[str] = None):
    """Preview today's collected reports (nothing is sent or archived)"""
    folder = config.working_folder_path(working_folder or config.default_working_folder)
    aggregate = collect_reports(folder)
    return {
        "workingFolder": str(folder),
        "files": [p.name for p in aggregate.files],
        "hasDiffData": aggregate.has_diff_data,
        "combinedResults": aggregate.combined_results(),
    }


@app.on_event("startup")
async def startup_event():
    """Start the job scheduler on server startup"""
    global scheduler
    if not config.scheduler_enabled:
        logger.info("ℹ️  Scheduler disabled (SCHEDULER_ENABLED=false)")
        return

    from scripts.cartridge_scheduler import start_scheduler
    try:
        scheduler = start_scheduler(config)
    except ConfigError as e:
        logger.error(f"❌ Scheduler not started: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the job scheduler on server shutdown"""
    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("✅ Scheduler stopped")


def main():
    """Start the API server"""
    setup_logging(config.log_level)

    logger.info("=" * 80)
    logger.info("🚀 CARTRIDGE PATH AUDIT SERVER")
    logger.info("=" * 80)
    logger.info(f"🌐 http://{config.host}:{config.port}")
    logger.info(f"📁 Impex root: {config.impex_root}")
    logger.info(f"📋 Jobs file: {config.jobs_file}")

    try:
        config.validate()
    except ConfigError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
