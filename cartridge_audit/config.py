"""Configuration management for the cartridge path audit jobs."""

import os
import json
import logging
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .filenames import check_site_id
from .results import ConfigError

logger = logging.getLogger(__name__)

# Project root and default locations
PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_IMPEX_ROOT = PROJECT_ROOT / "impex"
DEFAULT_SERVICES_FILE = PROJECT_ROOT / "config" / "services.yaml"
DEFAULT_JOBS_FILE = PROJECT_ROOT / "config" / "jobs.yaml"
DEFAULT_TEMPLATES_DIR = PROJECT_ROOT / "templates"
DEFAULT_RUN_LOGS_DIR = PROJECT_ROOT / "logs" / "jobs"

# Template used when no cartridge differences were found
NO_DIFF_TEMPLATE = "mail/utilitiesDifferenceNotFound.html"

JOB_STEPS = ("compare", "notify")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """Central configuration for the job steps and their drivers."""

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Filesystem layout
    impex_root: str = os.getenv("IMPEX_ROOT", str(DEFAULT_IMPEX_ROOT))
    default_working_folder: str = os.getenv("WORKING_FOLDER", "cartridge_compare")
    templates_dir: str = os.getenv("TEMPLATES_DIR", str(DEFAULT_TEMPLATES_DIR))
    run_logs_dir: str = os.getenv("RUN_LOGS_DIR", str(DEFAULT_RUN_LOGS_DIR))

    # Site scoped by the comparison job when the parameter bag has no siteId
    site_id: Optional[str] = os.getenv("SITE_ID")

    # OCAPI services
    services_file: str = os.getenv("SERVICES_CONFIG_FILE", str(DEFAULT_SERVICES_FILE))
    token_service_name: Optional[str] = os.getenv("OCAPI_TOKEN_SERVICE")
    ocapi_timeout: float = float(os.getenv("OCAPI_TIMEOUT", "30"))

    # Job definitions for the scheduler / CLI
    jobs_file: str = os.getenv("JOBS_CONFIG_FILE", str(DEFAULT_JOBS_FILE))
    scheduler_enabled: bool = _env_bool("SCHEDULER_ENABLED", "true")

    # Mail transport
    smtp_host: str = os.getenv("SMTP_HOST", "localhost")
    smtp_port: int = int(os.getenv("SMTP_PORT", "25"))
    smtp_username: Optional[str] = os.getenv("SMTP_USERNAME")
    smtp_password: Optional[str] = os.getenv("SMTP_PASSWORD")
    smtp_use_tls: bool = _env_bool("SMTP_USE_TLS")

    # A report that could not be written only gets logged unless this is set
    fail_on_persist_error: bool = _env_bool("FAIL_ON_PERSIST_ERROR")

    # API server
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "3000"))

    def validate(self) -> None:
        """Validate configuration and raise errors for missing required values."""
        required_fields = [
            ("impex_root", self.impex_root),
            ("templates_dir", self.templates_dir),
        ]

        missing = [name for name, value in required_fields if not value]
        if missing:
            raise ConfigError(f"Missing required configuration fields: {missing}", missing)

    def working_folder_path(self, working_folder: str) -> Path:
        """Resolve a job's working folder under ``{impex_root}/src``."""
        return Path(self.impex_root) / "src" / working_folder


# ============================================================================
# JOB PARAMETER BAGS
# ============================================================================

def parse_host_instances(value: Any) -> List[str]:
    """
    Parse the ``hostInstances`` job parameter.

    Accepts a JSON array string (single quotes are normalized to double
    quotes first) or an already parsed list. Unparseable input yields an
    empty list, which the comparison step then rejects as too short.
    """
    if isinstance(value, (list, tuple)):
        return [str(host) for host in value]

    try:
        hosts = json.loads(str(value).replace("'", '"'))
    except ValueError as e:
        logger.warning(f"Failed to parse hostInstances: {e}")
        return []

    if not isinstance(hosts, list):
        logger.warning(f"hostInstances is not a JSON array: {value!r}")
        return []
    return [str(host) for host in hosts]


def _require_value(v, name: str):
    if v is None or (isinstance(v, str) and not v.strip()) or (isinstance(v, (list, tuple)) and not v):
        raise ValueError(f"{name} is required")
    return v


class _JobParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    working_folder: Optional[str] = Field(default=None, alias="workingfolder")


class CompareJobParams(_JobParams):
    """Parameter bag of the cartridge path comparison step."""
    host_instances: List[str] = Field(alias="hostInstances")
    ocapi_version: str = Field(alias="ocapiVersion")
    service_name: Optional[str] = Field(default=None, alias="serviceName")
    site_id: Optional[str] = Field(default=None, alias="siteId")
    disable_step: bool = Field(default=False, alias="disableStep")

    @field_validator("host_instances", mode="before")
    @classmethod
    def validate_host_instances(cls, v):
        return parse_host_instances(_require_value(v, "hostInstances"))

    @field_validator("ocapi_version", mode="before")
    @classmethod
    def validate_ocapi_version(cls, v):
        return str(_require_value(v, "ocapiVersion")).strip()

    @field_validator("site_id", mode="before")
    @classmethod
    def validate_site_id(cls, v):
        if v is None or not str(v).strip():
            return None
        return check_site_id(str(v).strip())

    @property
    def host_pairs(self) -> List[tuple]:
        hosts = self.host_instances
        return [(hosts[i], hosts[i + 1]) for i in range(0, len(hosts) - 1, 2)]


class NotifyJobParams(_JobParams):
    """Parameter bag of the difference notification step."""
    email_to: List[str] = Field(alias="emailTo")
    email_from: str = Field(alias="emailFrom")
    email_cc: List[str] = Field(default_factory=list, alias="emailCC")
    email_subject: str = Field(alias="emailSubject")
    email_subject_without_diff: Optional[str] = Field(default=None, alias="emailSubjectWithoutDiff")
    template: str

    @field_validator("email_to", mode="before")
    @classmethod
    def validate_email_to(cls, v):
        return _split_addresses(_require_value(v, "emailTo"))

    @field_validator("email_cc", mode="before")
    @classmethod
    def validate_email_cc(cls, v):
        return _split_addresses(v) if v else []

    @field_validator("email_from", "email_subject", "template", mode="before")
    @classmethod
    def validate_required_text(cls, v, info):
        return str(_require_value(v, info.field_name)).strip()

    @property
    def subject_without_diff(self) -> str:
        return self.email_subject_without_diff or self.email_subject


def _split_addresses(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(",")
    return [item.strip() for item in items if str(item).strip()]


def load_job_params(model: type, args: Optional[Dict[str, Any]]):
    """
    Validate a raw parameter bag against ``model``.

    All missing or invalid keys are reported together in one ConfigError.
    """
    try:
        return model.model_validate(args or {})
    except ValidationError as e:
        fields = []
        for error in e.errors():
            loc = error.get("loc") or ("<root>",)
            name = str(loc[0])
            field_info = model.model_fields.get(name)
            if field_info is not None and field_info.alias:
                name = field_info.alias
            if name not in fields:
                fields.append(name)
        raise ConfigError(f"Missing required arguments: {', '.join(fields)}", fields) from e


# ============================================================================
# JOB DEFINITIONS (config/jobs.yaml)
# ============================================================================

@dataclass
class JobDefinition:
    """A scheduled job: which step to run, when, and with which parameters."""
    job_id: str
    step: str
    schedule: Optional[str] = None
    enabled: bool = True
    parameters: Dict[str, Any] = field(default_factory=dict)
    description: str = ""


def load_job_definitions(path: Optional[Path] = None) -> Dict[str, JobDefinition]:
    """
    Load job definitions from the jobs YAML file.

    Returns:
        Dict of job id -> JobDefinition, in file order

    Raises:
        ConfigError: file missing, invalid YAML, or invalid entries
    """
    path = Path(path or Config().jobs_file)
    if not path.exists():
        raise ConfigError(f"Jobs config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in jobs config file: {e}")

    entries = raw.get("jobs")
    if not entries:
        raise ConfigError(f"No jobs found in {path}")

    jobs: Dict[str, JobDefinition] = {}
    for entry in entries:
        job_id = entry.get("id")
        if not job_id:
            raise ConfigError("Job entry missing 'id' field", ["id"])
        if job_id in jobs:
            raise ConfigError(f"Duplicate job id in config: {job_id}", ["id"])

        step = entry.get("step")
        if step not in JOB_STEPS:
            raise ConfigError(
                f"Job '{job_id}' has invalid step {step!r} (expected one of {', '.join(JOB_STEPS)})",
                ["step"]
            )

        jobs[job_id] = JobDefinition(
            job_id=job_id,
            step=step,
            schedule=entry.get("schedule"),
            enabled=bool(entry.get("enabled", True)),
            parameters=dict(entry.get("parameters") or {}),
            description=entry.get("description", ""),
        )

    logger.info(f"Loaded {len(jobs)} job definitions from {path}")
    return jobs
