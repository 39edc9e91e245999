"""Logging configuration for the cartridge path audit jobs."""

import json
import logging
import os
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        if not sys.stdout.isatty():
            return super().format(record)

        # Color a copy so file handlers sharing the record stay plain
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"
        record.name = f"\033[34m{record.name}{self.RESET}"  # Blue for logger name
        return super().format(record)


def setup_logging(log_level: Optional[str] = None) -> None:
    """Setup centralized logging configuration for the jobs and drivers."""

    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    configure_job_loggers()
    configure_external_loggers()


def configure_job_loggers() -> None:
    """Configure logging for the project's own packages."""
    job_level = os.getenv("JOB_LOG_LEVEL", "INFO")

    job_loggers = [
        'cartridge_audit',
        'jobs',
        'scripts',
    ]

    for logger_name in job_loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, job_level.upper(), logging.INFO))


def configure_external_loggers() -> None:
    """Configure logging levels for external libraries."""
    external_loggers = {
        'urllib3': logging.WARNING,
        'requests': logging.WARNING,
        'apscheduler': logging.INFO,
        'uvicorn.access': logging.WARNING,
    }

    for logger_name, level in external_loggers.items():
        logging.getLogger(logger_name).setLevel(level)


class RunLogHandler(logging.FileHandler):
    """
    File handler that captures the log records of one job run.

    Each run gets its own folder ``{logs_dir}/{job_id}_{timestamp}`` holding
    ``run.log`` and, once the run is finished, ``metadata.json``. Only records
    emitted by the thread that started the run are written.
    """

    def __init__(self, logs_dir: Path, job_id: str):
        self.job_id = job_id
        self.start_time = datetime.now()
        self.thread_id = threading.get_ident()
        run_name = f"{job_id}_{self.start_time.strftime('%Y%m%d_%H%M%S_%f')}"
        self.run_dir = _create_run_dir(Path(logs_dir), run_name)
        super().__init__(self.run_dir / "run.log", mode='a', encoding='utf-8')
        self.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%H:%M:%S'
        ))

    def filter(self, record):
        if record.thread != self.thread_id:
            return False
        return super().filter(record)

    @property
    def metadata_file(self) -> Path:
        return self.run_dir / "metadata.json"


def _create_run_dir(logs_dir: Path, name: str) -> Path:
    logs_dir.mkdir(parents=True, exist_ok=True)
    run_dir = logs_dir / name
    counter = 1
    while True:
        try:
            run_dir.mkdir()
            return run_dir
        except FileExistsError:
            run_dir = logs_dir / f"{name}_{counter}"
            counter += 1


def attach_run_log(logs_dir: Path, job_id: str, log_level: int = logging.DEBUG) -> RunLogHandler:
    """
    Add a per-run file handler to the root logger.

    Args:
        logs_dir: Base directory for run logs
        job_id: Job identifier, used in the run folder name
        log_level: Minimum level written to the run log

    Returns:
        The handler, to be passed to ``detach_run_log`` when the run ends
    """
    handler = RunLogHandler(logs_dir, job_id)
    handler.setLevel(log_level)
    logging.getLogger().addHandler(handler)
    return handler


def detach_run_log(handler: RunLogHandler, status: Optional[Dict[str, Any]] = None) -> None:
    """
    Remove a per-run file handler and write the run's metadata.json.

    Args:
        handler: Handler returned by ``attach_run_log``
        status: Step status dict recorded in the metadata
    """
    logging.getLogger().removeHandler(handler)
    handler.close()

    end_time = datetime.now()
    metadata = {
        "job_id": handler.job_id,
        "run_start": handler.start_time.isoformat(),
        "run_end": end_time.isoformat(),
        "duration_seconds": (end_time - handler.start_time).total_seconds(),
        "status": status,
    }
    with open(handler.metadata_file, 'w', encoding='utf-8') as f:
        json.dump(metadata, f, indent=2, ensure_ascii=False, default=str)
