"""
Result and status types shared by the cartridge audit job steps.

Fallible operations return a tagged ``Result`` instead of raising, so the job
steps can decide which failures are local (skip one host pair or one file)
and which ones fail the whole step.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories used across the job steps."""
    CONFIG = "config"
    AUTH = "auth"
    FETCH = "fetch"
    PERSIST = "persist"
    PARSE = "parse"
    NOTIFY = "notify"


class CartridgeAuditError(Exception):
    """Base exception for cartridge audit errors"""
    kind = ErrorKind.CONFIG


class ConfigError(CartridgeAuditError):
    """Missing or invalid configuration / job parameters."""

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


@dataclass
class Result(Generic[T]):
    """Success or failure of a single operation."""
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, message: str = "") -> "Result[T]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Result[T]":
        return cls(error=error, message=message)


@dataclass
class StepStatus:
    """
    Outcome of a job step, as reported back to the scheduler.

    ``status`` is OK or ERROR; ``code`` refines it (OK, DISABLED, ERROR).
    """
    status: str
    code: str
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    OK = "OK"
    ERROR = "ERROR"
    DISABLED = "DISABLED"

    @classmethod
    def ok(cls, message: str = "", code: str = "OK", **details) -> "StepStatus":
        return cls(status=cls.OK, code=code, message=message, details=details)

    @classmethod
    def disabled(cls, message: str = "Step disabled.") -> "StepStatus":
        return cls(status=cls.OK, code=cls.DISABLED, message=message)

    @classmethod
    def error(cls, message: str, **details) -> "StepStatus":
        return cls(status=cls.ERROR, code=cls.ERROR, message=message, details=details)

    @property
    def is_error(self) -> bool:
        return self.status == self.ERROR

    @property
    def exit_code(self) -> int:
        return 1 if self.is_error else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }
