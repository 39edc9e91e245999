"""
Service registry for OCAPI calls.

Services are declared in ``config/services.yaml``. Credentials are never
stored in the file itself; each service names the environment variables that
hold its client id and secret:

    services:
      OCAPI.token:
        url: https://account.demandware.com/dw/oauth2/access_token
        credential:
          user_env: OCAPI_CLIENT_ID
          password_env: OCAPI_CLIENT_SECRET
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..results import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ServiceCredential:
    user: Optional[str] = None
    password: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.user) and bool(self.password)


@dataclass
class ServiceDefinition:
    """A named HTTP service: its URL and the credential used to call it."""
    name: str
    url: Optional[str] = None
    credential: Optional[ServiceCredential] = None


class ServiceRegistry:
    """Lookup of configured services by name."""

    def __init__(self, services: Optional[Dict[str, ServiceDefinition]] = None):
        self._services = dict(services or {})

    def names(self):
        return list(self._services)

    def get(self, name: str) -> ServiceDefinition:
        """
        Get a service definition by name.

        Raises:
            ConfigError: service name is empty or not configured
        """
        if not name:
            raise ConfigError("Missing required parameter: serviceName", ["serviceName"])
        try:
            return self._services[name]
        except KeyError:
            raise ConfigError(f"Service '{name}' is not configured", ["serviceName"])

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ServiceRegistry":
        services = {}
        for name, entry in (raw.get("services") or {}).items():
            entry = entry or {}
            credential = None
            cred_cfg = entry.get("credential")
            if cred_cfg:
                credential = ServiceCredential(
                    user=_resolve_secret(cred_cfg, "user"),
                    password=_resolve_secret(cred_cfg, "password"),
                )
            services[name] = ServiceDefinition(name=name, url=entry.get("url"), credential=credential)
        return cls(services)

    @classmethod
    def from_file(cls, path: Path) -> "ServiceRegistry":
        """
        Load the registry from a YAML file.

        Raises:
            ConfigError: file missing or invalid YAML
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Services config file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in services config file: {e}")

        registry = cls.from_dict(raw)
        logger.debug(f"Loaded {len(registry.names())} services from {path}")
        return registry


def _resolve_secret(cred_cfg: Dict[str, Any], key: str) -> Optional[str]:
    # An explicit value wins over the named environment variable
    if cred_cfg.get(key):
        return str(cred_cfg[key])
    env_name = cred_cfg.get(f"{key}_env")
    return os.getenv(env_name) if env_name else None
