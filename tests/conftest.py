import json
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
import requests  # noqa: E402

from cartridge_audit.config import Config  # noqa: E402
from cartridge_audit.ocapi import ServiceCredential, ServiceDefinition, ServiceRegistry  # noqa: E402

TOKEN_URL = "https://auth.example.com/oauth2/access_token"
TODAY = date(2024, 3, 5)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: Optional[str] = None,
                 content_type: str = "application/json"):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)
        self.headers = {"Content-Type": content_type}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Records requests and answers them from a url -> response map."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []

    def _answer(self, method: str, url: str, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.routes.get(url)
        if response is None:
            return FakeResponse(404, {"fault": {"type": "NotFound"}})
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def request(self, method, url, **kwargs):
        return self._answer(method, url, **kwargs)


class FakeTransport:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent = []

    def send(self, message) -> None:
        if self.error:
            raise self.error
        self.sent.append(message)


def site_url(host: str, site_id: str = "RefArch", version: str = "v23_2") -> str:
    return f"https://{host}/s/-/dw/data/{version}/sites/{site_id}"


def token_response(token: str = "tok-123") -> FakeResponse:
    return FakeResponse(200, {"access_token": token, "token_type": "Bearer", "expires_in": 1799})


def cartridges_response(cartridges: str) -> FakeResponse:
    return FakeResponse(200, {"id": "RefArch", "cartridges": cartridges})


@pytest.fixture
def registry() -> ServiceRegistry:
    return ServiceRegistry({
        "OCAPI.token": ServiceDefinition(
            name="OCAPI.token",
            url=TOKEN_URL,
            credential=ServiceCredential(user="client-id", password="client-secret"),
        )
    })


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        impex_root=str(tmp_path / "impex"),
        run_logs_dir=str(tmp_path / "logs"),
        templates_dir=str(ROOT / "templates"),
        site_id=None,
        token_service_name=None,
        fail_on_persist_error=False,
    )


@pytest.fixture
def connection_error() -> Exception:
    return requests.exceptions.ConnectionError("connection refused")
