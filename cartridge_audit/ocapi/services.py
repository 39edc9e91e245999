"""
OCAPI service calls: OAuth2 token retrieval and Data API reads.

Both calls go through an injected ``requests.Session`` so tests (and the
scheduler) can substitute their own transport. Neither call raises: every
failure is logged with its host/service context and returned as a failed
``Result``.
"""

import base64
import logging
from typing import Any, List, Optional

import requests
from requests.adapters import HTTPAdapter

from . import constants
from .registry import ServiceRegistry
from ..cartridge_diff import normalize_cartridges
from ..results import ConfigError, ErrorKind, Result

logger = logging.getLogger(__name__)


def create_http_session() -> requests.Session:
    """Create requests session for OCAPI calls (no automatic retries)"""
    session = requests.Session()

    adapter = HTTPAdapter(max_retries=0, pool_connections=4, pool_maxsize=4)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    return session


def build_basic_auth(user: str, password: str) -> str:
    """Build the ``Authorization`` header value for HTTP basic auth."""
    encoded = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return constants.BASIC + encoded


def build_site_url(host: str, api_version: str, site_id: str) -> str:
    return constants.SITE_URL_TEMPLATE.format(host=host, version=api_version, site_id=site_id)


class OCAPIClient:
    """
    Client for the OCAPI token service and Data API.

    Args:
        session: HTTP session used for every call
        registry: Service registry holding token service URLs and credentials
        timeout: Per-request timeout in seconds (None = wait indefinitely)
    """

    def __init__(self, session: requests.Session, registry: ServiceRegistry,
                 timeout: Optional[float] = 30):
        self.session = session
        self.registry = registry
        self.timeout = timeout

    def get_token(self, service_name: Optional[str]) -> Result[str]:
        """
        Retrieve an access token with the client credentials grant.

        Args:
            service_name: Name of the token service in the registry

        Returns:
            Result holding the access token, or an AUTH failure
        """
        try:
            service = self.registry.get(service_name)
            if not service.url:
                raise ConfigError(f"Service '{service_name}' has no URL configured", ["url"])
            credential = service.credential
            if credential is None or not credential.is_complete:
                raise ConfigError(f"Service '{service_name}' has no complete credential", ["credential"])

            headers = {
                constants.CONTENT_TYPE: constants.APP_URL_ENCODED,
                constants.AUTHORIZATION: build_basic_auth(credential.user, credential.password),
            }
            response = self.session.post(
                service.url,
                headers=headers,
                data={constants.GRANT_TYPE: constants.CLIENT_CREDENTIALS},
                timeout=self.timeout
            )

            if not response.ok:
                message = f"Token service '{service_name}' responded with HTTP {response.status_code}"
                logger.error(message)
                return Result.failure(ErrorKind.AUTH, message)

            payload = response.json()
            token = payload.get("access_token") if isinstance(payload, dict) else None
            if not token:
                message = f"Token service '{service_name}' response has no access_token"
                logger.error(message)
                return Result.failure(ErrorKind.AUTH, message)

            logger.debug(f"Obtained OCAPI token from service '{service_name}'")
            return Result.success(token)

        except ConfigError as e:
            logger.error(f"getToken error: {e}")
            return Result.failure(ErrorKind.AUTH, str(e))
        except requests.exceptions.RequestException as e:
            logger.error(f"getToken error: request to token service '{service_name}' failed: {e}")
            return Result.failure(ErrorKind.AUTH, str(e))
        except ValueError as e:
            logger.error(f"getToken error: invalid JSON from token service '{service_name}': {e}")
            return Result.failure(ErrorKind.AUTH, f"Invalid token response: {e}")

    def call_data_ocapi(self, url: str, token: str, method: str = constants.GET,
                        body: Any = None) -> Result[Any]:
        """
        Make an authenticated Data API call.

        A ``text/plain;charset=UTF-8`` response is returned as text, anything
        else is parsed as JSON.

        Returns:
            Result holding the parsed response, or a FETCH failure
        """
        headers = {
            constants.CONTENT_TYPE: constants.APP_JSON,
            constants.AUTHORIZATION: f"{constants.TOKEN_TYPE} {token}",
        }
        try:
            response = self.session.request(
                method, url, headers=headers, json=body, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error while calling data OCAPI {url}: {e}")
            return Result.failure(ErrorKind.FETCH, str(e))

        if not response.ok:
            message = f"Server responded with code: {response.status_code} for {url}"
            logger.info(message)
            return Result.failure(ErrorKind.FETCH, message)

        if response.headers.get(constants.CONTENT_TYPE) == constants.TEXT_PLAIN_UTF8:
            return Result.success(response.text)

        try:
            return Result.success(response.json())
        except ValueError as e:
            logger.error(f"Error while parsing data OCAPI response from {url}: {e}")
            return Result.failure(ErrorKind.FETCH, f"Invalid JSON response: {e}")

    def fetch_cartridges(self, host: str, site_id: str, api_version: str,
                         token: str) -> Result[List[str]]:
        """
        Fetch the cartridge path of a site from one host.

        Args:
            host: Hostname of the instance
            site_id: Site to read
            api_version: OCAPI version (e.g. "v23_2")
            token: Bearer token from ``get_token``

        Returns:
            Result holding the normalized cartridge list, or a FETCH failure
        """
        url = build_site_url(host, api_version, site_id)
        result = self.call_data_ocapi(url, token)

        payload = result.value
        cartridges = payload.get("cartridges") if isinstance(payload, dict) else None
        if not result.ok or not cartridges or not isinstance(cartridges, str):
            message = f"Failed to get cartridges from host {host} for site {site_id}"
            logger.error(message)
            return Result.failure(ErrorKind.FETCH, message)

        return Result.success(normalize_cartridges(cartridges))
