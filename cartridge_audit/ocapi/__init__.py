"""
OCAPI access for the cartridge audit jobs.

- Service registry (token service URL + credential per named service)
- OAuth2 client credentials token retrieval
- Data API site reads returning the site's cartridge path
"""

from .registry import ServiceCredential, ServiceDefinition, ServiceRegistry
from .services import OCAPIClient, build_basic_auth, build_site_url, create_http_session

__all__ = [
    'ServiceCredential',
    'ServiceDefinition',
    'ServiceRegistry',
    'OCAPIClient',
    'build_basic_auth',
    'build_site_url',
    'create_http_session',
]
