"""HTTP constants used by the OCAPI service calls."""

GET = 'GET'

CONTENT_TYPE = 'Content-Type'
APP_URL_ENCODED = 'application/x-www-form-urlencoded'
APP_JSON = 'application/json'
TEXT_PLAIN_UTF8 = 'text/plain;charset=UTF-8'

AUTHORIZATION = 'Authorization'
TOKEN_TYPE = 'Bearer'
BASIC = 'Basic '

GRANT_TYPE = 'grant_type'
CLIENT_CREDENTIALS = 'client_credentials'

# Data API site resource, formatted with host, version and site id
SITE_URL_TEMPLATE = 'https://{host}/s/-/dw/data/{version}/sites/{site_id}'
