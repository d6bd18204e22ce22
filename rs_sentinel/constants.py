"""Shared constants for RS Sentinel."""

SERVER_NAME = "RS Sentinel"
SERVER_VERSION = "0.3.0"

# Deployment profiles
MODE_PRODUCTION = "production"
MODE_TESTING = "testing"

# Token introspection provider
TIP_DEFAULT_PATH = "/auth/v1/token/introspect"
TIP_DEFAULT_PORT = 443
TIP_TIMEOUT = 10.0  # seconds per introspection call

# Catalogue server
CAT_DEFAULT_PATH = "/iudx/cat/v1/search"
CAT_DEFAULT_PORT = 443
CAT_TIMEOUT = 10.0  # seconds per catalogue query
CAT_ACCESS_POLICY_OPEN = "OPEN"
CAT_ACCESS_POLICY_SECURE = "SECURE"

# Resource ids are <domain>/<sha>/<server>/<group>[/<item>...]
GROUP_ID_SEGMENTS = 4
PROVIDER_ID_SEGMENTS = 2

# Introspection cache defaults
TIP_CACHE_TTL_AMOUNT = 30
TIP_CACHE_TTL_UNIT = "minutes"

# Sentinel token for anonymous access to open resources
PUBLIC_TOKEN = "public"
PUBLIC_CONSUMER = "public.consumer"
PUBLIC_PROVIDER = "public.provider"
PUBLIC_RESOURCE_PATTERN = "public/public/public/public/*"

# Identities returned by the testing profile for the sentinel token
TEST_CONSUMER = "test.consumer@example.org"
TEST_PROVIDER = "example.org/f7e044eee8122b5c87dce6e7ad64f3266afa41dc"

ADMIN_IDENTITY = "example.org/89a36273d77dac4cf38114fca1bbe64392547f86"

# Endpoint classification
ENDPOINT_WILDCARD = "/*"

OPEN_ENDPOINTS = (
    "/ngsi-ld/v1/entities",
    "/ngsi-ld/v1/temporal/entities",
    "/ngsi-ld/v1/entityOperations/query",
    "/ngsi-ld/v1/temporal/entityOperations/query",
)
ADAPTER_ENDPOINTS = ("/iudx/v1/adapter",)
SUBSCRIPTION_ENDPOINTS = ("/ngsi-ld/v1/subscription",)
MANAGEMENT_ENDPOINTS = (
    "/management/exchange",
    "/management/queue",
    "/management/bind",
    "/management/unbind",
    "/management/vhost",
)

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
