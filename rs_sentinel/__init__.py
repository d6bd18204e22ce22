"""
RS Sentinel - access-control core for a multi-tenant data-exchange resource server.

RS Sentinel decides whether a bearer token may call a resource-server API
endpoint, combining token introspection, catalogue resource classification
and endpoint-specific access policies.
"""

from rs_sentinel.constants import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION
__app_name__ = SERVER_NAME

__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "__version__",
    "__app_name__",
]
