"""workers-kv - An async client for the Cloudflare Workers KV REST API."""

from workers_kv.client import KVClient, KVNamespaceClient
from workers_kv.config import ClientConfig
from workers_kv.exceptions import (
    ConfigError,
    KVError,
    NotFoundError,
    ProtocolError,
    RemoteRejection,
    TransportError,
)
from workers_kv.models import KeyValueWriteRequest, Namespace
from workers_kv.observability import (
    LogLevel,
    RequestContext,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__version__ = "0.1.0"
__all__ = [
    # Clients
    "KVClient",
    "KVNamespaceClient",
    # Models
    "KeyValueWriteRequest",
    "Namespace",
    # Config
    "ClientConfig",
    # Errors
    "ConfigError",
    "KVError",
    "NotFoundError",
    "ProtocolError",
    "RemoteRejection",
    "TransportError",
    # Observability
    "LogLevel",
    "RequestContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
