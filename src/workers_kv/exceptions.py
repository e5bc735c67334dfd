"""Workers KV client exceptions."""

import json
from typing import Any


class KVError(Exception):
    """Base exception for workers-kv."""

    pass


class ConfigError(KVError):
    """Configuration error."""

    pass


class TransportError(KVError):
    """Connection failure, timeout, or a response body that is not JSON."""

    pass


class ProtocolError(KVError):
    """Response JSON is missing or mistypes a field the API contract requires."""

    pass


class RemoteRejection(KVError):
    """The API answered with ``success: false``.

    The message is the full envelope serialized as JSON so the server's
    diagnostics reach the caller untouched.
    """

    def __init__(self, envelope: dict[str, Any]) -> None:
        self.envelope = envelope
        errors = envelope.get("errors")
        self.errors: list[Any] = errors if isinstance(errors, list) else []
        super().__init__(json.dumps(envelope, separators=(",", ":")))


class NotFoundError(KVError):
    """Value read returned HTTP 404."""

    def __init__(self, key: str, body: Any) -> None:
        self.key = key
        self.body = body
        super().__init__(json.dumps(body, separators=(",", ":")))
