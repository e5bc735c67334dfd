"""Value types exchanged with the KV API."""

from dataclasses import dataclass, replace
from typing import Any

from workers_kv.envelope import require_str


@dataclass(frozen=True)
class Namespace:
    """A KV namespace as reported by the API."""

    id: str
    title: str

    @classmethod
    def from_result(cls, obj: Any, where: str = "result") -> "Namespace":
        """Build a namespace from a ``{"id", "title"}`` JSON object."""
        return cls(
            id=require_str(obj, "id", where),
            title=require_str(obj, "title", where),
        )


@dataclass(frozen=True)
class KeyValueWriteRequest:
    """One key/value pair for the bulk write endpoint.

    Instances are immutable. Each modifier returns a copy with a single
    field changed:

        request = (
            KeyValueWriteRequest("session:1", "payload")
            .set_ttl_seconds(3600)
            .set_metadata({"owner": "alice"})
        )

    ``expiration`` and ``expiration_ttl`` are mutually exclusive for the API,
    but both may be set here; the server decides.
    """

    key: str
    value: str
    base64: bool = False
    expiration: int | None = None  # absolute unix timestamp
    expiration_ttl: int | None = None  # seconds from now
    metadata: Any = None

    def enable_base64(self) -> "KeyValueWriteRequest":
        """Mark ``value`` as already base64-encoded."""
        return replace(self, base64=True)

    def set_ttl_seconds(self, seconds: int) -> "KeyValueWriteRequest":
        """Expire the key ``seconds`` after the write."""
        return replace(self, expiration_ttl=seconds)

    def set_ttl_at_timestamp(self, timestamp: int) -> "KeyValueWriteRequest":
        """Expire the key at an absolute unix timestamp."""
        return replace(self, expiration=timestamp)

    def set_metadata(self, metadata: Any) -> "KeyValueWriteRequest":
        """Attach arbitrary JSON-serializable metadata."""
        return replace(self, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the bulk write JSON shape."""
        return {
            "key": self.key,
            "value": self.value,
            "base64": self.base64,
            "expiration": self.expiration,
            "expiration_ttl": self.expiration_ttl,
            "metadata": self.metadata,
        }
