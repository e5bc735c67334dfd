"""Parsing of the ``{success, result, result_info, errors}`` response envelope.

Every management endpoint of the API wraps its payload in the same JSON
object. The helpers here check ``success`` before anything else is read and
turn missing or mistyped fields into :class:`ProtocolError`.
"""

from typing import Any

from workers_kv.exceptions import ProtocolError, RemoteRejection


def check_success(payload: Any) -> bool:
    """Return the envelope's ``success`` flag.

    Raises:
        ProtocolError: If ``success`` is missing or is not a JSON boolean
    """
    if not isinstance(payload, dict) or "success" not in payload:
        raise ProtocolError("The returned JSON does not contain the 'success' field.")

    success = payload["success"]
    # bool only; 0/1 and "true" are contract violations
    if not isinstance(success, bool):
        raise ProtocolError("The returned 'success' field is not a boolean value.")
    return success


def ensure_success(payload: Any) -> dict[str, Any]:
    """Check the envelope and return it if the remote operation succeeded.

    Raises:
        ProtocolError: If ``success`` is missing or not a boolean
        RemoteRejection: If ``success`` is false
    """
    if not check_success(payload):
        raise RemoteRejection(payload)
    return payload


def get_result(envelope: dict[str, Any]) -> Any:
    """Return the ``result`` member of a successful envelope."""
    if "result" not in envelope:
        raise ProtocolError("The returned JSON does not contain the 'result' field.")
    return envelope["result"]


def require_object(obj: Any, field: str, where: str) -> dict[str, Any]:
    """Return ``obj[field]`` if it is a JSON object."""
    value = _require(obj, field, where)
    if not isinstance(value, dict):
        raise ProtocolError(f"The '{field}' field in '{where}' is not an object.")
    return value


def require_list(obj: Any, field: str, where: str) -> list[Any]:
    """Return ``obj[field]`` if it is a JSON array."""
    value = _require(obj, field, where)
    if not isinstance(value, list):
        raise ProtocolError(f"The '{field}' field in '{where}' is not an array.")
    return value


def require_str(obj: Any, field: str, where: str) -> str:
    """Return ``obj[field]`` if it is a JSON string."""
    value = _require(obj, field, where)
    if not isinstance(value, str):
        raise ProtocolError(f"The '{field}' field in '{where}' is not a string.")
    return value


def require_uint(obj: Any, field: str, where: str) -> int:
    """Return ``obj[field]`` if it is a non-negative JSON integer."""
    value = _require(obj, field, where)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ProtocolError(
            f"The '{field}' field in '{where}' is not an unsigned integer."
        )
    return value


def _require(obj: Any, field: str, where: str) -> Any:
    if not isinstance(obj, dict):
        raise ProtocolError(f"Expected an object in '{where}', got {type(obj).__name__}.")
    if field not in obj:
        raise ProtocolError(f"The '{field}' field cannot be found in '{where}'.")
    return obj[field]
