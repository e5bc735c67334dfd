"""Async clients for the Cloudflare Workers KV REST API.

Two clients share one request path:

- :class:`KVClient` is scoped to an account and manages namespaces.
- :class:`KVNamespaceClient` is scoped to one namespace and manages its
  keys. Obtain it from :meth:`KVClient.namespace` to reuse the account
  client's connection pool, or construct it directly.

Every call sends a single request (key listing sends one per page), logs a
warning on a non-2xx status without stopping, parses the body as JSON and
checks the envelope's ``success`` flag before reading ``result``.
"""

from typing import Any
from urllib.parse import quote

import httpx

from workers_kv.config import DEFAULT_API_BASE_URL, ClientConfig
from workers_kv.envelope import (
    ensure_success,
    get_result,
    require_list,
    require_object,
    require_str,
    require_uint,
)
from workers_kv.exceptions import ConfigError, NotFoundError, TransportError
from workers_kv.models import KeyValueWriteRequest, Namespace
from workers_kv.observability import Timer, get_logger

logger = get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT = 5.0


def build_headers(api_token: str) -> dict[str, str]:
    """Get API request headers."""
    return {
        "Authorization": f"Bearer {api_token}",
        "Content-Type": "application/json",
    }


class _BaseClient:
    """Credentials, headers and the pooled transport shared by both clients."""

    def __init__(
        self,
        account_id: str,
        api_token: str,
        url: str,
        api_base_url: str,
        connect_timeout: float,
        http_client: httpx.AsyncClient | None,
    ) -> None:
        self._account_id = account_id
        self._api_token = api_token
        self._url = url
        self._api_base_url = api_base_url
        self._headers = build_headers(api_token)

        # Only the read phase is unbounded
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=connect_timeout),
        )

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def api_token(self) -> str:
        return self._api_token

    @property
    def url(self) -> str:
        """Base URL every request of this client is built from."""
        return self._url

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self._url!r})"

    async def aclose(self) -> None:
        """Close the HTTP connection pool if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "_BaseClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request. Non-2xx statuses are logged, not raised."""
        try:
            with Timer() as timer:
                response = await self._http.request(
                    method,
                    url,
                    headers=self._headers,
                    json=json,
                    params=params,
                )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        context = self._log_context(
            method=method, url=url, status=response.status_code
        )
        logger.debug("KV API request", context=context, duration_ms=timer.duration_ms)

        if not response.is_success:
            logger.warning("Cloudflare returned an error HTTP status", context=context)

        return response

    def _log_context(self, **fields: Any) -> dict[str, Any]:
        """Log context tagged with the ids this client is scoped to."""
        return {"account_id": self._account_id, **fields}

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Response body is not valid JSON (HTTP {response.status_code}): {e}"
            ) from e

    async def _call(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a request and return its envelope once ``success`` is true."""
        response = await self._send(method, url, json=json, params=params)
        return ensure_success(self._parse_json(response))


class KVClient(_BaseClient):
    """Account-scoped client: list and create namespaces.

    Example:
        async with KVClient(account_id, api_token) as kv:
            namespace = await kv.create_namespace("sessions")
            store = kv.namespace(namespace.id)
            await store.write(KeyValueWriteRequest("a", "1"))
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the account client.

        Args:
            account_id: Cloudflare account ID
            api_token: API token sent as a bearer token
            api_base_url: API root, without trailing slash
            connect_timeout: Connection establishment timeout in seconds
            http_client: Externally managed client; never closed by this one
        """
        api_base_url = api_base_url.rstrip("/")
        super().__init__(
            account_id,
            api_token,
            f"{api_base_url}/accounts/{account_id}/storage/kv/namespaces",
            api_base_url,
            connect_timeout,
            http_client,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> "KVClient":
        """Create a client from loaded configuration."""
        return cls(
            config.account_id,
            config.api_token,
            api_base_url=config.api_base_url,
            connect_timeout=config.connect_timeout,
            http_client=http_client,
        )

    def namespace(self, namespace_id: str) -> "KVNamespaceClient":
        """Get a client for one namespace sharing this client's connection pool."""
        return KVNamespaceClient.from_kv_client(self, namespace_id)

    async def list_namespaces(self) -> list[Namespace]:
        """List the account's namespaces in the order the API returns them.

        Raises:
            ProtocolError: If any entry lacks a string ``id`` or ``title``
        """
        envelope = await self._call("GET", self._url)
        result = require_list(envelope, "result", "response")
        return [
            Namespace.from_result(item, f"result[{i}]")
            for i, item in enumerate(result)
        ]

    async def create_namespace(self, title: str) -> Namespace:
        """Create a namespace.

        Title rules (uniqueness, length) are enforced by the API; a rejection
        raises :class:`RemoteRejection` carrying the server's errors.
        """
        envelope = await self._call("POST", self._url, json={"title": title})
        result = require_object(envelope, "result", "response")
        namespace = Namespace.from_result(result)
        logger.info(
            "Namespace created",
            context=self._log_context(namespace_id=namespace.id, title=namespace.title),
        )
        return namespace


class KVNamespaceClient(_BaseClient):
    """Namespace-scoped client: manage the namespace and its keys."""

    def __init__(
        self,
        account_id: str,
        api_token: str,
        namespace_id: str,
        *,
        api_base_url: str = DEFAULT_API_BASE_URL,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the namespace client.

        Args:
            account_id: Cloudflare account ID
            api_token: API token sent as a bearer token
            namespace_id: ID of the namespace to operate on
            api_base_url: API root, without trailing slash
            connect_timeout: Connection establishment timeout in seconds
            http_client: Externally managed client; never closed by this one
        """
        api_base_url = api_base_url.rstrip("/")
        super().__init__(
            account_id,
            api_token,
            f"{api_base_url}/accounts/{account_id}/storage/kv/namespaces/{namespace_id}",
            api_base_url,
            connect_timeout,
            http_client,
        )
        self._namespace_id = namespace_id

    @classmethod
    def from_kv_client(cls, client: KVClient, namespace_id: str) -> "KVNamespaceClient":
        """Derive a namespace client that reuses ``client``'s connection pool."""
        return cls(
            client.account_id,
            client.api_token,
            namespace_id,
            api_base_url=client._api_base_url,
            http_client=client._http,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        namespace_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "KVNamespaceClient":
        """Create a client from configuration.

        Raises:
            ConfigError: If neither ``namespace_id`` nor the config names one
        """
        namespace_id = namespace_id or config.namespace_id
        if not namespace_id:
            raise ConfigError("namespace_id is required for KVNamespaceClient")
        return cls(
            config.account_id,
            config.api_token,
            namespace_id,
            api_base_url=config.api_base_url,
            connect_timeout=config.connect_timeout,
            http_client=http_client,
        )

    @property
    def namespace_id(self) -> str:
        return self._namespace_id

    def _log_context(self, **fields: Any) -> dict[str, Any]:
        return super()._log_context(namespace_id=self._namespace_id, **fields)

    def _key_url(self, endpoint: str, key: str) -> str:
        return f"{self._url}/{endpoint}/{quote(key, safe='')}"

    async def delete_namespace(self) -> None:
        """Delete this namespace and every key in it."""
        await self._call("DELETE", self._url)

    async def rename_namespace(self, new_title: str) -> None:
        """Change this namespace's title."""
        await self._call("PUT", self._url, json={"title": new_title})

    async def write(self, request: KeyValueWriteRequest) -> None:
        """Write one key through the bulk endpoint."""
        await self._call("PUT", f"{self._url}/bulk", json=[request.to_dict()])

    async def write_multiple(self, requests: list[KeyValueWriteRequest]) -> None:
        """Write several keys in one request.

        Only the envelope's ``success`` flag is checked; per-key results the
        API may return are not inspected. An empty list is still sent.
        """
        await self._call(
            "PUT",
            f"{self._url}/bulk",
            json=[request.to_dict() for request in requests],
        )

    async def delete(self, key: str) -> None:
        """Delete one key through the bulk endpoint."""
        await self._call("POST", f"{self._url}/bulk/delete", json=[key])

    async def delete_multiple(self, keys: list[str]) -> None:
        """Delete several keys in one request."""
        await self._call("POST", f"{self._url}/bulk/delete", json=list(keys))

    async def list_all_keys(self) -> list[str]:
        """List every key name in the namespace, following cursors.

        Pages are fetched one after another until the API returns an empty
        cursor. There is no page limit.

        Raises:
            ProtocolError: If a page lacks ``name``, ``cursor`` or ``count``
        """
        url = f"{self._url}/keys"
        keys: list[str] = []
        cursor = ""
        pages = 0

        while True:
            envelope = await self._call("GET", url, params={"cursor": cursor})
            pages += 1

            result = require_list(envelope, "result", "response")
            for i, item in enumerate(result):
                keys.append(require_str(item, "name", f"result[{i}]"))

            result_info = require_object(envelope, "result_info", "response")
            cursor = require_str(result_info, "cursor", "result_info")
            require_uint(result_info, "count", "result_info")

            if not cursor:
                break

        logger.debug("Listed keys", context=self._log_context(keys=len(keys), pages=pages))
        return keys

    async def read_metadata(self, key: str) -> Any:
        """Return the metadata stored with ``key`` as raw JSON."""
        envelope = await self._call("GET", self._key_url("metadata", key))
        return get_result(envelope)

    async def get(self, key: str) -> str:
        """Read the value stored under ``key``.

        The values endpoint returns the stored text itself rather than an
        envelope, so any status other than 404 yields the body verbatim.

        Raises:
            NotFoundError: If the API answers 404
            TransportError: If the 404 body is not JSON
        """
        response = await self._send("GET", self._key_url("values", key))

        if response.status_code == 404:
            body = self._parse_json(response)
            logger.error("Key not found", context=self._log_context(key=key))
            raise NotFoundError(key, body)

        return response.text
