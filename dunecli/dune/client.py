"""Async HTTP client for the Dune Analytics API v1.

Wraps httpx.AsyncClient and maps every transport or HTTP failure onto the
domain exception hierarchy. Requests are never retried.

Endpoints:
    - POST /query/{query_id}/execute
    - GET  /execution/{execution_id}/status
    - GET  /execution/{execution_id}/results
    - GET  /query/{query_id}/results
    - GET  /materialized-views/{name}
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dunecli.config.settings import DEFAULT_API_URL
from dunecli.core.exceptions import ApiError, AuthError, NetworkError, RateLimitError
from dunecli.dune.models import (
    ExecutionHandle,
    ExecutionRequest,
    ExecutionStatus,
    MaterializedView,
    ResultPage,
    ResultsFilter,
)

API_KEY_HEADER = "X-Dune-API-Key"
DEFAULT_TIMEOUT = 30.0

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_TOO_MANY_REQUESTS = 429
HTTP_BAD_REQUEST = 400

ModelT = TypeVar("ModelT", bound=BaseModel)


def results_endpoint(identifier: str) -> str:
    """Results path for an execution ID or a query ID.

    A purely numeric (ASCII digits) identifier is a query ID and resolves
    to the latest results of that query; anything else is an execution ID.

    Example:
        >>> results_endpoint("3998990")
        '/query/3998990/results'
        >>> results_endpoint("01J5ZMD33P6J413G1KQM6QTE4S")
        '/execution/01J5ZMD33P6J413G1KQM6QTE4S/results'
    """
    identifier = identifier.strip()
    if identifier.isascii() and identifier.isdecimal():
        return f"/query/{int(identifier)}/results"
    return f"/execution/{quote(identifier, safe='')}/results"


def _error_message(response: httpx.Response) -> str:
    """Extract the API's error text (``{"error": "..."}``) or fall back to the body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text.strip() or response.reason_phrase


class AsyncDuneClient:
    """Async HTTP client for the Dune API.

    Uses httpx.AsyncClient with the API key header preset. ``transport`` can
    be injected (e.g. ``httpx.MockTransport``) for testing.

    Example:
        >>> async with AsyncDuneClient(api_key) as client:
        ...     handle = await client.execute_query(ExecutionRequest(query_id=3998990))
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: Dune API key.
            base_url: API base URL (up to and including ``/v1``).
            timeout: Request timeout in seconds.
            transport: Optional custom httpx transport.
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AsyncDuneClient:
        """Enter async context: create httpx client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={API_KEY_HEADER: self._api_key, "Accept": "application/json"},
            timeout=httpx.Timeout(self._timeout),
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context: close httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def execute_query(self, request: ExecutionRequest) -> ExecutionHandle:
        """Submit a query execution.

        API: POST /query/{query_id}/execute

        Args:
            request: Execution request (query id, engine size, parameters).

        Returns:
            ExecutionHandle with the new execution ID.
        """
        payload = request.to_payload()
        logger.debug(f"Executing query {request.query_id} with payload {payload}")
        data = await self._request("POST", f"/query/{request.query_id}/execute", json=payload)
        return self._decode(ExecutionHandle, data, "execute")

    async def get_execution_status(self, execution_id: str) -> ExecutionStatus:
        """Fetch the status of an execution.

        API: GET /execution/{execution_id}/status
        """
        path = f"/execution/{quote(execution_id.strip(), safe='')}/status"
        data = await self._request("GET", path)
        return self._decode(ExecutionStatus, data, "status")

    async def get_results_page(
        self,
        identifier: str,
        *,
        limit: int,
        offset: int = 0,
        results_filter: ResultsFilter | None = None,
    ) -> ResultPage:
        """Fetch one page of results.

        API: GET /execution/{id}/results or GET /query/{id}/results

        Args:
            identifier: Execution ID, or numeric query ID for its latest results.
            limit: Maximum rows in this page.
            offset: Row offset.
            results_filter: Optional server-side filters/columns/sort.
        """
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if results_filter is not None:
            params.update(results_filter.to_params())
        data = await self._request("GET", results_endpoint(identifier), params=params)
        return self._decode(ResultPage, data, "results")

    async def get_materialized_view(self, name: str) -> MaterializedView:
        """Fetch materialized view metadata.

        API: GET /materialized-views/{name}
        """
        data = await self._request("GET", f"/materialized-views/{quote(name.strip(), safe='.')}")
        return self._decode(MaterializedView, data, "materialized-view")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            RuntimeError: Client not initialized (use async with).
            AuthError: HTTP 401/403.
            RateLimitError: HTTP 429.
            ApiError: Any other non-2xx status, or a body that is not JSON.
            NetworkError: Timeout or connection failure.
        """
        if self._client is None:
            msg = "Client not initialized. Use 'async with AsyncDuneClient(...)' context manager."
            raise RuntimeError(msg)

        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request to Dune API timed out: {method} {path}",
                context={"url": url, "timeout": self._timeout},
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(
                f"Request to Dune API failed: {e}",
                context={"url": url},
            ) from e

        logger.debug(f"{method} {path} -> HTTP {response.status_code}")
        self._raise_for_status(response, url)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                "Malformed response from Dune API (not JSON)",
                status_code=response.status_code,
                context={"url": url},
            ) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, url: str) -> None:
        status = response.status_code
        if status < HTTP_BAD_REQUEST:
            return

        message = _error_message(response)
        if status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            raise AuthError(
                f"Dune API rejected the API key (HTTP {status}): {message}",
                context={"url": url},
            )
        if status == HTTP_TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limited by Dune API: {message}",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                context={"url": url},
            )
        raise ApiError(
            f"HTTP {status} from Dune API: {message}",
            status_code=status,
            context={"url": url},
        )

    @staticmethod
    def _decode(model: type[ModelT], data: Any, endpoint: str) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            raise ApiError(
                f"Malformed {endpoint} response from Dune API",
                context={"errors": e.error_count(), "detail": e.errors()[0]["msg"]},
            ) from e
