"""Shared helpers for relaying requests to Azure services."""

from typing import Any

import httpx
import structlog

from app.core.errors import ProxyRequestError, UpstreamError

log = structlog.get_logger(__name__)


async def send_upstream(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    api_key: str,
    operation: str,
    json: Any = None,
    params: dict[str, str] | None = None,
) -> httpx.Response:
    """Send one request to an Azure endpoint with the server-held key.

    Args:
        client: Shared HTTP client.
        method: HTTP method.
        url: Absolute upstream URL without query string.
        api_key: Value of the ``api-key`` header.
        operation: Name used in log events and error messages.
        json: Optional JSON body.
        params: Query parameters (the api-version).

    Returns:
        The upstream response, whatever its status.

    Raises:
        ProxyRequestError: If the upstream cannot be reached.
    """
    log.info("relay_request", operation=operation, method=method, url=url)
    try:
        response = await client.request(
            method,
            url,
            params=params,
            json=json,
            headers={"api-key": api_key, "Content-Type": "application/json"},
        )
    except httpx.HTTPError as e:
        log.error("relay_failed", operation=operation, url=url, error=str(e))
        raise ProxyRequestError(f"Failed to fetch {url}: {e}") from e

    log.info("relay_response", operation=operation, status=response.status_code)
    return response


def raise_for_upstream(
    response: httpx.Response,
    operation: str,
    allowed_statuses: frozenset[int] = frozenset(),
) -> None:
    """Raise UpstreamError for an error status not explicitly allowed.

    Raises:
        UpstreamError: Carrying the upstream status and raw body.
    """
    if response.is_error and response.status_code not in allowed_statuses:
        log.error("relay_upstream_error", operation=operation, status=response.status_code, body=response.text)
        raise UpstreamError(
            f"{operation} failed: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
            body=response.text,
        )


def response_json(response: httpx.Response) -> Any:
    """Decode a JSON body, wrapping non-JSON text as ``{"error": text}``."""
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}
