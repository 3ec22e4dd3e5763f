"""Azure OpenAI relay routes.

Requests under ``/api/openai`` are forwarded to the configured Azure OpenAI
resource with the server-held key. Upstream status and body are relayed
unchanged.
"""

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_app_settings, get_http_client, require_openai
from app.api.upstream import response_json, send_upstream
from app.core.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/openai", tags=["openai"])


async def relay_openai(
    path: str,
    payload: Any,
    settings: Settings,
    client: httpx.AsyncClient,
) -> JSONResponse:
    """Forward a POST to ``<endpoint>/openai/<path>`` and relay the answer.

    Args:
        path: Path below ``/openai``.
        payload: JSON body from the client.
        settings: Application settings.
        client: Shared HTTP client.

    Returns:
        A JSONResponse with the upstream status and body.
    """
    require_openai(settings)

    url = f"{settings.azure_openai_endpoint}/openai/{path.lstrip('/')}"
    response = await send_upstream(
        client,
        "POST",
        url,
        api_key=settings.azure_openai_api_key,
        operation="openai",
        json=payload,
        params={"api-version": settings.azure_openai_api_version},
    )

    if response.is_error:
        logger.error(f"Azure OpenAI error: {response.status_code} {response.text}")

    return JSONResponse(status_code=response.status_code, content=response_json(response))


@router.post("/deployments/{model}/embeddings")
async def embeddings(
    model: str,
    payload: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Relay an embeddings request to a deployment."""
    return await relay_openai(f"deployments/{model}/embeddings", payload, settings, client)


@router.post("/deployments/{model}/chat/completions")
async def chat_completions(
    model: str,
    payload: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Relay a chat completion request to a deployment."""
    return await relay_openai(f"deployments/{model}/chat/completions", payload, settings, client)


@router.post("/deployments/{model}/completions")
async def completions(
    model: str,
    payload: dict[str, Any] = Body(...),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Relay a legacy completion request to a deployment."""
    return await relay_openai(f"deployments/{model}/completions", payload, settings, client)


@router.post("/{path:path}")
async def catch_all(
    path: str,
    payload: Any = Body(default=None),
    settings: Settings = Depends(get_app_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Relay any other Azure OpenAI POST."""
    return await relay_openai(path, payload, settings, client)
