"""
Legacy webhook aliases.

Older provider configurations still post to these paths. Each alias proxies
the request unchanged to its canonical endpoint and relays the response
as-is. No parsing or validation happens here; the canonical endpoint does
all of it, using the forwarded X-Original-Url to check the signature the
provider computed for the alias URL.
"""

from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from receptionist.shared.logging import get_logger
from receptionist.telephony.config import TelephonyConfig, get_telephony_config
from receptionist.telephony.signature import INTERNAL_SECRET_HEADER, ORIGINAL_URL_HEADER

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks-legacy"])

CANONICAL_PREFIX = "/webhooks/telephony"

LEGACY_ROUTES: dict[str, str] = {
    "/voice/status": f"{CANONICAL_PREFIX}/call-status",
    "/webcomms-sms-status": f"{CANONICAL_PREFIX}/sms-status",
    "/webcomms-sms-reply": f"{CANONICAL_PREFIX}/sms-reply",
}

# Hop-by-hop, recomputed by the client, or set only by the forwarder
_DROP_REQUEST_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "transfer-encoding",
        "accept-encoding",
        INTERNAL_SECRET_HEADER.lower(),
        ORIGINAL_URL_HEADER.lower(),
    }
)


async def get_forward_client(
    request: Request,
    config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
) -> AsyncIterator[httpx.AsyncClient]:
    """HTTP client pointed at the canonical endpoints.

    Forwards in-process through the ASGI app unless a separate upstream base
    URL is configured.
    """
    timeout = httpx.Timeout(config.legacy_forward_timeout_seconds)
    if config.legacy_forward_base_url:
        client = httpx.AsyncClient(base_url=config.legacy_forward_base_url, timeout=timeout)
    else:
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=request.app),
            base_url=str(request.base_url),
            timeout=timeout,
        )
    async with client:
        yield client


@lru_cache(maxsize=1)
def _warn_missing_secret() -> None:
    logger.warning(
        "Legacy forwarding without TELEPHONY_INTERNAL_WEBHOOK_SECRET; "
        "canonical endpoints will not trust X-Original-Url and alias requests will fail signature checks"
    )


def _forward_headers(request: Request, config: TelephonyConfig) -> dict[str, str]:
    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in _DROP_REQUEST_HEADERS
    }
    original = config.get_webhook_url(request.url.path, request.url.query) or str(request.url)
    headers[ORIGINAL_URL_HEADER] = original
    if config.internal_webhook_secret:
        headers[INTERNAL_SECRET_HEADER] = config.internal_webhook_secret
    else:
        _warn_missing_secret()
    return headers


async def forward(
    request: Request,
    target_path: str,
    client: httpx.AsyncClient,
    config: TelephonyConfig,
) -> Response:
    """Proxy a request to target_path and relay the upstream response."""
    body = await request.body()
    url = target_path
    if request.url.query:
        url = f"{url}?{request.url.query}"

    try:
        upstream = await client.request(
            request.method,
            url,
            content=body,
            headers=_forward_headers(request, config),
        )
    except httpx.HTTPError as e:
        logger.error(
            "Legacy forward failed",
            extra={"path": request.url.path, "target": target_path, "error": str(e)},
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "Upstream unavailable"},
        )

    logger.info(
        "Legacy webhook forwarded",
        extra={
            "path": request.url.path,
            "target": target_path,
            "status_code": upstream.status_code,
        },
    )

    headers = {}
    content_type = upstream.headers.get("content-type")
    if content_type:
        headers["content-type"] = content_type
    return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)


def _make_forwarder(target_path: str):
    async def forwarder(
        request: Request,
        client: Annotated[httpx.AsyncClient, Depends(get_forward_client)],
        config: Annotated[TelephonyConfig, Depends(get_telephony_config)],
    ) -> Response:
        return await forward(request, target_path, client, config)

    return forwarder


for _legacy_path, _target_path in LEGACY_ROUTES.items():
    router.add_api_route(
        _legacy_path,
        _make_forwarder(_target_path),
        methods=["POST"],
        include_in_schema=False,
        name=f"legacy:{_legacy_path.strip('/')}",
    )
