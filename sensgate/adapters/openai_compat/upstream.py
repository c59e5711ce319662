"""
上游转发：把 /v1 下的 chat/completions 请求原样转给配置的上游，并回传响应。
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncGenerator, Mapping

import httpx

from sensgate.config.settings import settings
from sensgate.util.logger import logger

GATEWAY_PREFIX = "/v1"

_HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}

_upstream_async_client: httpx.AsyncClient | None = None
_upstream_client_lock: Any = None


def _upstream_http_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(10, int(settings.upstream_max_connections)),
        max_keepalive_connections=max(5, int(settings.upstream_max_keepalive_connections)),
    )


def _upstream_http_timeout() -> httpx.Timeout:
    timeout = float(settings.upstream_timeout_seconds)
    return httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout)


async def _get_upstream_async_client() -> httpx.AsyncClient:
    global _upstream_async_client, _upstream_client_lock
    if _upstream_async_client is not None:
        return _upstream_async_client
    if _upstream_client_lock is None:
        _upstream_client_lock = asyncio.Lock()
    async with _upstream_client_lock:
        if _upstream_async_client is None:
            _upstream_async_client = httpx.AsyncClient(
                http2=False,
                timeout=_upstream_http_timeout(),
                limits=_upstream_http_limits(),
            )
    return _upstream_async_client


async def close_upstream_async_client() -> None:
    global _upstream_async_client
    if _upstream_async_client is not None:
        await _upstream_async_client.aclose()
        _upstream_async_client = None


def _build_upstream_url(request_path: str, upstream_base: str | None = None) -> str:
    base = (upstream_base or settings.upstream_base_url).strip().rstrip("/")
    route_path = request_path or "/"
    if route_path == GATEWAY_PREFIX:
        route_path = "/"
    elif route_path.startswith(f"{GATEWAY_PREFIX}/"):
        route_path = route_path[len(GATEWAY_PREFIX):]
    if not route_path.startswith("/"):
        route_path = f"/{route_path}"
    return f"{base}{route_path}"


def _build_forward_headers(headers: Mapping[str, str]) -> dict[str, str]:
    forwarded: dict[str, str] = {}
    excluded = {"host", "content-length", "accept-encoding", *_HOP_BY_HOP_HEADERS}
    for key, value in headers.items():
        lowered = key.lower()
        if lowered in excluded:
            continue
        forwarded[key] = value

    if not any(name.lower() == "content-type" for name in forwarded):
        forwarded["Content-Type"] = "application/json"
    return forwarded


def _safe_error_detail(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")[:600]


async def _forward_json(url: str, body: bytes, headers: Mapping[str, str]) -> tuple[int, bytes, str]:
    """POST *body* upstream; returns (status, raw body, content type)."""
    logger.debug("forward_json start url=%s payload_bytes=%d", url, len(body))
    client = await _get_upstream_async_client()
    try:
        response = await client.post(url=url, content=body, headers=dict(headers))
    except httpx.HTTPError as exc:
        detail = (str(exc) or "").strip() or "connection_failed_or_timeout"
        logger.warning("forward_json http_error url=%s error=%s", url, detail)
        raise RuntimeError(f"upstream_unreachable: {detail}") from exc
    logger.debug("forward_json done url=%s status=%s", url, response.status_code)
    content_type = response.headers.get("content-type", "application/json")
    return response.status_code, response.content, content_type


async def _forward_stream_lines(url: str, body: bytes, headers: Mapping[str, str]) -> AsyncGenerator[bytes, None]:
    logger.debug("forward_stream start url=%s payload_bytes=%d", url, len(body))
    client = await _get_upstream_async_client()
    try:
        async with client.stream("POST", url=url, content=body, headers=dict(headers)) as resp:
            logger.debug("forward_stream connected url=%s status=%s", url, resp.status_code)
            if resp.status_code >= 400:
                detail = _safe_error_detail(await resp.aread())
                raise RuntimeError(f"upstream_http_error:{resp.status_code}:{detail}")
            async for line in resp.aiter_lines():
                yield f"{line}\n".encode("utf-8")
    except httpx.HTTPError as exc:
        detail = (str(exc) or "").strip() or "connection_failed_or_timeout"
        logger.warning("forward_stream http_error url=%s error=%s", url, detail)
        raise RuntimeError(f"upstream_unreachable: {detail}") from exc
