"""OpenAI-compatible relay routes."""

from __future__ import annotations

from typing import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from sensgate.adapters.openai_compat.stream_utils import (
    _build_streaming_response,
    _stream_done_sse_chunk,
    _stream_error_sse_chunk,
)
from sensgate.adapters.openai_compat.upstream import (
    _build_forward_headers,
    _build_upstream_url,
    _forward_json,
    _forward_stream_lines,
)
from sensgate.core.envelope import request_is_stream
from sensgate.util.logger import logger


router = APIRouter()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "type": "sensgate_error", "code": code}},
    )


def _error_code_from_runtime(exc: RuntimeError) -> str:
    return str(exc).split(":", 1)[0].strip() or "upstream_error"


async def _relay_stream(url: str, body: bytes, headers: dict[str, str]) -> AsyncGenerator[bytes, None]:
    try:
        async for line in _forward_stream_lines(url, body, headers):
            yield line
    except RuntimeError as exc:
        logger.warning("stream relay failed url=%s error=%s", url, exc)
        yield _stream_error_sse_chunk(str(exc), code=_error_code_from_runtime(exc))
        yield _stream_done_sse_chunk()


async def _relay(request: Request) -> Response:
    body = await request.body()
    url = _build_upstream_url(request.url.path)
    headers = _build_forward_headers(dict(request.headers))
    if request_is_stream(body):
        return _build_streaming_response(_relay_stream(url, body, headers))
    try:
        status_code, content, content_type = await _forward_json(url, body, headers)
    except RuntimeError as exc:
        return _error_response(502, _error_code_from_runtime(exc), str(exc))
    return Response(content=content, status_code=status_code, media_type=content_type)


@router.post("/chat/completions")
async def chat_completions(request: Request) -> Response:
    return await _relay(request)


@router.post("/completions")
async def completions(request: Request) -> Response:
    return await _relay(request)
