"""SSE chunk helpers for the streaming relay."""

from __future__ import annotations

import json
from typing import Any, AsyncIterable, Iterable

from fastapi.responses import StreamingResponse


def _stream_error_sse_chunk(message: str, code: str | None = None) -> bytes:
    """SSE chunk 携带上游失败原因，兼容 error.message / error.code 解析。"""
    detail = (message or "upstream_error").strip() or "upstream_error"
    error_code = (code or "upstream_error").strip() or "upstream_error"
    payload: dict[str, Any] = {
        "error": {
            "message": detail,
            "type": "sensgate_error",
            "code": error_code,
        },
    }
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def _stream_done_sse_chunk() -> bytes:
    return b"data: [DONE]\n\n"


def _build_streaming_response(generator: Iterable[bytes] | AsyncIterable[bytes]) -> StreamingResponse:
    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
