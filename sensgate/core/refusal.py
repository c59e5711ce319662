"""Protocol-shaped refusal payloads substituted for filtered traffic."""

from __future__ import annotations

import secrets
import time
from typing import Any

from fastapi.responses import JSONResponse

PHASE_REQUEST = "request"
PHASE_RESPONSE = "response"

_ID_PREFIX = {
    PHASE_REQUEST: "chatcmpl-req-filter-",
    PHASE_RESPONSE: "chatcmpl-filter-",
}
_ERROR_CODE = {
    PHASE_REQUEST: "content_filter_request",
    PHASE_RESPONSE: "content_filter_response",
}
REFUSAL_STATUS_CODE = 400


def refusal_code(phase: str) -> str:
    return _ERROR_CODE[phase]


def build_refusal_payload(phase: str, *, model: str, refusal: str, now: float | None = None) -> dict[str, Any]:
    created = int(time.time() if now is None else now)
    return {
        "id": f"{_ID_PREFIX[phase]}{secrets.token_hex(10)}",
        "object": "chat.completion",
        "created": created,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": refusal},
                "finish_reason": "content_filter",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        "error": {
            "message": refusal,
            "type": "invalid_request_error",
            "code": _ERROR_CODE[phase],
        },
    }


def refusal_response(phase: str, *, model: str, refusal: str) -> JSONResponse:
    return JSONResponse(
        status_code=REFUSAL_STATUS_CODE,
        content=build_refusal_payload(phase, model=model, refusal=refusal),
    )
