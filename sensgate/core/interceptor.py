"""
敏感词拦截中间件（纯 ASGI）。

请求阶段：读取并缓存请求体，逐条检查消息文本，命中即返回 400 拒绝响应，不再调用上游。
响应阶段：非流式请求的响应先进入缓冲 sink，检查通过后原样提交，命中则丢弃缓冲并替换为拒绝响应；
流式请求（stream 为 JSON true）直接透传，字节已发给客户端无法撤回。
基础设施类错误一律放行：读 body 失败直接转发；请求解析失败跳过请求扫描，响应仍按非流式检查。
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any

from sensgate.core.audit import write_audit
from sensgate.core.body_cache import RequestBodyCache
from sensgate.core.envelope import decode_request, decode_response, looks_like_sse, sse_choice_texts
from sensgate.core.errors import EnvelopeDecodeError, RequestBodyReadError
from sensgate.core.filter_state import FilterState, filter_state
from sensgate.core.matcher import MatcherSet
from sensgate.core.refusal import PHASE_REQUEST, PHASE_RESPONSE, refusal_code, refusal_response
from sensgate.core.response_buffer import BufferedResponse
from sensgate.util.debug_excerpt import debug_log_original
from sensgate.util.logger import logger
from sensgate.util.masking import mask_for_log

FILTERED_PATH_PREFIXES = ("/v1/chat/completions", "/v1/completions")
REQUEST_ID_SCOPE_KEY = "sensgate.request_id"


def is_filtered_path(path: str) -> bool:
    return path.startswith(FILTERED_PATH_PREFIXES)


def first_hit(matchers: MatcherSet, texts: Iterable[str]) -> tuple[str, str] | None:
    """Return ``(term, text)`` for the first text containing a blocked term."""
    for text in texts:
        term = matchers.match(text)
        if term is not None:
            return term, text
    return None


class SensitiveFilterMiddleware:
    def __init__(self, app, state: FilterState | None = None) -> None:
        self.app = app
        self.state = state or filter_state

    async def __call__(self, scope, receive, send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return
        path = str(scope.get("path") or "/")
        if not is_filtered_path(path):
            await self.app(scope, receive, send)
            return

        snapshot = self.state.snapshot()
        if not snapshot.enabled:
            await self.app(scope, receive, send)
            return

        request_id = scope.setdefault(REQUEST_ID_SCOPE_KEY, uuid.uuid4().hex)
        body_cache = RequestBodyCache(scope, receive)
        try:
            raw_body = await body_cache.read()
        except RequestBodyReadError as exc:
            logger.error("sensitive filter read body failed request_id=%s path=%s error=%s", request_id, path, exc)
            await self.app(scope, body_cache.replay_receive(), send)
            return
        downstream_receive = body_cache.replay_receive()

        model = ""
        try:
            envelope = decode_request(raw_body)
        except EnvelopeDecodeError as exc:
            logger.warning("sensitive filter decode request failed request_id=%s path=%s error=%s", request_id, path, exc)
        else:
            model = envelope.model_name
            hit = first_hit(snapshot.matchers, envelope.texts())
            if hit is not None:
                self._record_refusal(PHASE_REQUEST, request_id=request_id, path=path, model=model, hit=hit)
                response = refusal_response(PHASE_REQUEST, model=model, refusal=snapshot.refusal)
                await response(scope, downstream_receive, send)
                return

            if envelope.is_stream:
                logger.debug("sensitive filter stream passthrough request_id=%s path=%s", request_id, path)
                await self.app(scope, downstream_receive, send)
                return

        buffered = BufferedResponse(send)
        await self.app(scope, downstream_receive, buffered.send)
        await self._scan_and_commit(
            buffered,
            scope=scope,
            receive=downstream_receive,
            request_id=request_id,
            path=path,
            model=model,
        )

    async def _scan_and_commit(
        self,
        buffered: BufferedResponse,
        *,
        scope: dict[str, Any],
        receive,
        request_id: str,
        path: str,
        model: str,
    ) -> None:
        if buffered.effective_status != 200:
            await buffered.commit()
            return
        # 上游执行期间可能有热更新，响应阶段使用最新快照
        snapshot = self.state.snapshot()
        if not snapshot.enabled:
            await buffered.commit()
            return

        body = buffered.body
        content_type = buffered.headers.get("content-type", "")
        if looks_like_sse(body, content_type):
            texts: Iterable[str] = sse_choice_texts(body).values()
        else:
            try:
                texts = list(decode_response(body).texts())
            except EnvelopeDecodeError as exc:
                logger.warning(
                    "sensitive filter decode response failed request_id=%s path=%s error=%s",
                    request_id,
                    path,
                    exc,
                )
                await buffered.commit()
                return

        hit = first_hit(snapshot.matchers, texts)
        if hit is None:
            await buffered.commit()
            return
        self._record_refusal(PHASE_RESPONSE, request_id=request_id, path=path, model=model, hit=hit)
        response = refusal_response(PHASE_RESPONSE, model=model, refusal=snapshot.refusal)
        await buffered.commit_replacement(response, scope, receive)

    @staticmethod
    def _record_refusal(phase: str, *, request_id: str, path: str, model: str, hit: tuple[str, str]) -> None:
        term, text = hit
        masked = mask_for_log(term)
        logger.warning(
            "sensitive term hit, %s blocked request_id=%s path=%s model=%s term=%s",
            phase,
            request_id,
            path,
            model,
            masked,
        )
        debug_log_original(f"{phase}_blocked", text, request_id=request_id)
        write_audit(
            {
                "request_id": request_id,
                "phase": phase,
                "code": refusal_code(phase),
                "path": path,
                "model": model,
                "term": masked,
            }
        )
