"""
缓冲式响应 sink：替换 ASGI send，拦截状态码、响应头与响应体，直到显式 commit。

commit 时要么提交原始缓冲内容，要么提交替换后的拒绝响应，只会发生一次。
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from starlette.datastructures import MutableHeaders

Send = Callable[[dict[str, Any]], Awaitable[None]]

_DEFAULT_STATUS = 200


class BufferedResponse:
    def __init__(self, send: Send) -> None:
        self._send = send
        self.status_code: int | None = None
        self.raw_headers: list[tuple[bytes, bytes]] = []
        self._start_extras: dict[str, Any] = {}
        self._body = bytearray()
        # trailers/push 等扩展消息，commit 时在响应体之后原样转发
        self._deferred: list[dict[str, Any]] = []
        self.committed = False

    async def send(self, message: dict[str, Any]) -> None:
        if self.committed:
            raise RuntimeError("response already committed")
        message_type = message["type"]
        if message_type == "http.response.start":
            if self.status_code is not None:
                return
            self.status_code = int(message["status"])
            self.raw_headers = list(message.get("headers") or [])
            self._start_extras = {
                key: value for key, value in message.items() if key not in {"type", "status", "headers"}
            }
            return
        if message_type == "http.response.body":
            self._body.extend(message.get("body", b""))
            return
        self._deferred.append(message)

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def headers(self) -> MutableHeaders:
        return MutableHeaders(raw=self.raw_headers)

    @property
    def started(self) -> bool:
        return self.status_code is not None or bool(self._body)

    @property
    def effective_status(self) -> int:
        return self.status_code if self.status_code is not None else _DEFAULT_STATUS

    async def commit(self) -> None:
        """Write the buffered status, headers and bytes to the real sink."""
        self._mark_committed()
        start: dict[str, Any] = {
            "type": "http.response.start",
            "status": self.effective_status,
            "headers": self.raw_headers,
        }
        start.update(self._start_extras)
        await self._send(start)
        trailers = [m for m in self._deferred if m["type"] == "http.response.trailers"]
        for message in self._deferred:
            if message["type"] != "http.response.trailers":
                await self._send(message)
        await self._send({"type": "http.response.body", "body": bytes(self._body), "more_body": False})
        for message in trailers:
            await self._send(message)

    async def commit_replacement(self, response: Callable[..., Awaitable[None]], scope, receive) -> None:
        """Discard the buffer and commit *response* (an ASGI app) instead."""
        self._mark_committed()
        self._body.clear()
        self._deferred.clear()
        await response(scope, receive, self._send)

    def _mark_committed(self) -> None:
        if self.committed:
            raise RuntimeError("response already committed")
        self.committed = True
