"""Idempotent access to the raw request body of an ASGI request."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from sensgate.core.errors import RequestBodyReadError

Receive = Callable[[], Awaitable[dict[str, Any]]]

CACHED_BODY_SCOPE_KEY = "sensgate.cached_body"


class RequestBodyCache:
    """Drain ``receive`` once, keep the bytes in the scope and replay them downstream."""

    def __init__(self, scope: dict[str, Any], receive: Receive) -> None:
        self.scope = scope
        self._receive = receive
        self._disconnected = False

    async def read(self) -> bytes:
        cached = self.scope.get(CACHED_BODY_SCOPE_KEY)
        if cached is not None:
            return cached
        chunks: list[bytes] = []
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._disconnected = True
                raise RequestBodyReadError("client disconnected before request body completed")
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        body = b"".join(chunks)
        self.scope[CACHED_BODY_SCOPE_KEY] = body
        return body

    def replay_receive(self) -> Receive:
        """A ``receive`` for downstream apps that yields the cached body first."""
        body = self.scope.get(CACHED_BODY_SCOPE_KEY)
        state = {"sent": body is None or self._disconnected}
        upstream_receive = self._receive

        async def receive() -> dict[str, Any]:
            if self._disconnected:
                return {"type": "http.disconnect"}
            if not state["sent"]:
                state["sent"] = True
                return {"type": "http.request", "body": body or b"", "more_body": False}
            return await upstream_receive()

        return receive
