"""FastAPI app entry."""

from __future__ import annotations

import ipaddress

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sensgate.adapters.openai_compat.router import router as openai_router
from sensgate.adapters.openai_compat.upstream import close_upstream_async_client
from sensgate.config.settings import settings
from sensgate.core.audit import shutdown_audit_worker
from sensgate.core.filter_settings import FilterSettings
from sensgate.core.filter_state import filter_state
from sensgate.core.interceptor import SensitiveFilterMiddleware
from sensgate.init_config import ensure_config_dir
from sensgate.storage import create_option_store
from sensgate.util.logger import logger

_LOOPBACK_HOSTS = {"127.0.0.1", "::1", "localhost"}
_ADMIN_PATH = "/__gw__/sensitive_filter"

app = FastAPI(title=settings.app_name)
app.include_router(openai_router, prefix="/v1")
app.state.filter_settings = None


def _is_internal_client(request: Request) -> bool:
    host = (request.client.host if request.client else "").strip()
    if not host:
        return False
    if host in _LOOPBACK_HOSTS:
        return True
    normalized = host
    if normalized.startswith("[") and normalized.endswith("]"):
        normalized = normalized[1:-1]
    try:
        ip = ipaddress.ip_address(normalized)
    except ValueError:
        return False
    return ip.is_loopback or ip.is_private or ip.is_link_local


def _filter_settings() -> FilterSettings:
    current = app.state.filter_settings
    if current is None:
        current = FilterSettings(filter_state, create_option_store())
        app.state.filter_settings = current
    return current


def _admin_rejection(request: Request) -> JSONResponse | None:
    if not settings.admin_internal_only or _is_internal_client(request):
        return None
    client_host = request.client.host if request.client else ""
    logger.warning("admin endpoint rejected non-internal host=%s path=%s", client_host, request.url.path)
    return JSONResponse(
        status_code=403,
        content={"success": False, "message": "admin endpoint only allowed from internal network"},
    )


@app.api_route(_ADMIN_PATH, methods=["POST", "PUT"])
async def update_sensitive_filter_setting(request: Request) -> JSONResponse:
    rejected = _admin_rejection(request)
    if rejected is not None:
        return rejected
    try:
        body = await request.json()
    except Exception:
        return JSONResponse(status_code=400, content={"success": False, "message": "invalid parameters"})
    if not isinstance(body, dict) or not isinstance(body.get("key"), str):
        return JSONResponse(status_code=400, content={"success": False, "message": "invalid parameters"})
    value = body.get("value")
    value = "" if value is None else str(value)
    result = _filter_settings().apply(body["key"], value)
    return JSONResponse(content=result.to_dict())


@app.get(_ADMIN_PATH)
async def get_sensitive_filter_setting(request: Request) -> JSONResponse:
    rejected = _admin_rejection(request)
    if rejected is not None:
        return rejected
    return JSONResponse(content={"success": True, "data": _filter_settings().current()})


@app.get("/health")
def health() -> dict:
    logger.debug("health check")
    return {"status": "ok"}


@app.on_event("startup")
async def startup_sensitive_filter() -> None:
    try:
        ensure_config_dir(filter_state.term_store)
    except Exception as exc:  # pragma: no cover
        logger.warning("init_config on startup failed: %s", exc)
    filter_state.init_once()
    _filter_settings().restore_enabled()


@app.on_event("shutdown")
async def shutdown_cleanup() -> None:
    await close_upstream_async_client()
    shutdown_audit_worker()


app.add_middleware(SensitiveFilterMiddleware, state=filter_state)
