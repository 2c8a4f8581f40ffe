import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from say2me.core import constants
from say2me.core.config import settings

logger = logging.getLogger("access")


class StripIdentifyingHeadersMiddleware:
    """Drop client-identifying request headers before any other layer sees them.

    Registered outermost so it covers every route, error pages included.
    """

    def __init__(self, app: ASGIApp, headers=constants.STRIPPED_REQUEST_HEADERS):
        self.app = app
        self.stripped = {h.lower().encode("latin-1") for h in headers}

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] in ("http", "websocket"):
            scope = dict(scope)
            scope["headers"] = [
                (name, value) for name, value in scope.get("headers", []) if name.lower() not in self.stripped
            ]
        await self.app(scope, receive, send)


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes`` with 413."""

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        for name, value in scope.get("headers", []):
            if name == b"content-length":
                try:
                    declared = int(value)
                except ValueError:
                    declared = 0
                if declared > self.max_bytes:
                    response = _payload_too_large()
                    await response(scope, receive, send)
                    return

        # Content-Length 없이 들어오는 chunked 요청도 누적 크기로 차단
        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status_code=413, detail="Payload too large")
            return message

        await self.app(scope, limited_receive, send)


def _payload_too_large() -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={"error": "Payload too large", "message": f"Request body must be at most {settings.MAX_BODY_BYTES} bytes"},
    )


def content_security_policy(origins: list[str]) -> str:
    directives = {
        "default-src": ["'self'"],
        "connect-src": ["'self'", *origins],
        "img-src": ["'self'", "data:", "blob:"],
        "style-src": ["'self'", "'unsafe-inline'"],
        "script-src": ["'self'", "'unsafe-inline'", "'unsafe-eval'"],
        "base-uri": ["'self'"],
        "font-src": ["'self'", "https:", "data:"],
        "form-action": ["'self'"],
        "frame-ancestors": ["'self'"],
        "object-src": ["'none'"],
        "script-src-attr": ["'none'"],
    }
    return "; ".join(f"{name} {' '.join(values)}" for name, values in directives.items())


def security_headers(origins: list[str]) -> dict[str, str]:
    return {
        "Content-Security-Policy": content_security_policy(origins),
        "Cross-Origin-Opener-Policy": "same-origin",
        # 프론트엔드가 다른 오리진에서 API를 호출하므로 cross-origin 허용
        "Cross-Origin-Resource-Policy": "cross-origin",
        "Origin-Agent-Cluster": "?1",
        "Referrer-Policy": "no-referrer",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-DNS-Prefetch-Control": "off",
        "X-Download-Options": "noopen",
        "X-Frame-Options": "SAMEORIGIN",
        "X-Permitted-Cross-Domain-Policies": "none",
        "X-XSS-Protection": "0",
    }


def make_security_headers_middleware(origins: list[str]):
    headers = security_headers(origins)

    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response

    return security_headers_middleware


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time = (time.perf_counter() - start_time) * 1000

    logger.info(
        "",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response
