"""
Request context middleware and error handlers
"""

import time
import uuid
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from core.exceptions import SyncException
from schemas.api import ErrorResponse

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Injects:
    - request_id (request.state and X-Request-ID header)
    - api_latency_ms (X-API-Latency-ms header)
    """

    async def dispatch(self, request: Request, call_next):
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        start_time = time.perf_counter()

        request.state.request_id = request_id

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} ({latency_ms}ms)"
        )
        return response


async def sync_exception_handler(request: Request, exc: SyncException) -> JSONResponse:
    """Render connector errors that escaped a route as a 500 ErrorResponse"""
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        f"[{request_id}] Unhandled {type(exc).__name__}: {exc.message}",
        extra={"error_context": exc.to_dict()}
    )
    body = ErrorResponse(
        error=type(exc).__name__,
        detail=exc.message,
        context={k: str(v) for k, v in exc.context.items()}
    )
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


def install(app: FastAPI):
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(SyncException, sync_exception_handler)
