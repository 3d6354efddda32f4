"""Request timing and correlation middleware."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from beta_signup.utils.logger import logger


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs how long it took.

    - Reuses an incoming X-Request-ID header or generates one
    - Adds X-Request-ID and X-Process-Time headers to responses
    - Warns about slow requests, except for health and docs endpoints
    """

    SLOW_REQUEST_THRESHOLD = 0.5  # 500ms

    EXCLUDED_PATHS = {
        "/health",
        "/",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        path = request.url.path
        method = request.method

        if path not in self.EXCLUDED_PATHS:
            if process_time >= self.SLOW_REQUEST_THRESHOLD:
                logger.warning(
                    f"[SLOW REQUEST] {request_id} {method} {path} {response.status_code} - {process_time:.3f}s"
                )
            else:
                logger.debug(
                    f"[REQUEST] {request_id} {method} {path} {response.status_code} - {process_time:.3f}s"
                )

        return response
