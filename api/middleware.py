"""Logging middleware for request tracking."""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging incoming HTTP requests."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.time()
        client = request.client.host if request.client else None

        logger.debug(f"{request.method} {request.url.path} from {client}")

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = (time.time() - start_time) * 1000
            logger.error(
                f"Handler error after {elapsed:.2f}ms: {type(e).__name__}: {e}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            raise

        elapsed = (time.time() - start_time) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed:.2f}ms"
        )
        return response
