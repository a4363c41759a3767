import logging
import time
from typing import Callable
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("buildrelay.request")


def configure_logging(level: str = "INFO"):
    """Root logger setup, done once by create_app()."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """
    One access line per request: client, method, path, status, duration.
    Query strings are left out since they may carry job parameters.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised")
            raise
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            client = request.client.host if request.client else "-"
            logger.info(f"{client} {request.method} {request.url.path} -> {status_code} ({elapsed_ms:.1f} ms)")


def register_request_logging(app):
    app.add_middleware(RequestLogMiddleware)
