import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class HTTPLogMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, logger_name: str = "schedsync.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        path = request.url.path
        method = request.method
        user = request.headers.get("x-user-id", "-")
        self._logger.debug("http.request start method=%s path=%s user=%s", method, path, user)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            dur_ms = int((time.monotonic() - start) * 1000)
            self._logger.warning("http.request error method=%s path=%s user=%s dur_ms=%s err=%r",
                                 method, path, user, dur_ms, e)
            raise
        dur_ms = int((time.monotonic() - start) * 1000)
        self._logger.debug("http.request end method=%s path=%s user=%s status=%s dur_ms=%s",
                           method, path, user, response.status_code, dur_ms)
        return response
