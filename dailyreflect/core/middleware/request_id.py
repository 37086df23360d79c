import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from dailyreflect.core.logging import latency_bucket_ms, log_event, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the duration of the request.

    An incoming `x-request-id` is reused so callers can correlate retries.
    Completion is logged with the user id when the request names one.
    """

    async def dispatch(self, request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            log_event(
                "warning" if response.status_code >= 500 else "info",
                "request.complete",
                user_id=request.query_params.get("user_id"),
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "latency_bucket": latency_bucket_ms((time.perf_counter() - start) * 1000),
                },
            )
            return response
        finally:
            request_id_ctx_var.reset(token)
