"""Request logging middleware"""
import logging
import random
import string
import time

from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def new_request_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


async def log_requests(request: Request, call_next):
    """Tag each request with an id and log its outcome and duration"""
    request_id = new_request_id()
    request.state.request_id = request_id
    started = time.perf_counter()
    logger.info(f"[{request_id}] {request.method} {request.url.path} started")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - started) * 1000
    log = logger.warning if response.status_code >= 400 else logger.info
    log(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({duration_ms:.1f} ms)")
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
