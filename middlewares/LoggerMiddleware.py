import time
import uuid
from typing import Callable
import logging
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp


logger = logging.getLogger("http_middleware")

REQUEST_ID_HEADER = "X-Request-ID"
MAX_LOGGED_BODY = 1000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: list[str] = None,
        log_request_body: bool = False
    ):
        """
        Args:
            app: ASGI приложение
            exclude_paths: Префиксы путей без логирования (например ['/api/docs'])
            log_request_body: Логировать тело POST/PUT/PATCH на уровне DEBUG
        """
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.log_request_body = log_request_body

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        # ID от прокси сохраняем, чтобы запрос можно было найти в обоих логах
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        client_host = request.client.host if request.client else "unknown"
        query = f"?{request.url.query}" if request.url.query else ""

        logger.info(
            f"Request started | {request_id} | {request.method} {request.url.path}{query} | "
            f"Client: {client_host}"
        )

        if self.log_request_body and request.method in ("POST", "PUT", "PATCH"):
            try:
                body = await request.body()
                body_str = body.decode('utf-8', errors='replace')[:MAX_LOGGED_BODY]
                if len(body) > MAX_LOGGED_BODY:
                    body_str += "... [truncated]"
                logger.debug(f"Request body | {request_id} | {body_str}")
            except Exception as e:
                logger.warning(f"Failed to log request body | {request_id} | {e}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.perf_counter() - start_time
            logger.error(
                f"Request failed | {request_id} | {request.method} {request.url.path} | "
                f"Error: {e} | Time: {process_time:.4f}s",
                exc_info=True
            )
            raise

        process_time = time.perf_counter() - start_time
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"Request finished | {request_id} | {request.method} {request.url.path} | "
            f"Status: {response.status_code} | Time: {process_time:.4f}s"
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
