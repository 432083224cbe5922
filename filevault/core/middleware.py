"""
@file: middleware.py
@description:
This module configures and centralizes middleware for the FastAPI application.

The middleware components include:
- Request logging: Logs information about each request and its processing time

@dependencies:
- starlette: For BaseHTTPMiddleware
- filevault.core.logger: For structured logging

@notes:
- The upload size cap is not a middleware: POST /upload checks Content-Length
  itself, after the caller has been authenticated.
"""

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from filevault.core.logger import log_request_details, setup_logger

# Create a component-specific logger
logger = setup_logger("filevault.core.middleware")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging API requests and their processing time.

    This logs information about each request including:
    - HTTP method
    - URL path
    - Status code
    - Processing time
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        log_request_details(logger, request, process_time, response.status_code)

        return response


def setup_request_logging(app: FastAPI) -> None:
    """
    Add request logging middleware to the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    logger.debug("Setting up request logging middleware")
    app.add_middleware(RequestLoggingMiddleware)


def setup_all_middleware(app: FastAPI) -> None:
    """
    Configure and add all middleware to the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    setup_request_logging(app)
