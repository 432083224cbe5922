"""
@file: test_middleware.py
@description:
Test suite for FastAPI middleware components in the FileVault API, focusing on:
- Request logging middleware
- Wiring of all middleware onto the application

@notes:
- Tests build small throwaway FastAPI apps so each middleware is checked in isolation
"""

from unittest import mock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from filevault.core.middleware import (
    RequestLoggingMiddleware,
    setup_all_middleware,
    setup_request_logging,
)


def _ping_app() -> FastAPI:
    test_app = FastAPI()

    @test_app.get("/ping")
    def ping():
        return {"message": "pong"}

    return test_app


def test_request_logging_middleware():
    """Every request is passed to log_request_details with its status code."""
    test_app = _ping_app()

    with mock.patch("filevault.core.middleware.log_request_details") as mock_log_request:
        setup_request_logging(test_app)
        client = TestClient(test_app)

        response = client.get("/ping")

        assert response.status_code == 200
        assert mock_log_request.called
        _, _, _, status_code = mock_log_request.call_args[0]
        assert status_code == 200


def test_request_logging_sees_not_found():
    test_app = _ping_app()

    with mock.patch("filevault.core.middleware.log_request_details") as mock_log_request:
        setup_request_logging(test_app)
        TestClient(test_app).get("/missing")

        _, _, _, status_code = mock_log_request.call_args[0]
        assert status_code == 404


def test_setup_all_middleware():
    test_app = FastAPI()

    setup_all_middleware(test_app)

    assert [m.cls for m in test_app.user_middleware] == [RequestLoggingMiddleware]
