from typing import Any, Dict

import pytest
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from corsgate.api.middleware.cors import setup_cors_middleware
from corsgate.cors.messages import RequestMessage, ResponseMessage
from corsgate.cors.service import CorsService


@pytest.fixture
def make_request():
    def _make(method: str = "GET", **headers: str) -> RequestMessage:
        names = {key: key.replace("_", "-") for key in headers}
        return RequestMessage.build(method, {names[k]: v for k, v in headers.items()})

    return _make


@pytest.fixture
def preflight(make_request):
    def _preflight(origin: str, method: str = "PUT", **headers: str) -> RequestMessage:
        return make_request(
            "OPTIONS",
            Origin=origin,
            Access_Control_Request_Method=method,
            **headers,
        )

    return _preflight


@pytest.fixture
def response():
    return ResponseMessage.create(200)


@pytest.fixture
def cors_app():
    def _build(options: Dict[str, Any]) -> TestClient:
        app = FastAPI()

        @app.get("/")
        async def homepage():
            return PlainTextResponse("Homepage", headers={"Vary": "Accept-Encoding"})

        @app.options("/")
        async def options_handler():
            return PlainTextResponse("downstream options")

        setup_cors_middleware(app, CorsService(options))
        return TestClient(app)

    return _build
