from fastapi import FastAPI
from fastapi.testclient import TestClient

from corsgate.api.middleware.cors import setup_cors_middleware
from corsgate.cors.service import CorsService
from corsgate.main import create_application


ORIGIN = "https://app.example.com"


def test_non_cors_request_passes_through(cors_app):
    client = cors_app({"allowedOrigins": ["*"]})

    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "Homepage"
    assert "access-control-allow-origin" not in response.headers
    assert response.headers["vary"] == "Accept-Encoding"


def test_actual_request_is_annotated(cors_app):
    client = cors_app(
        {
            "allowedOrigins": ["https://a.test", ORIGIN],
            "supportsCredentials": True,
            "exposedHeaders": ["X-Total"],
        }
    )

    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.status_code == 200
    assert response.text == "Homepage"
    assert response.headers["access-control-allow-origin"] == ORIGIN
    assert response.headers["access-control-allow-credentials"] == "true"
    assert response.headers["access-control-expose-headers"] == "X-Total"
    assert response.headers["vary"] == "Accept-Encoding, Origin"


def test_actual_request_from_disallowed_origin(cors_app):
    client = cors_app({"allowedOrigins": ["https://a.test", "https://b.test"]})

    response = client.get("/", headers={"Origin": "https://evil.test"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers
    assert response.headers["vary"] == "Accept-Encoding, Origin"


def test_preflight_is_answered_by_middleware(cors_app):
    client = cors_app(
        {
            "allowedOrigins": [ORIGIN],
            "allowedMethods": ["get", "post"],
            "allowedHeaders": ["*"],
            "maxAge": 0,
        }
    )

    response = client.options(
        "/",
        headers={
            "Origin": ORIGIN,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-Token",
        },
    )

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == ORIGIN
    assert response.headers["access-control-allow-methods"] == "GET, POST"
    assert response.headers["access-control-allow-headers"] == "X-Token"
    assert response.headers["access-control-max-age"] == "0"
    assert response.headers["vary"] == "Access-Control-Request-Headers"


def test_rejected_preflight_has_no_policy_headers(cors_app):
    client = cors_app({"allowedOrigins": ["https://a.test", "https://b.test"], "maxAge": 600})

    response = client.options(
        "/",
        headers={"Origin": "https://evil.test", "Access-Control-Request-Method": "GET"},
    )

    assert response.status_code == 204
    for name in (
        "access-control-allow-origin",
        "access-control-allow-methods",
        "access-control-allow-headers",
        "access-control-allow-credentials",
        "access-control-max-age",
    ):
        assert name not in response.headers


def test_plain_options_request_reaches_the_app(cors_app):
    client = cors_app({"allowedOrigins": ["*"]})

    response = client.options("/", headers={"Origin": ORIGIN})

    assert response.status_code == 200
    assert response.text == "downstream options"
    assert response.headers["access-control-allow-origin"] == "*"


def test_setup_stores_service_on_app_state():
    app = FastAPI()
    service = CorsService({"allowedOrigins": ["*"]})

    assert setup_cors_middleware(app, service) is service
    assert app.state.cors is service


def test_application_factory_mounts_policy():
    service = CorsService({"allowedOrigins": ["*"], "maxAge": None})
    client = TestClient(create_application(service))

    response = client.get("/", headers={"Origin": ORIGIN})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.json()["cors"] == {
        "allowed_origins": ["*"],
        "allow_all_origins": True,
        "supports_credentials": False,
        "max_age": None,
    }

    health = client.get("/health")
    assert health.json()["status"] == "healthy"
