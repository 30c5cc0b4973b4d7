from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from src.api.middleware.security import RequestIDMiddleware
from src.kernel.errors import ConflictError, MagnaPortaError, NotFoundError, UpstreamError, ValidationError
from src.kernel.http.errors import register_exception_handlers


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    return app


@pytest.mark.unit
def test_typed_error_payload_shape_includes_code_and_request_id():
    app = _app()

    @app.get("/boom")
    async def boom():  # pragma: no cover - exercised via request
        raise MagnaPortaError(code="test.bad_request", message="Nope", status_code=400)

    client = TestClient(app)
    response = client.get("/boom", headers={"X-Request-ID": "req_123"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Nope", "code": "test.bad_request", "request_id": "req_123"}


@pytest.mark.unit
def test_not_found_error_maps_to_404_with_meta():
    app = _app()

    @app.get("/missing")
    async def missing():  # pragma: no cover - exercised via request
        raise NotFoundError(message="Plan with ID 9 not found", meta={"plan_id": 9})

    client = TestClient(app)
    response = client.get("/missing")
    assert response.status_code == 404
    payload = response.json()
    assert payload["detail"] == "Plan with ID 9 not found"
    assert payload["code"] == "resource.not_found"
    assert payload["meta"] == {"plan_id": 9}


@pytest.mark.unit
def test_http_exception_payload_shape_preserves_detail():
    app = _app()

    @app.get("/forbidden")
    async def forbidden():  # pragma: no cover - exercised via request
        raise HTTPException(status_code=403, detail="Forbidden")

    client = TestClient(app)
    response = client.get("/forbidden", headers={"X-Request-ID": "req_999"})
    assert response.status_code == 403
    payload = response.json()
    assert payload["detail"] == "Forbidden"
    assert payload["code"] == "http.403"
    assert payload["request_id"] == "req_999"


@pytest.mark.unit
def test_request_validation_error_payload_shape_is_stable():
    app = _app()

    class Body(BaseModel):
        value: int

    @app.post("/validate")
    async def validate(body: Body):  # pragma: no cover - exercised via request
        return {"ok": True, "value": body.value}

    client = TestClient(app)
    response = client.post("/validate", json={"value": "not-an-int"})
    assert response.status_code == 422
    payload = response.json()
    assert isinstance(payload.get("detail"), list)
    assert payload.get("code") == "http.validation_error"


@pytest.mark.unit
def test_error_code_must_be_dot_separated_lowercase():
    with pytest.raises(ValueError):
        MagnaPortaError(code="Bad Code", message="x")


@pytest.mark.unit
def test_subclass_defaults_and_overrides():
    conflict = ConflictError()
    upstream = UpstreamError(message="Airwallex credentials are not configured", code="airwallex.not_configured", status_code=503)

    assert (conflict.code, conflict.status_code, conflict.message) == ("request.conflict", 409, "Conflict")
    assert (upstream.code, upstream.status_code) == ("airwallex.not_configured", 503)


@pytest.mark.unit
def test_validation_error_maps_to_422():
    app = _app()

    @app.get("/invalid")
    async def invalid():  # pragma: no cover - exercised via request
        raise ValidationError(message="Attachment 'a.txt' is not valid base64", code="mail.invalid_attachment")

    client = TestClient(app)
    response = client.get("/invalid")
    assert response.status_code == 422
    assert response.json()["code"] == "mail.invalid_attachment"
    assert ValidationError().code == "request.validation_error"
