"""Route composer tests for api/routes/resources.py -- the v1 public create switch.

build_resource_router() reads V1_PUBLIC_CREATE when a router is built, so
these tests build their own small app instead of reusing the module-level one.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import app_error_handler
from api.routes.resources import build_resource_router
from auth.models import User
from auth.tokens import ACCESS, create_token, hash_password
from core.config import get_settings
from core.errors import AppError
from resources.schemas import get_binding


def _category_app(stores) -> FastAPI:
    app = FastAPI()
    binding = get_binding("category")
    app.include_router(build_resource_router(binding, validate=False), prefix="/api/v1/category")
    app.include_router(build_resource_router(binding, validate=True), prefix="/api/v2/category")
    app.add_exception_handler(AppError, app_error_handler)
    app.state.documents = stores.documents
    app.state.auth_service = stores.auth_service
    return app


@pytest.fixture
def public_create_client(stores, monkeypatch):
    monkeypatch.setenv("V1_PUBLIC_CREATE", "true")
    get_settings.cache_clear()
    try:
        assert get_settings().v1_public_create is True
        with TestClient(_category_app(stores)) as client:
            yield client
    finally:
        monkeypatch.delenv("V1_PUBLIC_CREATE")
        get_settings.cache_clear()


def test_public_create_opens_only_v1_post(public_create_client):
    client = public_create_client
    body = {"Category_ID": 5, "Category_Name": "Maps"}

    resp = client.post("/api/v1/category", json=body)
    assert resp.status_code == 201, resp.text
    assert resp.json()["id"] == "5"

    resp = client.get("/api/v1/category")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "token_invalid"

    resp = client.get("/api/v1/category/5")
    assert resp.status_code == 401

    resp = client.post("/api/v2/category", json={"Category_ID": 6, "Category_Name": "Atlases"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "token_invalid"


def test_public_create_still_accepts_a_token(public_create_client, stores):
    uid = stores.users.create_user(User(email="clerk@campus.test", hashed_password=hash_password("clerkpass123")))
    stores.users.mark_verified("clerk@campus.test")
    headers = {"Authorization": f"Bearer {create_token(uid, 'clerk@campus.test', ACCESS)}"}
    client = public_create_client

    resp = client.post("/api/v1/category", json={"Category_ID": 8, "Category_Name": "Law"}, headers=headers)
    assert resp.status_code == 201, resp.text
    resp = client.get("/api/v2/category/8", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["Category_Name"] == "Law"


def test_default_settings_guard_v1_post(stores):
    assert get_settings().v1_public_create is False
    with TestClient(_category_app(stores)) as client:
        resp = client.post("/api/v1/category", json={"Category_ID": 9, "Category_Name": "Art"})
    assert resp.status_code == 401
