"""
api/routes/resources.py -- CRUD routes for every campus entity.

One router is built per (entity, version) pair from the same factory:

  POST   /api/{v1|v2}/<entity>        -- create record               201
  GET    /api/{v1|v2}/<entity>        -- paginated list              200
  GET    /api/{v1|v2}/<entity>/{id}   -- fetch one record            200
  PUT    /api/{v1|v2}/<entity>/{id}   -- merge-update one record     200
  DELETE /api/{v1|v2}/<entity>/{id}   -- delete one record           204

v1 routers store payloads as sent; v2 routers run the entity schema first.
Both share app.state.documents, so a record written through one version is
readable through the other.

Auth policy: every route requires a bearer access token. With
V1_PUBLIC_CREATE=true the v1 POST route is the single exception.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, Response

from api.models import PageResponse
from auth.dependencies import get_current_user
from core.config import get_settings
from resources.controller import ResourceController
from resources.models import EntityBinding
from resources.schemas import ENTITIES


def _controller(request: Request, binding: EntityBinding, validate: bool) -> ResourceController:
    return ResourceController(binding, request.app.state.documents, validate=validate)


def build_resource_router(binding: EntityBinding, validate: bool) -> APIRouter:
    """Return the five CRUD routes for one entity, unprefixed.

    Guarded routes get get_current_user as a route dependency rather than a
    router dependency so the optional public v1 create can opt out.
    """
    router = APIRouter()
    guard = [Depends(get_current_user)]
    public_create = not validate and get_settings().v1_public_create

    @router.post(
        "",
        status_code=201,
        dependencies=[] if public_create else guard,
        summary=f"Create {binding.name}",
    )
    def create_record(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        return _controller(request, binding, validate).create(payload).to_dict()

    @router.get("", response_model=PageResponse, dependencies=guard, summary=f"List {binding.name}")
    def list_records(
        request: Request,
        page: Optional[int] = Query(default=None),
        limit: Optional[int] = Query(default=None),
    ) -> PageResponse:
        result = _controller(request, binding, validate).list(page=page, page_size=limit)
        return PageResponse.from_page(result)

    @router.get("/{doc_id}", dependencies=guard, summary=f"Get {binding.name}")
    def get_record(request: Request, doc_id: str) -> dict[str, Any]:
        return _controller(request, binding, validate).get(doc_id).to_dict()

    @router.put("/{doc_id}", dependencies=guard, summary=f"Update {binding.name}")
    def update_record(request: Request, doc_id: str, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        return _controller(request, binding, validate).update(doc_id, payload).to_dict()

    @router.delete("/{doc_id}", status_code=204, dependencies=guard, summary=f"Delete {binding.name}")
    def delete_record(request: Request, doc_id: str) -> Response:
        _controller(request, binding, validate).remove(doc_id)
        return Response(status_code=204)

    return router


def register_resource_routes(app: FastAPI, bindings: tuple[EntityBinding, ...] = ENTITIES) -> None:
    """Mount /api/v1/<entity> (unvalidated) and /api/v2/<entity> (validated)."""
    for binding in bindings:
        tag = binding.title or binding.name
        app.include_router(
            build_resource_router(binding, validate=False),
            prefix=f"/api/v1/{binding.name}",
            tags=[f"{tag} (v1)"],
        )
        app.include_router(
            build_resource_router(binding, validate=True),
            prefix=f"/api/v2/{binding.name}",
            tags=[f"{tag} (v2)"],
        )
