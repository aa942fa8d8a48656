"""FastAPI app exposing MemStorage under the /api conventions."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from campusdesk.errors import FormValidationError
from campusdesk.models import validate_partial
from campusdesk.resources import DASHBOARD_METRICS_PATH, RESOURCES, Resource
from campusdesk.server.storage import MemStorage, Table

logger = logging.getLogger(__name__)


def _message(status: int, message: str) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


def _resource_router(resource: Resource[Any], table: Table[Any]) -> APIRouter:
    """GET list/one, POST, PUT (partial) and DELETE for one collection."""
    router = APIRouter(prefix=resource.path)
    create_model = resource.create_model

    @router.get("")
    def list_records() -> list[dict[str, Any]]:
        return [record.to_wire() for record in table.list()]

    @router.get("/{id}")
    def get_record(id: int):
        record = table.get(id)
        if record is None:
            return _message(404, f"{resource.title} not found")
        return record.to_wire()

    @router.post("", status_code=201)
    async def create_record(request: Request):
        payload = await _json_body(request)
        try:
            data = create_model.model_validate(payload)
        except ValidationError as e:
            logger.info("Rejected %s: %s", resource.name, e)
            return _message(400, f"Invalid {resource.name} data")
        return table.insert(data.model_dump()).to_wire()

    @router.put("/{id}")
    async def update_record(id: int, request: Request):
        existing = table.get(id)
        if existing is None:
            return _message(404, f"{resource.title} not found")
        payload = await _json_body(request)
        if not isinstance(payload, dict):
            return _message(400, f"Failed to update {resource.name}")
        try:
            changes = validate_partial(create_model, payload)
            merged = create_model.model_validate({**existing.to_wire(), **changes})
        except (FormValidationError, ValidationError) as e:
            logger.info("Rejected %s update: %s", resource.name, e)
            return _message(400, f"Failed to update {resource.name}")
        names = {
            name
            for name, info in create_model.model_fields.items()
            if (info.alias or name) in changes
        }
        return table.update(id, merged.model_dump(include=names)).to_wire()

    @router.delete("/{id}", status_code=204)
    def delete_record(id: int) -> Response:
        table.delete(id)
        return Response(status_code=204)

    return router


def create_app(storage: MemStorage | None = None) -> FastAPI:
    """Build the API over ``storage`` (a fresh MemStorage by default).

    No authentication, pagination or rate limiting.
    """
    storage = storage if storage is not None else MemStorage()
    app = FastAPI(title="campusdesk")
    app.state.storage = storage

    for resource in RESOURCES:
        app.include_router(_resource_router(resource, storage.table(resource.path)))

    @app.get(DASHBOARD_METRICS_PATH)
    def get_dashboard_metrics() -> dict[str, Any]:
        return storage.dashboard_metrics().to_wire()

    return app
