"""
AccessiList session API routes.

- GET  /api/csrf-token      - mint a CSRF token (also set as a cookie)
- GET  /api/generate-key    - draw an unused three-character session key
- POST /api/instantiate     - create a session if absent (idempotent)
- POST /api/save            - replace a session's document
- GET  /api/restore         - fetch a session's document
- DELETE /api/delete        - remove a session
- GET  /api/list            - session summaries, newest first
- GET  /api/list-detailed   - summaries with state, status and progress
- GET  /api/types           - known checklist types
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from accessilist import reports
from accessilist.api.dependencies import (
    get_client_id,
    get_services,
    rate_limit,
    require_csrf,
)
from accessilist.api.schemas import Envelope, InstantiateRequest, SaveRequest, success_response
from accessilist.security.csrf import CSRF_COOKIE
from accessilist.state.migrations import upgrade_document
from accessilist.state.session_store import validate_session_key
from accessilist.utils.errors import (
    AccessiListError,
    ErrorCode,
    InvalidTypeSlugError,
    KeyGenerationError,
    SessionNotFoundError,
    ValidationError,
)
from accessilist.utils.security_logger import get_security_logger

logger = logging.getLogger(__name__)
security_logger = get_security_logger()

router = APIRouter(prefix="/api", tags=["Sessions"])


def _record(request: Request, operation: str, outcome: str) -> None:
    metrics = get_services(request).metrics
    if metrics is not None:
        metrics.increment_session_operation(operation, outcome)


def _require_key(value: str | None, parameter: str) -> str:
    if not value:
        raise ValidationError(
            f"Missing {parameter} parameter", code=ErrorCode.E103_MISSING_FIELD
        )
    return validate_session_key(value)


@router.get("/csrf-token", response_model=Envelope)
def csrf_token(request: Request) -> JSONResponse:
    services = get_services(request)
    token = services.csrf.issue()
    security_logger.log_csrf_token_issued(client_id=get_client_id(request))

    response = success_response({"token": token})
    response.set_cookie(
        CSRF_COOKIE,
        token,
        max_age=services.csrf.ttl,
        httponly=False,
        samesite="strict",
        secure=services.config.security.secure_cookies,
    )
    return response


@router.api_route(
    "/generate-key",
    response_model=Envelope,
    methods=["GET", "POST"],
    dependencies=[Depends(rate_limit("generate-key"))],
)
def generate_key(request: Request) -> JSONResponse:
    services = get_services(request)
    try:
        key = services.store.generate_key()
    except KeyGenerationError as e:
        security_logger.log_key_space_exhausted(e.error_details.details["attempts"])
        _record(request, "generate-key", "error")
        raise
    _record(request, "generate-key", "ok")
    return success_response({"sessionKey": key})


@router.post(
    "/instantiate",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("instantiate")), Depends(require_csrf)],
)
def instantiate(body: InstantiateRequest, request: Request) -> JSONResponse:
    services = get_services(request)
    key = validate_session_key(body.session_key)
    if not services.registry.is_valid(body.type_slug):
        raise InvalidTypeSlugError(body.type_slug)

    created = services.store.create(key, body.type_slug, body.state)
    if created:
        security_logger.log_session_created(
            key, body.type_slug, client_id=get_client_id(request)
        )
        _record(request, "create", "ok")
        return success_response({"message": "Instance created"})

    _record(request, "create", "exists")
    return success_response({"message": "Instance already exists"})


@router.post(
    "/save",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("save")), Depends(require_csrf)],
)
def save(body: SaveRequest, request: Request) -> JSONResponse:
    services = get_services(request)
    key = validate_session_key(body.session_key)
    if not services.registry.is_valid(body.type_slug):
        raise InvalidTypeSlugError(body.type_slug)

    try:
        services.store.write(key, body.to_document())
    except AccessiListError:
        _record(request, "save", "error")
        raise
    _record(request, "save", "ok")
    return success_response({"message": ""})


@router.get(
    "/restore",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("restore"))],
)
def restore(
    request: Request, session_key: str | None = Query(None, alias="sessionKey")
) -> JSONResponse:
    services = get_services(request)
    key = _require_key(session_key, "sessionKey")
    try:
        document = services.store.read(key)
    except SessionNotFoundError:
        _record(request, "restore", "not_found")
        raise
    except AccessiListError:
        _record(request, "restore", "error")
        raise
    _record(request, "restore", "ok")
    return success_response(upgrade_document(document, services.registry))


@router.delete(
    "/delete",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("delete")), Depends(require_csrf)],
)
def delete(request: Request, session: str | None = Query(None)) -> JSONResponse:
    services = get_services(request)
    key = _require_key(session, "session")
    try:
        services.store.delete(key)
    except SessionNotFoundError:
        _record(request, "delete", "not_found")
        raise
    security_logger.log_session_deleted(key, client_id=get_client_id(request))
    _record(request, "delete", "ok")
    return success_response({"message": "Instance deleted successfully"})


@router.get(
    "/list",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("list"))],
)
def list_sessions(request: Request) -> JSONResponse:
    services = get_services(request)
    summaries = services.store.list()
    _record(request, "list", "ok")
    return success_response([s.to_json_dict() for s in summaries])


@router.get(
    "/list-detailed",
    response_model=Envelope,
    dependencies=[Depends(rate_limit("list"))],
)
def list_sessions_detailed(request: Request) -> JSONResponse:
    services = get_services(request)
    summaries = [reports.annotate(s) for s in services.store.list(detailed=True)]
    _record(request, "list", "ok")
    return success_response([s.to_json_dict() for s in summaries])


@router.get("/types", response_model=Envelope)
def checklist_types(request: Request) -> JSONResponse:
    return success_response(get_services(request).registry.to_dict())
