"""
Backup API endpoints.

Exposed endpoints (all require the X-Auth-Key header):
- GET /list/{key} - Current + historical versions, newest first
- GET /preview/{key} - Summary of one revision
- POST /dedup/{key} - Remove duplicate unnamed revisions
- POST /prune/{key} - Trim history to a cap
- POST /rename/{key} - Name (protect) a revision
- POST /restore/{key} - Make a historical version current
- GET /{key} - Raw content of any revision
- PUT /{key} - Write new current content (archives the old one)
- DELETE /{key} - Delete one object

Errors are raised as BackupError and rendered by the application's
exception handler as {"status": "error", "message": ...}.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
from loguru import logger

from backups.exceptions import BadRequestError
from backups.schemas import (
    CleanupResponse, PreviewResponse, PutResponse, RenameRequest,
    RenameResponse, RestoreRequest, StatusResponse, VersionListResponse
)
from backups.service import BackupService
from security.auth.api_keys import verify_auth_key

router = APIRouter(tags=["backups"], dependencies=[Depends(verify_auth_key)])


def get_backup_service(request: Request) -> BackupService:
    return request.app.state.backup_service


# ==================== MAINTENANCE & LISTING ====================
# Registered before the catch-all /{key} routes so the prefixes win.

@router.get("/list/{key:path}", response_model=VersionListResponse)
def list_versions(key: str, service: BackupService = Depends(get_backup_service)):
    """List version 0 followed by history (highest version first)."""
    return service.list_versions(key)


@router.get("/preview/{key:path}", response_model=PreviewResponse)
def preview_document(key: str, service: BackupService = Depends(get_backup_service)):
    """Structural summary of a revision without its content."""
    return service.preview(key)


@router.post("/dedup/{key:path}", response_model=CleanupResponse)
def dedup_document(key: str, service: BackupService = Depends(get_backup_service)):
    """
    Delete unnamed revisions that duplicate an earlier revision.

    Example response:
        {"status": "success", "message": "Removed 2 duplicate versions",
         "removed": 2, "remaining": 5}
    """
    return service.dedup(key)


@router.post("/prune/{key:path}", response_model=CleanupResponse)
def prune_document(
    key: str,
    cap: Optional[int] = Query(None, ge=0, description="Defaults to MAX_BACKUPS"),
    service: BackupService = Depends(get_backup_service)
):
    return service.prune(key, cap)


@router.post("/rename/{key:path}", response_model=RenameResponse)
def rename_revision(
    key: str,
    body: Optional[RenameRequest] = None,
    service: BackupService = Depends(get_backup_service)
):
    """
    Set `customName` on a revision. Named revisions are protected.

    Example request:
        {"name": "Stable before v1.12"}
    """
    return service.rename(key, body.name if body else None)


@router.post(
    "/restore/{key:path}",
    response_model=PutResponse,
    response_model_exclude_none=True
)
def restore_version(
    key: str,
    body: RestoreRequest,
    service: BackupService = Depends(get_backup_service)
):
    return service.restore(key, body.version)


# ==================== BASIC OPERATIONS ====================

@router.api_route(
    "/",
    methods=["GET", "PUT", "POST", "DELETE"],
    include_in_schema=False
)
def missing_filename():
    raise BadRequestError("Filename required")


@router.get("/{key:path}")
def get_document(key: str, service: BackupService = Depends(get_backup_service)):
    """Raw content of the current revision (or any historical key)."""
    obj = service.get_document(key)
    return Response(content=obj.body, media_type="application/json")


@router.put(
    "/{key:path}",
    response_model=PutResponse,
    response_model_exclude_none=True
)
async def put_document(
    key: str,
    request: Request,
    service: BackupService = Depends(get_backup_service)
):
    """
    Write the request body as the new current revision.

    Returns `skipped` when the content is unchanged apart from `_backupTime`
    and key order.
    """
    raw = await request.body()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise BadRequestError("Body must be UTF-8 text")

    logger.info(f"[PUT] {key}: {len(raw)} bytes received")
    return await run_in_threadpool(service.put_document, key, content)


@router.delete("/{key:path}", response_model=StatusResponse)
def delete_document(key: str, service: BackupService = Depends(get_backup_service)):
    """Delete exactly this object. History slots are not touched."""
    return service.delete_document(key)
