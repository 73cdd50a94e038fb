"""
Pydantic schemas for backup API validation and serialization.

These schemas handle:
1. Request validation (rename, restore bodies)
2. Response serialization (what the chat app reads)
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============ Request Schemas ============

class RenameRequest(BaseModel):
    """
    Request to name (and thereby protect) a revision.

    Example:
        {"name": "Before provider migration"}
    """
    name: Optional[str] = Field(None, max_length=255, description="Custom revision name")


class RestoreRequest(BaseModel):
    """
    Request to make a historical version current again.

    Example:
        {"version": 3}
    """
    version: int = Field(..., ge=1, description="Historical version number")


# ============ Response Schemas ============

class StatusResponse(BaseModel):
    status: str
    message: Optional[str] = None


class PutResponse(StatusResponse):
    """Result of a write: `success` or `skipped`."""
    filename: str
    size: Optional[int] = None
    providers: Optional[int] = None
    memories: Optional[int] = None
    sessions: Optional[int] = None
    restoredFrom: Optional[str] = None


class VersionEntry(BaseModel):
    key: str
    version: int = Field(..., ge=0, description="0 = current, >= 1 = history")
    uuid: Optional[str] = None
    customName: Optional[str] = None
    label: str
    size: int
    uploaded: str = Field(..., description="originalTime, else store upload time")


class VersionListResponse(StatusResponse):
    filename: str
    totalVersions: int
    versions: List[VersionEntry]


class PreviewResponse(StatusResponse):
    key: str
    uuid: Optional[str] = None
    customName: Optional[str] = None
    size: int
    uploaded: str
    providers: Optional[int] = None
    memories: Optional[int] = None
    sessions: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict, description="Selected config settings")


class CleanupResponse(StatusResponse):
    """Result of dedup or prune."""
    removed: int
    remaining: int


class RenameResponse(StatusResponse):
    customName: str
