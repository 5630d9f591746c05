"""
Pydantic models for the Docker volume plugin protocol.

Field names follow the protocol's capitalised JSON keys.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class VolumeRequest(BaseModel):
    """Request carrying only a volume name (Get, Remove, Path)."""

    Name: str = Field(..., description="Volume name")


class CreateRequest(VolumeRequest):
    """Request model for VolumeDriver.Create."""

    Opts: Optional[Dict[str, str]] = Field(None, description="Driver options given with `docker volume create -o`")

    @field_validator("Opts", mode="before")
    def stringify_opts(cls, v):
        if v is None:
            return v
        return {str(key): "" if value is None else str(value) for key, value in v.items()}


class MountRequest(VolumeRequest):
    """Request model for VolumeDriver.Mount and VolumeDriver.Unmount."""

    ID: str = Field("", description="Caller (container) ID")


class VolumeInfo(BaseModel):
    Name: str
    Mountpoint: str = ""


class ErrorResponse(BaseModel):
    Err: str = ""


class GetResponse(ErrorResponse):
    Volume: VolumeInfo


class ListResponse(ErrorResponse):
    Volumes: List[VolumeInfo]


class MountpointResponse(ErrorResponse):
    Mountpoint: str


class Capability(BaseModel):
    Scope: str


class CapabilitiesResponse(BaseModel):
    Capabilities: Capability


class ActivateResponse(BaseModel):
    Implements: List[str]
