"""
FastAPI application implementing the Docker volume plugin protocol.
"""

import logging
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from linstor_volume.api.models import (
    ActivateResponse,
    CapabilitiesResponse,
    CreateRequest,
    ErrorResponse,
    GetResponse,
    ListResponse,
    MountpointResponse,
    MountRequest,
    VolumeRequest,
)
from linstor_volume.driver import LinstorDriver
from linstor_volume.exceptions import LinstorVolumeException

app = FastAPI(
    title="LINSTOR Docker Volume Plugin",
    description="Docker volume plugin backed by LINSTOR/DRBD",
    version="0.1.0",
)
logger = logging.getLogger(__name__)


def get_driver() -> LinstorDriver:
    """Return the driver configured by the server entry point."""
    driver = getattr(app.state, "driver", None)
    if driver is None:
        driver = LinstorDriver()
        app.state.driver = driver
    return driver


@app.exception_handler(LinstorVolumeException)
async def plugin_exception_handler(request: Request, exc: LinstorVolumeException) -> JSONResponse:
    """Report driver errors to Docker in the protocol's error format."""
    logger.error("%s failed: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"Err": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies in the protocol's error format."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"] if p != "body")
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    message = "Invalid request: " + "; ".join(parts)
    logger.error("%s rejected: %s", request.url.path, message)
    return JSONResponse(status_code=400, content={"Err": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.exception("Unhandled error (path=%s)", request.url.path)
    return JSONResponse(status_code=500, content={"Err": str(exc) or "Internal error"})


@app.post("/Plugin.Activate", response_model=ActivateResponse)
def activate() -> Dict[str, Any]:
    return {"Implements": ["VolumeDriver"]}


@app.post("/VolumeDriver.Create", response_model=ErrorResponse)
def create_volume(req: CreateRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Create a volume in the LINSTOR cluster.
    """
    driver.create(req.Name, req.Opts)
    return {"Err": ""}


@app.post("/VolumeDriver.Get", response_model=GetResponse)
def get_volume(req: VolumeRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Get a volume managed by this plugin.
    """
    vol = driver.get(req.Name)
    return {"Volume": {"Name": vol["name"], "Mountpoint": vol["mountpoint"]}, "Err": ""}


@app.post("/VolumeDriver.List", response_model=ListResponse)
def list_volumes(driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    List all volumes managed by this plugin.
    """
    volumes = [{"Name": vol["name"], "Mountpoint": vol["mountpoint"]} for vol in driver.list()]
    return {"Volumes": volumes, "Err": ""}


@app.post("/VolumeDriver.Remove", response_model=ErrorResponse)
def remove_volume(req: VolumeRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Delete a volume and its snapshots from the cluster.
    """
    driver.remove(req.Name)
    return {"Err": ""}


@app.post("/VolumeDriver.Path", response_model=MountpointResponse)
def volume_path(req: VolumeRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    return {"Mountpoint": driver.path(req.Name), "Err": ""}


@app.post("/VolumeDriver.Mount", response_model=MountpointResponse)
def mount_volume(req: MountRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Attach and mount a volume on this node.
    """
    logger.info("Mount of %s requested by %s", req.Name, req.ID)
    return {"Mountpoint": driver.mount(req.Name), "Err": ""}


@app.post("/VolumeDriver.Unmount", response_model=ErrorResponse)
def unmount_volume(req: MountRequest, driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Unmount a volume; a diskless local resource is removed afterwards.
    """
    logger.info("Unmount of %s requested by %s", req.Name, req.ID)
    driver.unmount(req.Name)
    return {"Err": ""}


@app.post("/VolumeDriver.Capabilities", response_model=CapabilitiesResponse)
def capabilities(driver: LinstorDriver = Depends(get_driver)) -> Dict[str, Any]:
    caps = driver.capabilities()
    return {"Capabilities": {"Scope": caps["scope"]}}
