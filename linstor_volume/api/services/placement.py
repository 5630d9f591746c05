"""
Volume option resolution.

Turns a volume name plus free-form Docker options, layered over the config
file defaults, into a fully populated LinstorParams and the LINSTOR property
maps derived from it.
"""

from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from linstor_volume.client.client import KEY_STOR_POOL_NAME
from linstor_volume.exceptions import InvalidOptions
from linstor_volume.lib.validators import parse_size

PLUGIN_FLAG_KEY = "Aux/is-linstor-docker-volume"
PLUGIN_FLAG_VALUE = "true"
FS_TYPE_KEY = "FileSystem/Type"
MKFS_PARAMS_KEY = "FileSystem/MkfsParams"
DRBD_OPTIONS_PREFIX = "drbdOptions/"

DEFAULT_SIZE = "100MB"
DEFAULT_FS = "ext4"
DEFAULT_REPLICAS = 2
MIN_SIZE_BYTES = 4 * 1024 * 1024

# option key -> LinstorParams field
DRBD_OPTIONS = {
    "protocol": "protocol",
    "connect-int": "connect_interval",
    "ping-int": "ping_interval",
    "ping-timeout": "ping_timeout",
    "resync-rate": "resync_rate",
    "al-extents": "al_extents",
    "max-buffers": "max_buffers",
    "max-epoch-size": "max_epoch_size",
    "handler-split-brain": "handler_split_brain",
    "handler-pri-on-incon-degr": "handler_pri_on_incon_degr",
    "primary-set-on": "primary_set_on",
}


class LinstorParams(BaseModel):
    """Placement, filesystem and DRBD settings of one volume."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    nodes: List[str] = Field(default_factory=list, alias="nodes")
    replicas_on_different: List[str] = Field(default_factory=list, alias="replicas-on-different")
    replicas_on_same: List[str] = Field(default_factory=list, alias="replicas-on-same")
    diskless_storage_pool: str = Field("", alias="diskless-storage-pool")
    do_not_place_with_regex: str = Field("", alias="do-not-place-with-regex")
    fs: str = Field("", alias="fs")
    fsopts: str = Field("", alias="fsopts")
    mount_opts: List[str] = Field(default_factory=list, alias="mount-opts")
    storage_pool: str = Field("", alias="storage-pool")
    size: str = Field("", alias="size")
    size_kib: int = 0
    replicas: int = Field(0, alias="replicas")
    diskless_on_remaining: bool = Field(False, alias="diskless-on-remaining")

    # DRBD tuning, passed through as resource definition properties
    protocol: str = Field("", alias="protocol")
    connect_interval: str = Field("", alias="connect-int")
    ping_interval: str = Field("", alias="ping-int")
    ping_timeout: str = Field("", alias="ping-timeout")
    resync_rate: str = Field("", alias="resync-rate")
    al_extents: str = Field("", alias="al-extents")
    max_buffers: str = Field("", alias="max-buffers")
    max_epoch_size: str = Field("", alias="max-epoch-size")
    handler_split_brain: str = Field("", alias="handler-split-brain")
    handler_pri_on_incon_degr: str = Field("", alias="handler-pri-on-incon-degr")
    primary_set_on: str = Field("", alias="primary-set-on")

    @field_validator("nodes", "replicas_on_different", "replicas_on_same", "mount_opts", mode="before")
    @classmethod
    def split_words(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return v.split()
        return v

    @field_validator("replicas", mode="before")
    @classmethod
    def blank_replicas(cls, v):
        if isinstance(v, str) and not v.strip():
            return 0
        return v

    @field_validator("diskless_on_remaining", mode="before")
    @classmethod
    def blank_is_false(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        return v


def _normalize_key(key: str) -> str:
    return key.strip().lower().replace("_", "-")


def _config_file_keys() -> Dict[str, str]:
    """
    Map the separator-free spellings of each option to its dashed name.

    Older config files name `[global]` keys after the parameter fields
    without separators (`storagepool`, `connectinterval`, ...).
    """
    keys = {}
    for field_name, field in LinstorParams.model_fields.items():
        if field.alias is None:
            continue
        keys[field_name.replace("_", "")] = field.alias
        keys[field.alias.replace("-", "")] = field.alias
    return keys


_CONFIG_FILE_KEYS = _config_file_keys()


def _normalize_default_key(key: str) -> str:
    key = _normalize_key(key)
    return _CONFIG_FILE_KEYS.get(key, key)


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def resolve_params(
    name: str,
    options: Optional[Mapping[str, str]] = None,
    defaults: Optional[Mapping[str, str]] = None,
) -> LinstorParams:
    """
    Build the parameters of a volume.

    Args:
        name: Volume name (only used in error messages)
        options: Per-request options; highest priority
        defaults: `[global]` values of the config file

    Returns:
        LinstorParams with size_kib, fs and replicas always populated

    Raises:
        InvalidOptions: If an option cannot be decoded or the size is malformed
    """
    merged: Dict[str, object] = {}
    for key, value in (defaults or {}).items():
        merged[_normalize_default_key(key)] = value
    for key, value in (options or {}).items():
        merged[_normalize_key(key)] = value

    try:
        params = LinstorParams.model_validate(merged)
    except ValidationError as e:
        raise InvalidOptions(f"Invalid options for volume '{name}': {_describe(e)}")

    if not params.size:
        params.size = DEFAULT_SIZE
    try:
        size_bytes = parse_size(params.size)
    except ValueError as e:
        raise InvalidOptions(f"Could not convert '{params.size}': {e}")
    params.size_kib = max(size_bytes, MIN_SIZE_BYTES) // 1024

    if not params.fs:
        params.fs = DEFAULT_FS
    if params.replicas == 0:
        params.replicas = DEFAULT_REPLICAS

    return params


def drbd_props(params: LinstorParams) -> Dict[str, str]:
    """DRBD tuning properties; unset options are left out."""
    props = {}
    for option, field in DRBD_OPTIONS.items():
        value = getattr(params, field)
        if value:
            props[DRBD_OPTIONS_PREFIX + option] = value
    return props


def resource_definition_props(params: LinstorParams) -> Dict[str, str]:
    props = {PLUGIN_FLAG_KEY: PLUGIN_FLAG_VALUE, FS_TYPE_KEY: params.fs}
    if params.fsopts:
        props[MKFS_PARAMS_KEY] = params.fsopts
    props.update(drbd_props(params))
    return props


def diskfull_props(params: LinstorParams) -> Dict[str, str]:
    if params.storage_pool:
        return {KEY_STOR_POOL_NAME: params.storage_pool}
    return {}


def diskless_props(params: LinstorParams) -> Dict[str, str]:
    if params.diskless_storage_pool:
        return {KEY_STOR_POOL_NAME: params.diskless_storage_pool}
    return {}
