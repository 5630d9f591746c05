"""
Configuration loader for the LINSTOR Docker volume plugin.

A single INI file provides the `[global]` defaults for volume options and the
controller connection settings. Connection settings can additionally be
overridden through `LS_*` environment variables.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from linstor_volume.exceptions import InvalidOptions


DEFAULT_CONFIG_PATH = Path("/etc/linstor/docker-volume.conf")
CONFIG_SECTION = "global"
ENV_PREFIX = "LS_"

# file key -> (dataclass field, environment suffix)
_CONNECTION_KEYS = {
    "controllers": ("controllers", "CONTROLLERS"),
    "username": ("username", "USERNAME"),
    "password": ("password", "PASSWORD"),
    "certfile": ("cert_file", "CERT_FILE"),
    "keyfile": ("key_file", "KEY_FILE"),
    "cafile": ("ca_file", "CA_FILE"),
}


@dataclass(frozen=True)
class LinstorConfig:
    controllers: str = ""
    username: str = ""
    password: str = ""
    cert_file: str = ""
    key_file: str = ""
    ca_file: str = ""


def config_path(path: Optional[Union[str, Path]] = None) -> Path:
    if path:
        return Path(path)
    env = os.environ.get("LINSTOR_DOCKER_VOLUME_CONFIG")
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    # passwords may contain '%'
    parser = configparser.ConfigParser(interpolation=None)
    if path.exists():
        try:
            parser.read(path, encoding="utf-8")
        except configparser.Error as e:
            raise InvalidOptions(f"Could not parse config file {path}: {e}")
    return parser


def load_section(path: Optional[Union[str, Path]] = None) -> Dict[str, str]:
    """
    Return the raw `[global]` key/value pairs of the config file.

    Keys are lower-cased by configparser. Missing files are not an error; an
    empty mapping is returned.
    """
    parser = _read_ini(config_path(path))
    if not parser.has_section(CONFIG_SECTION):
        return {}
    return {key: value.strip() for key, value in parser.items(CONFIG_SECTION)}


def load_config(path: Optional[Union[str, Path]] = None) -> LinstorConfig:
    """
    Load the controller connection settings from:
    - the `[global]` section of the config file
    - `LS_CONTROLLERS`, `LS_USERNAME`, `LS_PASSWORD`, `LS_CERT_FILE`,
      `LS_KEY_FILE`, `LS_CA_FILE` (take precedence, all optional)
    """
    section = load_section(path)
    values: Dict[str, str] = {}
    for key, (field, env_suffix) in _CONNECTION_KEYS.items():
        value = section.get(key, "")
        env = os.environ.get(ENV_PREFIX + env_suffix)
        if env is not None:
            value = env.strip()
        values[field] = value
    return LinstorConfig(**values)
