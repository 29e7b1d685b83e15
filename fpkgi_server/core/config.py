from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from fpkgi_server.domain.models import DirectoryRoot

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "FPKGI_SERVER_CONFIG"
DIRS_ENV_VAR = "FPKGI_SERVER_DIRS"
HOST_ENV_VAR = "FPKGI_SERVER_HOST"
PORT_ENV_VAR = "FPKGI_SERVER_PORT"
LOG_LEVEL_ENV_VAR = "FPKGI_SERVER_LOG_LEVEL"

# Whitespace is allowed inside paths, so only commas and newlines separate specs.
_DIR_SPEC_SEPARATOR = re.compile(r"[,\r\n]+")


class DirectoryRootConfig(BaseModel):
    name: str = Field(description="URL prefix segment under which the directory is served.")
    path: Path = Field(description="Directory on disk.")

    @field_validator("name")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        if not value or "/" in value or value in (".", ".."):
            raise ValueError(f"'{value}' is not a valid directory name: must be a single URL segment")
        return value


class ServerConfig(BaseModel):
    """
    Server configuration. Read once at startup; the directory list is never
    reloaded while the process runs.
    """

    directories: List[DirectoryRootConfig] = Field(
        description="Ordered list of directory roots to serve.",
    )
    host: str = Field(default="0.0.0.0", description="Interface to bind.")
    port: int = Field(default=8000, ge=1, le=65535, description="Port to bind.")
    log_level: str = Field(default="info", description="Root log level name.")

    @field_validator("directories")
    @classmethod
    def _unique_names(cls, value: List[DirectoryRootConfig]) -> List[DirectoryRootConfig]:
        if not value:
            raise ValueError("No valid directories specified")
        names = [d.name for d in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate directory names: {', '.join(duplicates)}")
        return value

    def directory_roots(self) -> List[DirectoryRoot]:
        return [
            DirectoryRoot(name=d.name, filesystem_path=d.path.expanduser())
            for d in self.directories
        ]


def parse_dir_spec(spec: str) -> DirectoryRootConfig:
    """
    Parse a ``name:path`` directory spec, e.g. ``pkgs:/data/packages``.

    Without a ``:`` the value is the path and its last component the name,
    so ``/data/packages`` is served under ``/packages/``.
    """
    name, sep, path = spec.partition(":")
    if not sep:
        name, path = Path(spec).name, spec
    return DirectoryRootConfig(name=name, path=Path(path))


def parse_dir_specs(value: str) -> List[DirectoryRootConfig]:
    specs = (s.strip() for s in _DIR_SPEC_SEPARATOR.split(value))
    return [parse_dir_spec(s) for s in specs if s]


def load_config_file(path: Path) -> ServerConfig:
    """
    Load a YAML configuration file:

        host: 0.0.0.0
        port: 8000
        directories:
          - name: pkgs
            path: /data/packages
    """
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return ServerConfig(**raw)


def load_config(environ: Optional[dict] = None) -> ServerConfig:
    """
    Build the server configuration from the environment.

    Priority:
    1. YAML file named by FPKGI_SERVER_CONFIG
    2. FPKGI_SERVER_DIRS with ``name:path`` specs

    FPKGI_SERVER_HOST / _PORT / _LOG_LEVEL override either source.
    """
    env = os.environ if environ is None else environ

    config_file = env.get(CONFIG_FILE_ENV_VAR)
    if config_file:
        config = load_config_file(Path(config_file).expanduser())
        logger.info(f"Loaded configuration from {config_file}")
    else:
        config = ServerConfig(directories=parse_dir_specs(env.get(DIRS_ENV_VAR, "")))

    overrides = {}
    if env.get(HOST_ENV_VAR):
        overrides["host"] = env[HOST_ENV_VAR]
    if env.get(PORT_ENV_VAR):
        overrides["port"] = int(env[PORT_ENV_VAR])
    if env.get(LOG_LEVEL_ENV_VAR):
        overrides["log_level"] = env[LOG_LEVEL_ENV_VAR]
    if overrides:
        config = ServerConfig(**{**config.model_dump(), **overrides})
    return config
