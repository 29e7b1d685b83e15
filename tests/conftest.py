"""Shared test fixtures for fpkgi-server."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterator, List

import pytest
from fastapi.testclient import TestClient

from fpkgi_server.core.config import DirectoryRootConfig, ServerConfig
from fpkgi_server.data.route_table import RouteTable, RouteTableBuilder
from fpkgi_server.domain.models import DirectoryNode, RouteKind
from fpkgi_server.main import create_app
from fpkgi_server.services.dispatcher import Dispatcher
from fpkgi_server.services.redirects import RedirectResolver


@pytest.fixture
def served_tree(tmp_path: Path) -> Path:
    """
    Create three roots next to a file that must never be reachable:

        secret.txt
        pkgs/   afile.pkg FileB.pkg ZFile.pkg café/ games/deep/x.pkg new dir/inner.pkg
        jsons/  games.json
        Icons/  icon.png
    """
    (tmp_path / "secret.txt").write_text("top secret")

    pkgs = tmp_path / "pkgs"
    pkgs.mkdir()
    (pkgs / "ZFile.pkg").write_bytes(b"zzzz")
    (pkgs / "afile.pkg").write_bytes(b"0123456789")
    (pkgs / "FileB.pkg").write_bytes(b"bbbb")
    (pkgs / "café").mkdir()
    (pkgs / "games" / "deep").mkdir(parents=True)
    (pkgs / "games" / "deep" / "x.pkg").write_bytes(b"deep file")
    (pkgs / "new dir").mkdir()
    (pkgs / "new dir" / "inner.pkg").write_bytes(b"inner")

    jsons = tmp_path / "jsons"
    jsons.mkdir()
    (jsons / "games.json").write_text('{"DATA": {}}')

    icons = tmp_path / "Icons"
    icons.mkdir()
    (icons / "icon.png").write_bytes(b"\x89PNG\r\n\x1a\n")

    return tmp_path


@pytest.fixture
def server_config(served_tree: Path) -> ServerConfig:
    return ServerConfig(
        directories=[
            DirectoryRootConfig(name="jsons", path=served_tree / "jsons"),
            DirectoryRootConfig(name="Icons", path=served_tree / "Icons"),
            DirectoryRootConfig(name="pkgs", path=served_tree / "pkgs"),
        ]
    )


@pytest.fixture
def route_table(server_config: ServerConfig) -> RouteTable:
    return RouteTableBuilder().build(server_config.directory_roots())


@pytest.fixture
def dispatcher(route_table: RouteTable) -> Dispatcher:
    return Dispatcher(route_table, RedirectResolver(route_table))


@pytest.fixture
def client(server_config: ServerConfig) -> Iterator[TestClient]:
    with TestClient(create_app(server_config)) as test_client:
        yield test_client


@pytest.fixture
def listing_nodes(route_table: RouteTable) -> List[DirectoryNode]:
    """Every directory node the startup scan registered a listing for."""
    return [e.node for e in route_table.entries if e.kind is RouteKind.LISTING]


@pytest.fixture
def deny_scandir(monkeypatch) -> Callable[[Path], None]:
    """Make ``os.scandir`` fail with EACCES for one directory."""
    original_scandir = os.scandir

    def deny(target: Path) -> None:
        def scandir(path="."):
            if Path(path) == target:
                raise PermissionError(13, "Permission denied", str(path))
            return original_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)

    return deny
