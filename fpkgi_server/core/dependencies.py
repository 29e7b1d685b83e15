from __future__ import annotations

import logging
from typing import Optional

from fpkgi_server.core.config import ServerConfig
from fpkgi_server.data.route_table import RouteTable, RouteTableBuilder
from fpkgi_server.services.dispatcher import Dispatcher
from fpkgi_server.services.listing import DirectoryListingRenderer
from fpkgi_server.services.redirects import RedirectResolver
from fpkgi_server.storage.file_delivery import FileDelivery, StaticFilesDelivery

logger = logging.getLogger(__name__)

_route_table: Optional[RouteTable] = None
_dispatcher: Optional[Dispatcher] = None
_listing_renderer: Optional[DirectoryListingRenderer] = None
_file_delivery: Optional[FileDelivery] = None


def initialize_routing(config: ServerConfig) -> RouteTable:
    """
    Scan the configured roots and wire the request-time services.

    Called once from the application lifespan, before any request is
    served. Any scan failure propagates so the server does not start.
    """
    global _route_table, _dispatcher, _listing_renderer, _file_delivery

    roots = config.directory_roots()
    table = RouteTableBuilder().build(roots)

    _route_table = table
    _dispatcher = Dispatcher(table, RedirectResolver(table))
    _listing_renderer = DirectoryListingRenderer()
    _file_delivery = StaticFilesDelivery(roots)

    logger.info("Serving directories:")
    for root in table.roots:
        logger.info(f"  /{root.name} -> {root.filesystem_path}")
    logger.info(f"Route table ready with {len(table)} entries")
    return table


def _require(value, name: str):
    if value is None:
        raise RuntimeError(f"{name} requested before initialize_routing() was called")
    return value


def get_route_table() -> RouteTable:
    return _require(_route_table, "Route table")


def get_dispatcher() -> Dispatcher:
    return _require(_dispatcher, "Dispatcher")


def get_listing_renderer() -> DirectoryListingRenderer:
    return _require(_listing_renderer, "Listing renderer")


def get_file_delivery() -> FileDelivery:
    return _require(_file_delivery, "File delivery")
