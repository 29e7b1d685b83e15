from __future__ import annotations

import logging

from fpkgi_server.data.route_table import RouteTable
from fpkgi_server.domain import path_codec
from fpkgi_server.domain.errors import InvalidPathError
from fpkgi_server.domain.models import (
    Action,
    Deliver,
    InvalidPath,
    NotFound,
    Redirect,
    RenderListing,
    RenderRootIndex,
    RouteKind,
)
from fpkgi_server.services.redirects import RedirectResolver

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Resolves an inbound request path to an action.

    Resolution is exact match first (listing for paths with a trailing
    slash, redirect for paths without one), then the owning root's file
    fallback. Both tiers are keyed by paths produced by the same decoder,
    so names with spaces or non-ASCII characters need no special casing.
    """

    def __init__(self, table: RouteTable, redirects: RedirectResolver):
        self._table = table
        self._redirects = redirects

    def resolve(self, raw_path: str, raw_query: str = "") -> Action:
        try:
            path = path_codec.decode_path(raw_path)
        except InvalidPathError as exc:
            logger.debug(f"Rejecting {raw_path!r}: {exc.reason}")
            return InvalidPath(reason=exc.reason)

        if path == "/":
            return RenderRootIndex()

        entry = self._table.lookup(path)

        if path.endswith("/"):
            # Files never carry a trailing slash, so this is never delegated to file delivery.
            if entry is not None and entry.kind is RouteKind.LISTING:
                return RenderListing(node=entry.node)
            logger.debug(f"No listing for {path!r}")
            return NotFound(path=path)

        if entry is not None and entry.kind is RouteKind.REDIRECT:
            return Redirect(location=self._redirects.resolve(entry.node, raw_query))

        root_name, _, remainder = path[1:].partition("/")
        fallback = self._table.fallback_for(root_name)
        if fallback is None or not remainder:
            logger.debug(f"No route or root for {path!r}")
            return NotFound(path=path)

        logger.debug(f"Not a directory, falling back to file delivery: {path!r}")
        return Deliver(root=fallback.root, relative_path=remainder)
