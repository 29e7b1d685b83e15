from __future__ import annotations

import logging

from fpkgi_server.data.route_table import RouteTable
from fpkgi_server.domain import path_codec
from fpkgi_server.domain.errors import InvalidPathError, RouteTableConsistencyError
from fpkgi_server.domain.models import DirectoryNode, RouteKind

logger = logging.getLogger(__name__)


class RedirectResolver:
    """
    Builds the canonical, slash-suffixed location for a directory requested
    without its trailing slash.
    """

    def __init__(self, table: RouteTable):
        self._table = table

    def resolve(self, node: DirectoryNode, raw_query: str = "") -> str:
        """
        Return the ``Location`` for ``node``, with ``raw_query`` appended untouched.

        The target is dispatched against the route table before it is
        returned: it must hit a listing entry, never another redirect.

        Raises:
            RouteTableConsistencyError: if the target is not a listing route.
        """
        location = path_codec.encode_path(node.logical_path) + "/"

        try:
            target = self._table.lookup(path_codec.decode_path(location))
        except InvalidPathError as exc:
            raise RouteTableConsistencyError(
                f"Redirect target {location!r} for {node.logical_path!r} does not decode: {exc.reason}"
            ) from exc
        if target is None or target.kind is not RouteKind.LISTING:
            raise RouteTableConsistencyError(
                f"Redirect target {location!r} for {node.logical_path!r} is not a listing route"
            )

        if raw_query:
            location = f"{location}?{raw_query}"
        logger.debug(f"Redirecting {node.logical_path!r} to {location!r}")
        return location
