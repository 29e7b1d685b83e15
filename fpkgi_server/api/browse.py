"""
HTTP surface for browsing and downloading from the configured directory roots.

A single catch-all route hands every GET/HEAD path to the dispatcher.
Ordering between "list this directory" and "serve this file" is decided by
the route table, never by the order in which FastAPI routes are declared.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from fpkgi_server.core.dependencies import (
    get_dispatcher,
    get_file_delivery,
    get_listing_renderer,
    get_route_table,
)
from fpkgi_server.data.route_table import RouteTable
from fpkgi_server.domain.errors import DirectoryVanishedError, FileDeliveryError, ListingReadError
from fpkgi_server.domain.models import (
    Deliver,
    InvalidPath,
    ListingPage,
    Redirect,
    RenderListing,
    RenderRootIndex,
)
from fpkgi_server.services.dispatcher import Dispatcher
from fpkgi_server.services.listing import DirectoryListingRenderer
from fpkgi_server.storage.file_delivery import FileDelivery

logger = logging.getLogger(__name__)
router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


def _raw_path(request: Request) -> str:
    """
    The request path exactly as the client sent it, still percent-encoded.

    Decoding is left to the path codec; Starlette's already-decoded
    ``scope["path"]`` would hide malformed escapes and encoded slashes.
    """
    raw = request.scope.get("raw_path")
    if raw is None:
        return request.url.path
    try:
        return raw.split(b"?", 1)[0].decode("ascii")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid path: request path must be percent-encoded",
        )


def _wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def _listing_response(request: Request, page: ListingPage) -> Response:
    if _wants_json(request):
        return JSONResponse(page.model_dump(mode="json"))
    return templates.TemplateResponse(request, "listing.html", {"page": page})


@router.api_route("/{full_path:path}", methods=["GET", "HEAD"], response_model=None)
async def browse(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    table: RouteTable = Depends(get_route_table),
    renderer: DirectoryListingRenderer = Depends(get_listing_renderer),
    delivery: FileDelivery = Depends(get_file_delivery),
) -> Response:
    """
    Resolve any path under the server to a listing, a redirect, or a file.
    """
    action = dispatcher.resolve(_raw_path(request), request.url.query)

    if isinstance(action, RenderRootIndex):
        return _listing_response(request, renderer.render_root_index(table.roots))

    if isinstance(action, RenderListing):
        try:
            page = await renderer.render(action.node)
        except DirectoryVanishedError as exc:
            logger.warning(f"Directory {exc.path} disappeared after startup")
            raise HTTPException(status_code=404, detail="Not Found")
        except ListingReadError as exc:
            logger.error(str(exc))
            raise HTTPException(status_code=500, detail="Error reading directory")
        return _listing_response(request, page)

    if isinstance(action, Redirect):
        return RedirectResponse(url=action.location, status_code=status.HTTP_308_PERMANENT_REDIRECT)

    if isinstance(action, Deliver):
        try:
            return await delivery.deliver(action.root, action.relative_path, request.scope)
        except FileDeliveryError as exc:
            logger.error(str(exc))
            raise HTTPException(status_code=500, detail="Error reading file")

    if isinstance(action, InvalidPath):
        raise HTTPException(status_code=400, detail=f"Invalid path: {action.reason}")

    raise HTTPException(status_code=404, detail="Not Found")
