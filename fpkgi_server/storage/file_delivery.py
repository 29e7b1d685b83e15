from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Sequence

import aiofiles
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import FileResponse, Response
from starlette.types import Scope

from fpkgi_server.domain.errors import FileDeliveryError
from fpkgi_server.domain.models import DirectoryRoot

logger = logging.getLogger(__name__)


class FileDelivery(ABC):
    """
    Abstract file-serving capability used for every path that is not a directory route.
    """

    @abstractmethod
    async def deliver(self, root: DirectoryRoot, relative_path: str, scope: Scope) -> Response:
        """
        Serve ``relative_path`` (decoded, '/'-separated) from ``root``.

        Implementations provide ETag, Last-Modified, conditional and range
        handling, and must never serve anything outside the root.
        """
        pass


class StaticFilesDelivery(FileDelivery):
    """
    File delivery backed by one Starlette ``StaticFiles`` instance per root.

    ``StaticFiles`` resolves the real path of every lookup and refuses
    anything that ends up outside its directory, answers conditional
    requests with 304 and hands ranges to ``FileResponse``.
    """

    def __init__(self, roots: Sequence[DirectoryRoot]):
        self._mounts: Dict[str, StaticFiles] = {
            root.name: StaticFiles(directory=root.filesystem_path, check_dir=False)
            for root in roots
        }

    async def deliver(self, root: DirectoryRoot, relative_path: str, scope: Scope) -> Response:
        mount = self._mounts.get(root.name)
        if mount is None:
            raise FileDeliveryError(root.name, relative_path, "root is not configured for delivery")

        fs_relative = os.path.join(*relative_path.split("/"))
        try:
            response = await mount.get_response(fs_relative, scope)
        except StarletteHTTPException as exc:
            # StaticFiles reports permission errors as 401; this server has no auth.
            if exc.status_code == 401:
                raise FileDeliveryError(root.name, relative_path, "permission denied") from exc
            raise

        if isinstance(response, FileResponse):
            # FileResponse only opens the file after the status line is sent.
            try:
                async with aiofiles.open(response.path, "rb"):
                    pass
            except OSError as exc:
                raise FileDeliveryError(root.name, relative_path, str(exc)) from exc
        return response
