"""
Directory listings.

Listings are read live from disk on every request. The set of directories
that can be listed is fixed by the startup scan, but their contents are not:
files and subdirectories created later show up here immediately. A
subdirectory created after startup is shown, yet its link only resolves
after a restart.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Iterable, List, Tuple

from fpkgi_server.domain import path_codec
from fpkgi_server.domain.errors import DirectoryVanishedError, ListingReadError
from fpkgi_server.domain.models import DirectoryNode, DirectoryRoot, ListingEntry, ListingPage

logger = logging.getLogger(__name__)

ROOT_INDEX_TITLE = "Available Directories"


def sort_key(name: str) -> str:
    """Case-insensitive ordering used for every listing."""
    return name.lower()


class DirectoryListingRenderer:
    async def render(self, node: DirectoryNode) -> ListingPage:
        """
        Read the immediate children of ``node`` and build its listing page.

        Raises:
            DirectoryVanishedError: the directory was removed after startup.
            ListingReadError: the directory exists but cannot be read.
        """
        children = await self._read_children(node)
        # sorted() is stable, so names equal ignoring case keep directory order.
        children = sorted(children, key=lambda child: sort_key(child[0]))

        base_href = path_codec.encode_path(node.logical_path)
        entries = [
            ListingEntry(
                name=name,
                is_directory=is_directory,
                href=f"{base_href}/{path_codec.encode(name)}" + ("/" if is_directory else ""),
            )
            for name, is_directory in children
        ]

        if node.is_root:
            # Roots link back to the top-level index.
            parent_href = "/"
        else:
            parent_href = path_codec.encode_path(node.parent_logical_path) + "/"

        logger.debug(f"Rendering directory listing for {node.logical_path!r} ({len(entries)} entries)")
        return ListingPage(
            title=f"Index of {node.logical_path}/",
            logical_path=node.logical_path + "/",
            parent_href=parent_href,
            entries=entries,
        )

    def render_root_index(self, roots: Iterable[DirectoryRoot]) -> ListingPage:
        entries = [
            ListingEntry(name=root.name, is_directory=True, href=f"/{path_codec.encode(root.name)}/")
            for root in sorted(roots, key=lambda r: sort_key(r.name))
        ]
        return ListingPage(title=ROOT_INDEX_TITLE, logical_path="/", parent_href=None, entries=entries)

    async def _read_children(self, node: DirectoryNode) -> List[Tuple[str, bool]]:
        path = node.filesystem_path
        try:
            # opendir and every readdir run in one worker thread.
            return await asyncio.to_thread(_scan_children, path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise DirectoryVanishedError(path, exc) from exc
        except OSError as exc:
            raise ListingReadError(path, exc) from exc


def _scan_children(path: Path) -> List[Tuple[str, bool]]:
    children: List[Tuple[str, bool]] = []
    with os.scandir(path) as scandir_it:
        for entry in scandir_it:
            if not path_codec.is_representable(entry.name):
                logger.warning(f"Omitting {entry.path!r} from listing: name cannot be represented in a URL")
                continue
            # Symlinks are never treated as directories, matching the startup scan.
            children.append((entry.name, entry.is_dir(follow_symlinks=False)))
    return children
