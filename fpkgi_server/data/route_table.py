from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from fpkgi_server.domain import path_codec
from fpkgi_server.domain.errors import RootScanError, RouteTableConsistencyError
from fpkgi_server.domain.models import DirectoryNode, DirectoryRoot, RouteEntry, RouteKind

logger = logging.getLogger(__name__)


class RouteTable:
    """
    Immutable result of the startup scan.

    Lookups are two-tier: an exact match on the decoded path (listing and
    redirect entries), then the per-root file fallback. The fallback map is
    kept separate from the exact map, so no pattern can shadow another.
    """

    def __init__(self, roots: Sequence[DirectoryRoot], entries: Iterable[RouteEntry]):
        self._roots: Tuple[DirectoryRoot, ...] = tuple(roots)
        self._entries: Tuple[RouteEntry, ...] = tuple(entries)

        exact: Dict[str, RouteEntry] = {}
        fallbacks: Dict[str, RouteEntry] = {}
        for entry in self._entries:
            root_name = entry.root.name
            if entry.kind is RouteKind.FILE_FALLBACK:
                if root_name in fallbacks:
                    raise RouteTableConsistencyError(
                        f"Root '{root_name}' has more than one file fallback"
                    )
                fallbacks[root_name] = entry
                continue

            if root_name in fallbacks:
                raise RouteTableConsistencyError(
                    f"Directory route {entry.url_pattern!r} registered after the "
                    f"file fallback of root '{root_name}'"
                )
            if entry.url_pattern in exact:
                raise RouteTableConsistencyError(f"Duplicate route {entry.url_pattern!r}")
            exact[entry.url_pattern] = entry

        self._exact: Mapping[str, RouteEntry] = MappingProxyType(exact)
        self._fallbacks: Mapping[str, RouteEntry] = MappingProxyType(fallbacks)

    @property
    def roots(self) -> Tuple[DirectoryRoot, ...]:
        return self._roots

    @property
    def entries(self) -> Tuple[RouteEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, decoded_path: str) -> Optional[RouteEntry]:
        """Exact-match lookup of a listing or redirect entry."""
        return self._exact.get(decoded_path)

    def fallback_for(self, root_name: str) -> Optional[RouteEntry]:
        return self._fallbacks.get(root_name)

    def verify(self) -> None:
        """
        Check that every redirect lands on a listing and every root has its fallback.

        Raises:
            RouteTableConsistencyError: if the table could send a client into
                a second redirect or leave a root without file delivery.
        """
        for entry in self._entries:
            if entry.kind is not RouteKind.REDIRECT:
                continue
            target = self.lookup(entry.url_pattern + "/")
            if target is None or target.kind is not RouteKind.LISTING:
                raise RouteTableConsistencyError(
                    f"Redirect {entry.url_pattern!r} has no matching listing entry"
                )
        for root in self._roots:
            if root.name not in self._fallbacks:
                raise RouteTableConsistencyError(f"Root '{root.name}' has no file fallback")


class RouteTableBuilder:
    """
    Walks each configured root once and emits its route entries.

    For every root, in configuration order: a Listing and a Redirect entry
    for the root itself and for every nested subdirectory, then exactly one
    FileFallback entry. Symlinked directories are not descended into.
    """

    def build(self, roots: Sequence[DirectoryRoot]) -> RouteTable:
        seen = set()
        for root in roots:
            if root.name in seen:
                raise ValueError(f"Duplicate directory root name '{root.name}'")
            seen.add(root.name)

        entries: List[RouteEntry] = []
        for root in roots:
            nodes = self.scan_root(root)
            for node in nodes:
                entries.append(
                    RouteEntry(
                        url_pattern=node.logical_path + "/",
                        kind=RouteKind.LISTING,
                        node=node,
                        root=root,
                    )
                )
                entries.append(
                    RouteEntry(
                        url_pattern=node.logical_path,
                        kind=RouteKind.REDIRECT,
                        node=node,
                        root=root,
                    )
                )
            entries.append(
                RouteEntry(url_pattern=f"/{root.name}/*", kind=RouteKind.FILE_FALLBACK, root=root)
            )
            logger.debug(f"Registered {len(nodes)} listable directories for root '{root.name}'")

        table = RouteTable(roots, entries)
        table.verify()
        return table

    def scan_root(self, root: DirectoryRoot) -> List[DirectoryNode]:
        """
        Return the root node followed by all of its subdirectories, depth first,
        siblings in case-insensitive name order.

        Raises:
            RootScanError: if the root is missing, not a directory, or any
                directory inside it cannot be read.
        """
        base = root.filesystem_path
        if not base.exists():
            raise RootScanError(root.name, base, "directory does not exist")
        if not base.is_dir():
            raise RootScanError(root.name, base, "not a directory")

        nodes: List[DirectoryNode] = []
        stack = [DirectoryNode(root=root, relative_path="", filesystem_path=base)]
        while stack:
            node = stack.pop()
            nodes.append(node)
            subdirs = [
                DirectoryNode(
                    root=root,
                    relative_path=child.name if node.is_root else f"{node.relative_path}/{child.name}",
                    filesystem_path=child,
                )
                for child in self._list_subdirectories(root, node.filesystem_path)
            ]
            # Reversed so the stack pops them in sorted order.
            stack.extend(reversed(subdirs))
        return nodes

    def _list_subdirectories(self, root: DirectoryRoot, directory: Path) -> List[Path]:
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name.lower())
            subdirs = []
            for child in children:
                if child.is_symlink() or not child.is_dir():
                    continue
                if not path_codec.is_representable(child.name):
                    logger.warning(
                        f"Skipping directory {child!r} in root '{root.name}': "
                        "name cannot be represented in a URL"
                    )
                    continue
                subdirs.append(child)
            return subdirs
        except OSError as exc:
            raise RootScanError(root.name, directory, str(exc)) from exc
