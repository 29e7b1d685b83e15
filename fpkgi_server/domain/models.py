from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DirectoryRoot(BaseModel):
    """
    A configured top-level mount point exposed under ``/{name}/``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="URL prefix segment, matched case-sensitively.")
    filesystem_path: Path = Field(description="Directory on disk served under this name.")


class DirectoryNode(BaseModel):
    """
    A directory discovered by the startup scan: either a root itself
    (``relative_path == ""``) or one of its nested subdirectories.
    """

    model_config = ConfigDict(frozen=True)

    root: DirectoryRoot
    relative_path: str = Field(
        default="",
        description="Decoded, root-relative path using '/' separators, no trailing slash.",
    )
    filesystem_path: Path

    @property
    def is_root(self) -> bool:
        return self.relative_path == ""

    @property
    def logical_path(self) -> str:
        """Decoded URL path of this directory without the trailing slash, e.g. ``/pkgs/new dir``."""
        if self.is_root:
            return f"/{self.root.name}"
        return f"/{self.root.name}/{self.relative_path}"

    @property
    def parent_logical_path(self) -> Optional[str]:
        if self.is_root:
            return None
        return self.logical_path.rsplit("/", 1)[0]


class RouteKind(str, Enum):
    LISTING = "listing"
    REDIRECT = "redirect"
    FILE_FALLBACK = "file_fallback"


class RouteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    url_pattern: str
    kind: RouteKind
    # Listing and Redirect entries point at a directory node,
    # FileFallback entries only at their root.
    node: Optional[DirectoryNode] = None
    root: DirectoryRoot


class ListingEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_directory: bool
    href: str


class ListingPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    logical_path: str
    parent_href: Optional[str] = None
    entries: List[ListingEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dispatch actions
# ---------------------------------------------------------------------------


class RenderRootIndex(BaseModel):
    model_config = ConfigDict(frozen=True)


class RenderListing(BaseModel):
    model_config = ConfigDict(frozen=True)

    node: DirectoryNode


class Redirect(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str


class Deliver(BaseModel):
    model_config = ConfigDict(frozen=True)

    root: DirectoryRoot
    relative_path: str = Field(description="Decoded path of the file relative to the root.")


class NotFound(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str


class InvalidPath(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: str


Action = Union[RenderRootIndex, RenderListing, Redirect, Deliver, NotFound, InvalidPath]
