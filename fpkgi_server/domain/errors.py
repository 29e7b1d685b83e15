from __future__ import annotations

from pathlib import Path
from typing import Optional


class InvalidPathError(ValueError):
    """
    Raised when an inbound URL path cannot be decoded into a logical path:
    malformed percent escapes, invalid UTF-8, traversal segments, or an
    encoded slash inside a single segment.
    """

    def __init__(self, raw: str, reason: str):
        super().__init__(f"Invalid path {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


class RootScanError(OSError):
    """A configured root could not be scanned at startup. Always fatal."""

    def __init__(self, root_name: str, path: Path, reason: str):
        super().__init__(f"Cannot scan directory root '{root_name}' at {path}: {reason}")
        self.root_name = root_name
        self.path = path


class ListingReadError(OSError):
    """Reading a directory for a listing failed (permission denied, I/O error)."""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        super().__init__(f"Error reading directory {path}: {cause}")
        self.path = path
        self.cause = cause


class DirectoryVanishedError(ListingReadError):
    """The directory was known at startup but no longer exists on disk."""


class FileDeliveryError(OSError):
    def __init__(self, root_name: str, relative_path: str, reason: str):
        super().__init__(f"Cannot deliver '{relative_path}' from '{root_name}': {reason}")
        self.root_name = root_name
        self.relative_path = relative_path


class RouteTableConsistencyError(RuntimeError):
    """
    A redirect target does not resolve to a listing entry.

    This means the route table was built incorrectly; it is never a
    condition a request can recover from.
    """
