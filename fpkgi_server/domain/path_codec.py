"""
Percent-encoding of URL path segments.

This is the only place escaping happens. The route table builder, the
listing renderer, the redirect resolver and the dispatcher all go through
these functions so that a directory name on disk and the same name arriving
in a request always compare equal as plain strings.
"""

from __future__ import annotations

import re
import urllib.parse
from typing import List

from fpkgi_server.domain.errors import InvalidPathError

# A '%' that does not start a two-digit hex escape.
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_TRAVERSAL_SEGMENTS = (".", "..")


def decode(raw_segment: str) -> str:
    """
    Percent-decode a single URL path segment, e.g. ``"new%20dir"`` -> ``"new dir"``.

    Raises:
        InvalidPathError: on malformed escapes, invalid UTF-8, ``.``/``..``,
            an encoded ``/`` or a NUL character.
    """
    if _MALFORMED_ESCAPE.search(raw_segment):
        raise InvalidPathError(raw_segment, "malformed percent escape")

    try:
        name = urllib.parse.unquote(raw_segment, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        raise InvalidPathError(raw_segment, "escape sequence is not valid UTF-8") from None

    if name in _TRAVERSAL_SEGMENTS:
        raise InvalidPathError(raw_segment, "traversal segment")
    if "/" in name:
        raise InvalidPathError(raw_segment, "encoded slash inside segment")
    if "\x00" in name:
        raise InvalidPathError(raw_segment, "NUL character")
    return name


def encode(name: str) -> str:
    """Percent-encode a filesystem name for use as one URL path segment."""
    return urllib.parse.quote(name, safe="", encoding="utf-8", errors="strict")


def is_representable(name: str) -> bool:
    """
    Whether ``name`` survives an encode/decode round trip.

    Filenames that are not valid UTF-8 on disk come back from the OS with
    surrogate escapes and cannot be put in a URL.
    """
    try:
        return decode(encode(name)) == name
    except (InvalidPathError, UnicodeEncodeError):
        return False


def split_path(logical_path: str) -> List[str]:
    """Split a decoded logical path into its segments, dropping the leading ``/``."""
    return logical_path.lstrip("/").split("/")


def decode_path(raw_path: str) -> str:
    """
    Decode a full request path such as ``/pkgs/new%20dir/`` into ``/pkgs/new dir/``.

    A trailing slash is kept. Empty segments anywhere other than the end
    are rejected, so the result can be split on ``/`` unambiguously.
    """
    if not raw_path.startswith("/"):
        raise InvalidPathError(raw_path, "path must start with '/'")
    if raw_path == "/":
        return "/"

    raw_segments = raw_path[1:].split("/")
    trailing_slash = raw_segments[-1] == ""
    if trailing_slash:
        raw_segments = raw_segments[:-1]

    decoded = []
    for segment in raw_segments:
        if segment == "":
            raise InvalidPathError(raw_path, "empty path segment")
        decoded.append(decode(segment))

    return "/" + "/".join(decoded) + ("/" if trailing_slash else "")


def encode_path(logical_path: str) -> str:
    """Inverse of :func:`decode_path`."""
    if logical_path == "/":
        return "/"
    trailing_slash = logical_path.endswith("/")
    segments = split_path(logical_path.rstrip("/"))
    return "/" + "/".join(encode(s) for s in segments) + ("/" if trailing_slash else "")
