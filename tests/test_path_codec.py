"""Tests for URL path segment encoding and decoding."""

import pytest

from fpkgi_server.domain import path_codec
from fpkgi_server.domain.errors import InvalidPathError


class TestDecode:
    def test_decodes_space(self) -> None:
        assert path_codec.decode("new%20dir") == "new dir"

    def test_decodes_utf8(self) -> None:
        assert path_codec.decode("caf%C3%A9") == "café"

    def test_plain_segment_unchanged(self) -> None:
        assert path_codec.decode("afile.pkg") == "afile.pkg"

    @pytest.mark.parametrize(
        "raw",
        ["%zz", "abc%2", "%", "%G0name"],
    )
    def test_rejects_malformed_escape(self, raw: str) -> None:
        with pytest.raises(InvalidPathError, match="malformed"):
            path_codec.decode(raw)

    def test_rejects_invalid_utf8(self) -> None:
        with pytest.raises(InvalidPathError, match="UTF-8"):
            path_codec.decode("%ff%fe")

    @pytest.mark.parametrize("raw", [".", "..", "%2e", "%2E%2e"])
    def test_rejects_traversal(self, raw: str) -> None:
        with pytest.raises(InvalidPathError, match="traversal"):
            path_codec.decode(raw)

    def test_rejects_encoded_slash(self) -> None:
        with pytest.raises(InvalidPathError, match="slash"):
            path_codec.decode("..%2Fsecret")

    def test_rejects_nul(self) -> None:
        with pytest.raises(InvalidPathError):
            path_codec.decode("a%00b")


class TestEncode:
    def test_encodes_space(self) -> None:
        assert path_codec.encode("new dir") == "new%20dir"

    def test_encodes_reserved_characters(self) -> None:
        assert path_codec.encode("a?b#c") == "a%3Fb%23c"

    @pytest.mark.parametrize(
        "name",
        ["new dir", "café", "100% done", "a+b", "[USA] Game (v1.00).pkg", "日本語", "~tilde", "*"],
    )
    def test_round_trip(self, name: str) -> None:
        assert path_codec.decode(path_codec.encode(name)) == name

    def test_unrepresentable_name(self) -> None:
        # What os.listdir returns for a non-UTF-8 filename.
        assert not path_codec.is_representable("bad\udcffname")
        assert not path_codec.is_representable("..")
        assert path_codec.is_representable("new dir")


class TestPaths:
    def test_decode_path_keeps_trailing_slash(self) -> None:
        assert path_codec.decode_path("/pkgs/new%20dir/") == "/pkgs/new dir/"

    def test_decode_path_without_trailing_slash(self) -> None:
        assert path_codec.decode_path("/pkgs/new%20dir") == "/pkgs/new dir"

    def test_decode_root(self) -> None:
        assert path_codec.decode_path("/") == "/"

    def test_decode_path_rejects_empty_segment(self) -> None:
        with pytest.raises(InvalidPathError):
            path_codec.decode_path("/pkgs//afile.pkg")

    def test_decode_path_requires_leading_slash(self) -> None:
        with pytest.raises(InvalidPathError):
            path_codec.decode_path("pkgs/")

    def test_decode_path_rejects_traversal(self) -> None:
        with pytest.raises(InvalidPathError):
            path_codec.decode_path("/pkgs/../secret")

    def test_encode_path(self) -> None:
        assert path_codec.encode_path("/pkgs/new dir") == "/pkgs/new%20dir"
        assert path_codec.encode_path("/pkgs/new dir/") == "/pkgs/new%20dir/"
        assert path_codec.encode_path("/") == "/"

    def test_path_round_trip(self) -> None:
        logical = "/pkgs/games/café/new dir/"
        assert path_codec.decode_path(path_codec.encode_path(logical)) == logical
