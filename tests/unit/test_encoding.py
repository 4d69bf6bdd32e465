"""Unit tests for contents API base64 handling."""

import textwrap

import pytest

from patchfleet.errors import RemoteApiError
from patchfleet.github.encoding import decode_content, encode_content


def wrapped_base64(content):
    """Base64 wrapped at 60 columns, as the contents API returns it."""
    return "\n".join(textwrap.wrap(encode_content(content), 60)) + "\n"


class TestEncoding:

    def test_decode_wrapped_content(self):
        content = ("line of text\n" * 20).encode("utf-8")
        wrapped = wrapped_base64(content)

        assert "\n" in wrapped.strip()
        assert decode_content(wrapped) == content

    def test_encode_is_unwrapped(self):
        content = b"x" * 200
        encoded = encode_content(content)

        assert "\n" not in encoded
        assert encoded == wrapped_base64(content).replace("\n", "")

    def test_empty_content(self):
        assert encode_content(b"") == ""
        assert decode_content("") == b""
        assert decode_content(None) == b""

    def test_invalid_base64_raises(self):
        with pytest.raises(RemoteApiError):
            decode_content("not*valid*base64")
