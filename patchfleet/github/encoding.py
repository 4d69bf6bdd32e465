"""Base64 transport encoding for the GitHub contents API.

GitHub returns file content base64-encoded and wrapped at 60 columns, so
decoding drops every whitespace character before validating.
"""
from __future__ import annotations

import base64
import binascii
import re

from patchfleet.errors import RemoteApiError

_WHITESPACE = re.compile(r"\s+")


def encode_content(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def decode_content(encoded: str) -> bytes:
    compact = _WHITESPACE.sub("", encoded or "")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise RemoteApiError(f"Remote file content is not valid base64: {e}") from e
