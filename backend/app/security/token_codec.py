"""
security/token_codec.py — Compact HS256 token encoding and parsing.

Token layout:
    base64url(header) "." base64url(payload) "." base64url(signature)

The header is always {"alg": "HS256", "typ": "JWT"} and the signature is an
HMAC-SHA256 over the first two segments joined by ".". Header and payload
are serialised as compact JSON with sorted keys so equal mappings always
produce equal bytes.

decode() only parses. It never checks the signature, algorithm or claims;
that is the verifier's job (services/access_token_service.py).
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import re
from dataclasses import dataclass
from typing import Any, Mapping

from jwt.utils import base64url_decode, base64url_encode

ALGORITHM = "HS256"
HEADER: dict[str, str] = {"alg": ALGORITHM, "typ": "JWT"}

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]*$")


class MalformedTokenError(ValueError):
    """The token string cannot be split into a header, payload and signature."""


@dataclass(frozen=True)
class DecodedToken:
    header: dict[str, Any]
    payload: dict[str, Any]
    signing_input: str
    signature: str


def _serialize(data: Mapping[str, Any]) -> bytes:
    return json.dumps(dict(data), separators=(",", ":"), sort_keys=True).encode("utf-8")


def _b64encode(raw: bytes) -> str:
    return base64url_encode(raw).decode("ascii")


def _decode_segment(segment: str, name: str) -> dict[str, Any]:
    if not segment or not _SEGMENT_RE.match(segment):
        raise MalformedTokenError(f"Token {name} is not valid base64url.")
    try:
        raw = base64url_decode(segment)
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"Token {name} is not valid base64url.") from exc
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedTokenError(f"Token {name} is not valid JSON.") from exc
    if not isinstance(data, dict):
        raise MalformedTokenError(f"Token {name} must be a JSON object.")
    return data


def sign(signing_input: str, secret: str) -> str:
    """base64url(HMAC-SHA256(secret, signing_input))."""
    digest = hmac.new(
        secret.encode("utf-8"),
        signing_input.encode("ascii"),
        hashlib.sha256,
    ).digest()
    return _b64encode(digest)


def encode(payload: Mapping[str, Any], secret: str) -> str:
    """Serialises and signs `payload`. Pure function of its inputs."""
    signing_input = f"{_b64encode(_serialize(HEADER))}.{_b64encode(_serialize(payload))}"
    return f"{signing_input}.{sign(signing_input, secret)}"


def decode(token: str) -> DecodedToken:
    """
    Splits and parses a token without verifying it.

    Raises:
      MalformedTokenError — not exactly three segments, or the header/payload
      segment is not base64url-encoded JSON object.
    """
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string.")

    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError("Token must have exactly three segments.")

    header_segment, payload_segment, signature = parts
    header = _decode_segment(header_segment, "header")
    payload = _decode_segment(payload_segment, "payload")

    return DecodedToken(
        header=header,
        payload=payload,
        signing_input=f"{header_segment}.{payload_segment}",
        signature=signature,
    )
