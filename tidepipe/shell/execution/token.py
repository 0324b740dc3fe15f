"""Resume token codec.

A token is ``<body>.<signature>``:

- ``body``: base64url (unpadded) of the continuation as compact, key-sorted
  JSON.  The ``version`` field tags the format.
- ``signature``: hex HMAC-SHA256 of ``body``.

The HMAC key comes from ``TIDEPIPE_TOKEN_SECRET``.  Without a configured
secret a fixed built-in key is used, which still catches corruption and
truncation but not deliberate forgery.

Decoding checks the signature before touching the body, so a damaged
token fails as a whole and never yields a partial continuation.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging

from pydantic import ValidationError

from tidepipe.shell.models.pipeline import TOKEN_VERSION, ResumeContinuation

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = frozenset({TOKEN_VERSION})
_SEPARATOR = "."
_DEFAULT_KEY = b"tidepipe-resume-token-v1"


class TokenError(ValueError):
    """Resume token is missing, tampered with, or in an unknown format."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sign(body: str, key: bytes | None) -> str:
    return hmac.new(key or _DEFAULT_KEY, body.encode("ascii"), hashlib.sha256).hexdigest()


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(body: str) -> bytes:
    padding = "=" * (-len(body) % 4)
    return base64.urlsafe_b64decode(body + padding)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def encode_token(continuation: ResumeContinuation, *, key: bytes | None = None) -> str:
    """Serialize a continuation into an opaque, tamper-evident string."""
    payload = continuation.model_dump(mode="json", by_alias=True)
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    body = _b64encode(raw.encode("utf-8"))
    return f"{body}{_SEPARATOR}{_sign(body, key)}"


def decode_token(token: str | None, *, key: bytes | None = None) -> ResumeContinuation:
    """Decode a token produced by :func:`encode_token`.

    Raises
    ------
    TokenError:
        On a missing token, a bad signature, undecodable content, an
        unsupported version, or a payload that is not a valid continuation.
    """
    if not token or not token.strip():
        msg = "Missing resume token"
        raise TokenError(msg)

    body, sep, signature = token.strip().rpartition(_SEPARATOR)
    if not sep or not body or not signature or not token.isascii():
        msg = "Malformed resume token"
        raise TokenError(msg)

    if not hmac.compare_digest(_sign(body, key), signature):
        msg = "Resume token failed integrity check"
        raise TokenError(msg)

    try:
        payload = json.loads(_b64decode(body).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = "Resume token payload is not decodable"
        raise TokenError(msg) from exc

    if not isinstance(payload, dict):
        msg = "Resume token payload must be an object"
        raise TokenError(msg)

    version = payload.get("version")
    if type(version) is not int or version not in SUPPORTED_VERSIONS:
        msg = f"Unsupported resume token version: {version!r}"
        raise TokenError(msg)

    try:
        continuation = ResumeContinuation.model_validate(payload)
    except ValidationError as exc:
        msg = f"Invalid resume token payload: {exc.error_count()} validation error(s)"
        raise TokenError(msg) from exc

    logger.debug(
        "Decoded resume token: %d stage(s), resume at %d, %d item(s)",
        len(continuation.pipeline),
        continuation.resume_at_index,
        len(continuation.items),
    )
    return continuation
