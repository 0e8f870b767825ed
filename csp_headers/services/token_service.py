"""
CSP Nonce Token Service

Issues the per-request token that ties the Content-Security-Policy
nonce source to the nonce attributes injected into the HTML body.

The token lives on the request context (request.state.csp_nonce),
never in module-level state, so concurrent requests cannot observe
each other's token.
"""

import base64
import logging
import secrets

from fastapi import Request

from csp_headers.exceptions import EntropyError

logger = logging.getLogger(__name__)

NONCE_STATE_ATTR = "csp_nonce"
MIN_NONCE_BYTES = 16


def generate_token(nbytes: int = MIN_NONCE_BYTES) -> str:
    """
    Generate a base64 nonce from the OS random source.

    Args:
        nbytes: Number of random bytes (at least 16)

    Returns:
        Base64 text of the random bytes

    Raises:
        EntropyError: If the random source cannot supply bytes
    """
    if nbytes < MIN_NONCE_BYTES:
        raise ValueError(f"nonce needs at least {MIN_NONCE_BYTES} bytes")

    try:
        raw = secrets.token_bytes(nbytes)
    except (OSError, NotImplementedError) as e:
        logger.error(f"Random source unavailable for CSP nonce: {e}")
        raise EntropyError("cannot generate CSP nonce") from e

    return base64.b64encode(raw).decode("ascii")


def issue_token(state) -> str:
    """
    Return the request token, generating it on first use.

    Subsequent calls with the same request state return the same value.

    Args:
        state: Per-request state object (request.state)
    """
    token = getattr(state, NONCE_STATE_ATTR, None)
    if token:
        return token

    token = generate_token()
    setattr(state, NONCE_STATE_ATTR, token)
    return token


def get_token(request: Request) -> str:
    """Get the CSP nonce issued for this request ("" when none was issued)."""
    return getattr(request.state, NONCE_STATE_ATTR, "")
