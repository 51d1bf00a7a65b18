"""
Webhook authenticity checks.

Twilio signs each webhook with HMAC-SHA1 over the full request URL followed by
every POST parameter (key then value), keys sorted lexicographically, keyed by
the account auth token, base64 encoded, and sent in `X-Twilio-Signature`.
"""

import hashlib
import hmac
from base64 import b64encode
from collections.abc import Mapping

from receptionist.shared.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Twilio-Signature"
INTERNAL_SECRET_HEADER = "X-Internal-Secret"
ORIGINAL_URL_HEADER = "X-Original-Url"


def compute_signature(url: str, params: Mapping[str, str], auth_token: str) -> str:
    """Compute the expected provider signature for a request."""
    data = url
    for key in sorted(params.keys()):
        data += key + str(params[key])

    digest = hmac.new(
        auth_token.encode("utf-8"),
        data.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return b64encode(digest).decode("utf-8")


def verify_signature(
    url: str,
    params: Mapping[str, str],
    signature: str | None,
    auth_token: str | None,
) -> bool:
    """Check a provider signature.

    Args:
        url: URL the provider posted to, including any query string.
        params: Form parameters from the request body.
        signature: Value of the X-Twilio-Signature header.
        auth_token: Shared secret (Twilio auth token).

    Returns:
        True only when the signature matches. Never raises.
    """
    if not signature or not auth_token:
        return False

    try:
        expected = compute_signature(url, params, auth_token)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
    except Exception:
        logger.exception("Error validating webhook signature")
        return False


def verify_internal_secret(provided: str | None, expected: str | None) -> bool:
    """Static shared-secret check for internal webhook-to-webhook calls."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
