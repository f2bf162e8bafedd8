"""
Webhook Signature
=================
HMAC-SHA256 signatures in the GitHub webhook format: "sha256=<hexdigest>".

Rules:
    - Sign the raw request body, never a re-serialized copy.
    - Compare in constant time.
    - A missing header or empty secret never verifies.
"""
import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    """
    Check a signature header against the raw body.

    Parameters
    ----------
    body : bytes
        Raw request body as received.
    signature : str
        Value of the X-Hub-Signature-256 header ("" when absent).
    secret : str
        Shared webhook secret.

    Returns
    -------
    bool
        True only when the header matches the expected signature.
    """
    if not secret or not signature:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))
