"""Payment gateway callback signatures.

The gateway signs the raw request body with HMAC-SHA256 using the shared
``PAYMENT_WEBHOOK_SECRET`` and sends the hex digest in
``X-Payment-Signature``.
"""

from __future__ import annotations

import hashlib
import hmac


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body or b"", hashlib.sha256).hexdigest()


def verify_signature(*, raw_body: bytes, signature: str | None, secret: str) -> bool:
    """Constant-time check; an empty secret or signature never verifies."""
    if not secret or not signature:
        return False
    computed = compute_signature(raw_body, secret)
    return hmac.compare_digest(computed, str(signature).strip().lower())
