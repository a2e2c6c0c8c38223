"""
Redemption tokens and their verification payload.

The token is an opaque random identifier, independent of any request
content.  ``secrets.token_hex(32)`` yields 256 random bits as 64 hex
characters; uniqueness is additionally enforced by the storage constraint
on ``tire_requests.token``.

The verification payload is what a QR renderer encodes.  Rendering the
image itself is outside the kernel.
"""

import json
import secrets
from dataclasses import dataclass

TOKEN_BYTES = 32
VALIDATION_PATH = "/api/seller/validate/"


def generate_redemption_token() -> str:
    """Return a fresh, unguessable 64-character hex token."""
    return secrets.token_hex(TOKEN_BYTES)


@dataclass(frozen=True)
class VerificationPayload:
    """Content encoded into a request's QR artifact."""

    token: str
    validation_url: str

    def to_json(self) -> str:
        return json.dumps(
            {"hash": self.token, "validationUrl": self.validation_url},
            separators=(",", ":"),
        )


def build_verification_payload(token: str, base_url: str) -> VerificationPayload:
    """Build the payload for ``token`` served under ``base_url``."""
    return VerificationPayload(
        token=token,
        validation_url=f"{base_url.rstrip('/')}{VALIDATION_PATH}{token}",
    )


def parse_verification_payload(content: str) -> VerificationPayload | None:
    """Parse scanned QR content.  Returns None on anything malformed."""
    try:
        data = json.loads(content)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    token = data.get("hash")
    url = data.get("validationUrl")
    if not isinstance(token, str) or not isinstance(url, str):
        return None
    return VerificationPayload(token=token, validation_url=url)
