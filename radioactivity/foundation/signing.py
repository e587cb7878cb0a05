"""Incident payload signing.

Emitters sign the compact payload they attach to a page so the ingestion
side can refuse energy that was forged or edited in the browser.  The
signature is HMAC-SHA256 over ``field##entity_type##entity_id##energy``,
URL-safe base64 without padding.
"""

from __future__ import annotations

import base64
import hashlib
import hmac


def _energy_token(energy: float) -> str:
    # 10, 10.0 and "10" must all sign the same way
    return repr(float(energy))


def incident_hash(
    field_name: str,
    entity_type: str,
    entity_id: str,
    energy: float,
    salt: str,
) -> str:
    """Return the signature for one emitted incident."""
    message = "##".join(
        [str(field_name), str(entity_type), str(entity_id), _energy_token(energy)]
    )
    digest = hmac.new(salt.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_incident_hash(
    signature: str,
    field_name: str,
    entity_type: str,
    entity_id: str,
    energy: float,
    salt: str,
) -> bool:
    expected = incident_hash(field_name, entity_type, entity_id, energy, salt)
    # bytes: compare_digest refuses non-ASCII str input
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("ascii"))
