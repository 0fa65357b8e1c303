"""Validação de assinatura do webhook do Messenger (HMAC).

Prefere ``X-Hub-Signature-256`` (sha256); aceita ``X-Hub-Signature`` (sha1)
quando só o header legado vier na requisição.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass

_ALGORITHMS = {"sha256": hashlib.sha256, "sha1": hashlib.sha1}


@dataclass(slots=True)
class SignatureResult:
    """Resultado da validação de assinatura."""

    valid: bool
    skipped: bool = False
    error: str | None = None


def verify_hub_signature(
    raw_body: bytes,
    headers: Mapping[str, str],
    secret: str | None,
) -> SignatureResult:
    """Valida a assinatura do webhook.

    Se o secret estiver ausente, a validação é ignorada (skipped).
    """

    if not secret:
        return SignatureResult(valid=True, skipped=True)

    signature = headers.get("x-hub-signature-256") or headers.get("x-hub-signature")
    if not signature:
        return SignatureResult(valid=False, error="missing_signature")

    method, _, expected = signature.partition("=")
    digestmod = _ALGORITHMS.get(method.lower())
    if digestmod is None or not expected:
        return SignatureResult(valid=False, error="invalid_signature_format")

    digest = hmac.new(secret.encode("utf-8"), raw_body, digestmod).hexdigest()
    if not hmac.compare_digest(digest, expected):
        return SignatureResult(valid=False, error="signature_mismatch")

    return SignatureResult(valid=True)
