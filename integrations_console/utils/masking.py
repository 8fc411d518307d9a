"""Masking helpers for key material and credentials."""

from typing import Any, Dict
import re

SENSITIVE_FIELDS = ("password", "secret", "token", "key", "auth")

# Secrets issued by the Zapier bridge carry one of these prefixes.
SECRET_PATTERN = re.compile(r"\b(?:sw|sk)_[A-Za-z0-9_\-]{8,}")

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def mask_key(key: str) -> str:
    """Prefix, 24 asterisks, suffix. The only long-term display form of a key."""
    if not key:
        return ""
    if len(key) <= 16:
        return key[:4] + "*" * 24
    return f"{key[:8]}{'*' * 24}{key[-8:]}"


def redact_secrets(text: str) -> str:
    """Replace anything that looks like an issued secret with its masked form."""
    return SECRET_PATTERN.sub(lambda m: mask_key(m.group(0)), text)


def sanitize_credentials(credentials: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``credentials`` with sensitive values replaced."""
    sanitized = dict(credentials)
    for key in sanitized:
        if any(field in key.lower() for field in SENSITIVE_FIELDS):
            sanitized[key] = "[REDACTED]"
    return sanitized


def is_uuid(value: str) -> bool:
    return bool(value) and bool(UUID_PATTERN.match(value))


def key_preview(key: str) -> str:
    """Short label used when a key is referenced in logs or diagnostics."""
    if not key:
        return "No key provided"
    return f"{key[:8]}..."
