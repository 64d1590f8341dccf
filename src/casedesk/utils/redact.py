"""Secret redaction for debug dumps and logs.

:func:`redact` returns a deep copy of a request/response payload with

* values under secret-looking keys (``apikey``, ``authorization``,
  ``password_hash``, ...) masked,
* any occurrence of the configured key scrubbed from every string,
* ``Bearer <jwt>`` patterns replaced, and
* raw bytes replaced by a ``<binary:N_bytes>`` marker.
"""

from __future__ import annotations

import copy
import re
from typing import Any

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "apikey",
    "api_key",
    "token",
    "secret",
    "password",
    "authorization",
    "cookie",
    "signature",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _mask(value: str, secret: str | None) -> str:
    if secret and secret in value:
        suffix = secret[-4:] if len(secret) >= 4 else "****"
        placeholder = f"<redacted:...{suffix}>"
        if secret in placeholder:
            placeholder = "<redacted>"
        value = value.replace(secret, placeholder)
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def _redact_value(value: Any, secret: str | None) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, secret)
    if isinstance(value, list):
        return [_redact_value(item, secret) for item in value]
    if isinstance(value, str):
        return _mask(value, secret)
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    return value


def _redact_dict(d: dict, secret: str | None) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _mask(value, secret) if isinstance(value, str) else "<redacted>"
            if isinstance(value, str) and result[key] == value:
                result[key] = "<redacted>"
        else:
            result[key] = _redact_value(value, secret)
    return result


def redact(payload: dict, secret: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data removed.

    Examples
    --------
    >>> redact({"apikey": "sb_secret_abcd"}, "sb_secret_abcd")
    {'apikey': '<redacted:...abcd>'}
    """
    return _redact_dict(copy.deepcopy(payload), secret)
