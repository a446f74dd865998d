from __future__ import annotations

from typing import Any, Dict

MASK = "***REDACTED***"

# Matched as substrings of the lower-cased key, so "db_password" and
# "X-Auth-Token" are masked too.
SECRET_MARKERS = ("password", "passphrase", "secret", "token", "api_key", "authorization", "cookie")


def is_secret_key(key: Any) -> bool:
    k = str(key).lower()
    return k == "key" or any(m in k for m in SECRET_MARKERS)


def redact(obj: Any) -> Any:
    """Copy of `obj` with values under secret-looking keys masked, at any depth."""
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            out[k] = MASK if is_secret_key(k) else redact(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [redact(x) for x in obj]
    return obj
