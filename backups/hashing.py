"""
Content fingerprints for backup revisions.

Two hashes are in play:
- sha256: raw hash of the text as stored. Written to the `contentHash`
  metadata field as an integrity tag, never compared.
- normalized_hash: semantic fingerprint used for "did it change" and
  duplicate checks. JSON documents are compared without the volatile
  `_backupTime` field and independent of key order.

Neither function raises: text that is not JSON is hashed as-is.
"""

import hashlib
import json
from typing import Any, Tuple

BACKUP_TIME_FIELD = "_backupTime"


def sha256(content: str) -> str:
    """
    Full SHA-256 hex digest of the UTF-8 encoded text.

    Unpaired surrogates (from escapes like `\\ud800`) are encoded as-is
    instead of failing.
    """
    return hashlib.sha256(content.encode("utf-8", errors="surrogatepass")).hexdigest()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json(content: str) -> Tuple[bool, Any]:
    """
    Return (True, value) if `content` is strict JSON, else (False, None).

    `NaN` and `Infinity` literals are rejected.
    """
    try:
        return True, json.loads(content, parse_constant=_reject_constant)
    except (TypeError, ValueError):
        return False, None


def _canonical_json(value: Any) -> str:
    """Deterministic JSON serialization for hashing."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonicalize(content: str) -> str:
    """
    Normalized form of a document.

    For JSON: top-level `_backupTime` removed, keys sorted at every depth,
    compact separators. Anything else is returned unchanged.
    """
    is_json, value = parse_json(content)
    if not is_json:
        return content

    if isinstance(value, dict):
        value.pop(BACKUP_TIME_FIELD, None)
    return _canonical_json(value)


def normalized_hash(content: str) -> str:
    return sha256(canonicalize(content))


def stamp_backup_time(content: str, timestamp: str) -> str:
    """
    Put `_backupTime = timestamp` as the first key of a JSON object document.

    Any existing `_backupTime` is replaced; the other keys keep their relative
    order. Non-JSON text and JSON that is not an object pass through unchanged.

    Example:
        >>> stamp_backup_time('{"a":1,"_backupTime":"old"}', "2024-01-01T00:00:00.000Z")
        '{"_backupTime":"2024-01-01T00:00:00.000Z","a":1}'
    """
    is_json, value = parse_json(content)
    if not is_json or not isinstance(value, dict):
        return content

    stamped = {BACKUP_TIME_FIELD: timestamp}
    for key, item in value.items():
        if key != BACKUP_TIME_FIELD:
            stamped[key] = item
    text = json.dumps(stamped, separators=(",", ":"), ensure_ascii=False)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        # unpaired surrogates must stay escaped to be storable
        text = json.dumps(stamped, separators=(",", ":"), ensure_ascii=True)
    return text
