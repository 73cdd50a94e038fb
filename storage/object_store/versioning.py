"""
Version naming for stored objects (document backups).

A logical document key such as `config.json` owns:
  - version 0 (current), stored under the key itself
  - historical versions N >= 1, stored under `{base}{N}{ext}` (`config3.json`)

Functions:
  - split_key: key -> (base, extension)
  - historical_key: (base, version, extension) -> object key
  - parse_version: object key -> historical version number, if it is one
  - next_slot: lowest free historical version number

There is no atomic counter in the store: callers re-list existing slots right
before calling next_slot, and two concurrent writers can pick the same slot.
"""

import re
from typing import Iterable, Optional, Tuple

_VERSION_PATTERN = re.compile(r"[1-9][0-9]*")


def split_key(key: str) -> Tuple[str, str]:
    """
    Split a key at its last '.' into (base, extension).

    Example:
        >>> split_key("config.json")
        ('config', '.json')
        >>> split_key("README")
        ('README', '')
    """
    index = key.rfind(".")
    if index == -1:
        return key, ""
    return key[:index], key[index:]


def historical_key(base: str, version: int, extension: str) -> str:
    return f"{base}{version}{extension}"


def parse_version(object_key: str, base: str, extension: str) -> Optional[int]:
    """
    Return the historical version encoded in `object_key`, or None.

    Only canonical positive integers count, so `config.backup.json`,
    `config0.json` and `config01.json` are not versions of `config.json`.
    """
    if len(object_key) <= len(base) + len(extension):
        return None
    if not object_key.startswith(base) or not object_key.endswith(extension):
        return None

    middle = object_key[len(base):len(object_key) - len(extension)]
    if not _VERSION_PATTERN.fullmatch(middle):
        return None
    return int(middle)


def next_slot(existing: Iterable[int]) -> int:
    """
    Lowest positive integer not in `existing`.

    Example:
        >>> next_slot({1, 2, 4})
        3
    """
    taken = set(existing)
    slot = 1
    while slot in taken:
        slot += 1
    return slot
